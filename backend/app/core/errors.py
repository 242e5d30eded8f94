from __future__ import annotations


class SupportQueueError(RuntimeError):
    """Base class for failures raised by the queue, backup and export services."""

    code = "INTERNAL_ERROR"
    status_code = 500


class ValidationError(SupportQueueError):
    """Raised when a support request payload violates a field constraint.

    `errors` maps each invalid field to the first rule it broke.
    """

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__("Invalid support request payload")
        self.errors = dict(errors)


class CorruptQueueError(SupportQueueError):
    """The queue file exists but does not hold a JSON array of records."""

    code = "QUEUE_CORRUPT"
    status_code = 500


class BackupNotFoundError(SupportQueueError):
    code = "BACKUP_NOT_FOUND"
    status_code = 404


class InvalidBackupFormatError(SupportQueueError):
    code = "INVALID_BACKUP_FORMAT"
    status_code = 422


class UnsupportedExportFormatError(SupportQueueError):
    code = "UNSUPPORTED_EXPORT_FORMAT"
    status_code = 400
