from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

Urgency = Literal["normal", "urgent"]
ExportFormat = Literal["json", "csv"]

URGENCY_LEVELS: tuple[str, ...] = ("normal", "urgent")
EXPORT_FORMATS: tuple[str, ...] = ("json", "csv")
REQUIRED_RECORD_FIELDS: tuple[str, ...] = ("id", "name", "email", "topic", "message")
BACKUP_FORMAT_VERSION = "1.0"
EXPORT_FORMAT_VERSION = "1.0"


@dataclass(frozen=True)
class SupportRequest:
    id: str
    name: str
    email: str
    topic: str
    message: str
    urgency: Urgency
    createdAt: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "topic": self.topic,
            "message": self.message,
            "urgency": self.urgency,
            "createdAt": self.createdAt,
        }


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validation pass: either `value` or a field->message map."""

    ok: bool
    value: dict[str, str] | None = None
    errors: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class BackupMetadata:
    timestamp: str
    totalRequests: int
    fileSize: int
    version: str = BACKUP_FORMAT_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "totalRequests": self.totalRequests,
            "fileSize": self.fileSize,
            "version": self.version,
        }


@dataclass(frozen=True)
class BackupInfo:
    filename: str
    path: str
    metadata: BackupMetadata

    def to_dict(self) -> dict[str, Any]:
        return {"filename": self.filename, "path": self.path, "metadata": self.metadata.to_dict()}


@dataclass(frozen=True)
class RestoreResult:
    filename: str
    restoredRequests: int
    safetyBackup: str
    backupTimestamp: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "restoredRequests": self.restoredRequests,
            "safetyBackup": self.safetyBackup,
            "backupTimestamp": self.backupTimestamp,
        }


@dataclass(frozen=True)
class RetentionResult:
    originalCount: int
    removedCount: int
    remainingCount: int
    cutoffDate: str
    backupFilename: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "originalCount": self.originalCount,
            "removedCount": self.removedCount,
            "remainingCount": self.remainingCount,
            "cutoffDate": self.cutoffDate,
            "backupFilename": self.backupFilename,
        }


@dataclass(frozen=True)
class CleanupResult:
    total: int
    deletedCount: int
    remainingCount: int
    failed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "deletedCount": self.deletedCount,
            "remainingCount": self.remainingCount,
            "failed": list(self.failed),
        }


@dataclass(frozen=True)
class ExportOptions:
    format: ExportFormat = "json"
    start: datetime | None = None
    end: datetime | None = None
    urgency: Urgency | None = None
    include_metadata: bool = False

    @property
    def has_date_range(self) -> bool:
        return self.start is not None and self.end is not None


@dataclass(frozen=True)
class ExportResult:
    filename: str
    path: str
    recordCount: int
    fileSize: int
    format: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "path": self.path,
            "recordCount": self.recordCount,
            "fileSize": self.fileSize,
            "format": self.format,
        }


@dataclass(frozen=True)
class ExportFileInfo:
    filename: str
    path: str
    size: int
    created: str
    format: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "path": self.path,
            "size": self.size,
            "created": self.created,
            "format": self.format,
        }
