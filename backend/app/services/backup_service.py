from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path
from typing import Any

from app.core.errors import BackupNotFoundError, InvalidBackupFormatError
from app.core.utils import Clock, filename_timestamp, parse_iso, to_iso, utc_now
from app.infrastructure.logging import get_logger
from app.models.support import (
    BACKUP_FORMAT_VERSION,
    REQUIRED_RECORD_FIELDS,
    BackupInfo,
    BackupMetadata,
    CleanupResult,
    RestoreResult,
    RetentionResult,
)
from app.repositories.support_repository import SupportQueueRepository, write_json_atomic

logger = get_logger(__name__)

BACKUP_PREFIX = "support-queue-backup-"
BACKUP_SUFFIX = ".json"
DEFAULT_KEEP_COUNT = 10


def _metadata_sort_key(info: BackupInfo) -> float:
    parsed = parse_iso(info.metadata.timestamp)
    return parsed.timestamp() if parsed is not None else float("-inf")


class BackupService:
    """Snapshots, restore and retention for the support queue file."""

    def __init__(
        self,
        *,
        support_repository: SupportQueueRepository,
        backup_dir: Path,
        retention_period: timedelta = timedelta(days=365),
        clock: Clock = utc_now,
    ) -> None:
        self.support_repository = support_repository
        self.backup_dir = Path(backup_dir)
        self.retention_period = retention_period
        self.clock = clock

    def ensure_backup_dir(self) -> Path:
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        return self.backup_dir

    def create_backup(self) -> BackupInfo:
        backup_dir = self.ensure_backup_dir()
        queue = self.support_repository.read_all()
        file_size = self.support_repository.stat().st_size
        now = self.clock()

        metadata = BackupMetadata(
            timestamp=to_iso(now),
            totalRequests=len(queue),
            fileSize=file_size,
            version=BACKUP_FORMAT_VERSION,
        )
        backup_path = self._unused_path(backup_dir, f"{BACKUP_PREFIX}{filename_timestamp(now)}")
        write_json_atomic(backup_path, {"metadata": metadata.to_dict(), "data": queue})

        info = BackupInfo(filename=backup_path.name, path=str(backup_path), metadata=metadata)
        logger.info(
            "backup_created",
            filename=info.filename,
            path=info.path,
            total_requests=metadata.totalRequests,
            file_size=metadata.fileSize,
        )
        return info

    def list_backups(self) -> list[BackupInfo]:
        backup_dir = self.ensure_backup_dir()
        backups: list[BackupInfo] = []
        for path in backup_dir.iterdir():
            if not self._is_backup_name(path.name) or not path.is_file():
                continue
            try:
                payload = json.loads(path.read_text(encoding="utf-8"))
                metadata = self._parse_metadata(payload)
            except (OSError, ValueError, TypeError, KeyError) as exc:
                logger.warning("backup_unreadable", filename=path.name, error=str(exc))
                continue
            backups.append(BackupInfo(filename=path.name, path=str(path), metadata=metadata))

        backups.sort(key=_metadata_sort_key, reverse=True)
        return backups

    def restore_from_backup(self, filename: str) -> RestoreResult:
        backup_path = self._resolve_backup(filename)
        data, metadata = self._load_for_restore(backup_path)

        with self.support_repository.lock:
            safety = self.create_backup()
            logger.info("restore_safety_backup_created", backup_file=safety.filename)
            self.support_repository.replace_all(data)

        result = RestoreResult(
            filename=backup_path.name,
            restoredRequests=len(data),
            safetyBackup=safety.filename,
            backupTimestamp=metadata.get("timestamp") if isinstance(metadata, dict) else None,
        )
        logger.info(
            "backup_restored",
            backup_file=result.filename,
            restored_requests=result.restoredRequests,
            backup_timestamp=result.backupTimestamp,
        )
        return result

    def cleanup_old_backups(self, keep_count: int = DEFAULT_KEEP_COUNT) -> CleanupResult:
        keep_count = max(0, int(keep_count))
        backups = self.list_backups()
        if len(backups) <= keep_count:
            logger.debug("backup_cleanup_skipped", total_backups=len(backups), keep_count=keep_count)
            return CleanupResult(total=len(backups), deletedCount=0, remainingCount=len(backups))

        deleted = 0
        failed: list[str] = []
        for backup in backups[keep_count:]:
            try:
                Path(backup.path).unlink()
            except OSError as exc:
                failed.append(backup.filename)
                logger.warning("backup_delete_failed", filename=backup.filename, error=str(exc))
                continue
            deleted += 1
            logger.debug("backup_deleted", filename=backup.filename, timestamp=backup.metadata.timestamp)

        result = CleanupResult(
            total=len(backups),
            deletedCount=deleted,
            remainingCount=len(backups) - deleted,
            failed=failed,
        )
        logger.info(
            "backup_cleanup_completed",
            total_backups=result.total,
            deleted_count=result.deletedCount,
            remaining_count=result.remainingCount,
        )
        return result

    def apply_data_retention(self, retention_period: timedelta | None = None) -> RetentionResult:
        with self.support_repository.lock:
            return self._apply_retention(self.retention_period if retention_period is None else retention_period)

    def _apply_retention(self, period: timedelta) -> RetentionResult:
        queue = self.support_repository.read_all()
        cutoff = self.clock() - period

        kept: list[dict[str, Any]] = []
        for record in queue:
            created_at = parse_iso(record.get("createdAt"))
            # Records with an unreadable timestamp are never dropped.
            if created_at is None or created_at > cutoff:
                kept.append(record)

        removed = len(queue) - len(kept)
        if removed == 0:
            logger.debug("retention_noop", total_requests=len(queue), cutoff_date=to_iso(cutoff))
            return RetentionResult(
                originalCount=len(queue),
                removedCount=0,
                remainingCount=len(queue),
                cutoffDate=to_iso(cutoff),
            )

        backup = self.create_backup()
        self.support_repository.replace_all(kept)
        result = RetentionResult(
            originalCount=len(queue),
            removedCount=removed,
            remainingCount=len(kept),
            cutoffDate=to_iso(cutoff),
            backupFilename=backup.filename,
        )
        logger.info(
            "retention_applied",
            original_count=result.originalCount,
            removed_count=result.removedCount,
            remaining_count=result.remainingCount,
            cutoff_date=result.cutoffDate,
            backup_file=backup.filename,
        )
        return result

    def latest_backup(self) -> BackupInfo | None:
        backups = self.list_backups()
        return backups[0] if backups else None

    def _is_backup_name(self, name: str) -> bool:
        return name.startswith(BACKUP_PREFIX) and name.endswith(BACKUP_SUFFIX)

    def _parse_metadata(self, payload: Any) -> BackupMetadata:
        if not isinstance(payload, dict) or not isinstance(payload.get("metadata"), dict):
            raise ValueError("backup has no metadata object")
        raw = payload["metadata"]
        timestamp = raw["timestamp"]
        if parse_iso(timestamp) is None:
            raise ValueError(f"invalid backup timestamp: {timestamp!r}")
        return BackupMetadata(
            timestamp=str(timestamp),
            totalRequests=int(raw.get("totalRequests", 0)),
            fileSize=int(raw.get("fileSize", 0)),
            version=str(raw.get("version", BACKUP_FORMAT_VERSION)),
        )

    def _resolve_backup(self, filename: str) -> Path:
        name = str(filename or "").strip()
        if not name or name != Path(name).name or name in {".", ".."}:
            raise BackupNotFoundError(f"Backup not found: {filename!r}")
        path = self.ensure_backup_dir() / name
        if not path.is_file():
            raise BackupNotFoundError(f"Backup not found: {name}")
        return path

    def _load_for_restore(self, path: Path) -> tuple[list[dict[str, Any]], Any]:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise InvalidBackupFormatError(f"Invalid backup format: {exc}") from exc

        if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
            raise InvalidBackupFormatError("Invalid backup format: data array not found")
        data = payload["data"]

        for record in data:
            if not isinstance(record, dict) or any(not record.get(key) for key in REQUIRED_RECORD_FIELDS):
                raise InvalidBackupFormatError("Invalid backup format: missing required fields")

        metadata = payload.get("metadata")
        if isinstance(metadata, dict) and "totalRequests" in metadata:
            declared = metadata.get("totalRequests")
            if not isinstance(declared, int) or isinstance(declared, bool) or declared != len(data):
                raise InvalidBackupFormatError(
                    f"Invalid backup format: metadata declares {declared!r} requests but data holds {len(data)}"
                )
        return data, metadata

    def _unused_path(self, directory: Path, stem: str) -> Path:
        candidate = directory / f"{stem}{BACKUP_SUFFIX}"
        suffix = 1
        while candidate.exists():
            candidate = directory / f"{stem}-{suffix}{BACKUP_SUFFIX}"
            suffix += 1
        return candidate
