from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Any

from app.core.utils import Clock, parse_iso, to_iso, utc_now
from app.repositories.support_repository import SupportQueueRepository
from app.services.backup_service import BackupService
from app.services.export_service import ExportService

SEARCH_FIELDS = ("name", "email", "topic", "message")
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _sort_key(sort_by: str):  # type: ignore[no-untyped-def]
    if sort_by == "urgency":
        return lambda row: 1 if row.get("urgency") == "urgent" else 0
    if sort_by == "name":
        return lambda row: str(row.get("name", "")).lower()
    return lambda row: parse_iso(row.get("createdAt")) or _EPOCH


class AdminService:
    def __init__(
        self,
        *,
        support_repository: SupportQueueRepository,
        backup_service: BackupService,
        export_service: ExportService,
        clock: Clock = utc_now,
    ) -> None:
        self.support_repository = support_repository
        self.backup_service = backup_service
        self.export_service = export_service
        self.clock = clock

    def list_requests(
        self,
        *,
        page: int = 1,
        limit: int = 20,
        urgency: str | None = None,
        search: str | None = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> dict[str, Any]:
        page = max(1, int(page))
        limit = max(1, int(limit))
        rows = self.support_repository.read_all()

        if urgency:
            rows = [row for row in rows if row.get("urgency") == urgency]
        term = (search or "").strip().lower()
        if term:
            rows = [
                row
                for row in rows
                if any(term in str(row.get(field, "")).lower() for field in SEARCH_FIELDS)
            ]

        rows.sort(key=_sort_key(sort_by), reverse=sort_order == "desc")

        total_count = len(rows)
        total_pages = math.ceil(total_count / limit) if total_count else 0
        start = (page - 1) * limit
        return {
            "data": rows[start : start + limit],
            "pagination": {
                "page": page,
                "limit": limit,
                "totalCount": total_count,
                "totalPages": total_pages,
                "hasNext": page < total_pages,
                "hasPrevious": page > 1,
            },
        }

    def stats(self) -> dict[str, int]:
        rows = self.support_repository.read_all()
        day_ago = self.clock() - timedelta(hours=24)
        recent = 0
        for row in rows:
            created_at = parse_iso(row.get("createdAt"))
            if created_at is not None and created_at > day_ago:
                recent += 1
        return {
            "totalRequests": len(rows),
            "urgentRequests": sum(1 for row in rows if row.get("urgency") == "urgent"),
            "normalRequests": sum(1 for row in rows if row.get("urgency") == "normal"),
            "recentRequests": recent,
        }

    def health(self) -> dict[str, Any]:
        requests = self.support_repository.read_all()
        backups = self.backup_service.list_backups()
        latest = self.backup_service.latest_backup()
        exports = self.export_service.list_exports()
        return {
            "status": "healthy",
            "timestamp": to_iso(self.clock()),
            "data": {
                "totalRequests": len(requests),
                "totalBackups": len(backups),
                "totalExports": len(exports),
                "latestBackup": latest.metadata.timestamp if latest is not None else None,
            },
        }
