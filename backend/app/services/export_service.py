from __future__ import annotations

import json
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from app.core.errors import UnsupportedExportFormatError
from app.core.utils import Clock, filename_timestamp, parse_iso, to_iso, utc_now
from app.infrastructure.logging import get_logger
from app.models.support import (
    EXPORT_FORMAT_VERSION,
    EXPORT_FORMATS,
    CleanupResult,
    ExportFileInfo,
    ExportOptions,
    ExportResult,
)
from app.repositories.support_repository import SupportQueueRepository

logger = get_logger(__name__)

EXPORT_PREFIX = "support-requests-export-"
CSV_HEADERS = ("ID", "Name", "Email", "Topic", "Message", "Urgency", "Created At")
TOP_TOPIC_LIMIT = 10
DEFAULT_KEEP_COUNT = 20


def filter_requests(requests: list[dict[str, Any]], options: ExportOptions) -> list[dict[str, Any]]:
    filtered = list(requests)
    start, end = options.start, options.end
    if start is not None and end is not None:
        in_range: list[dict[str, Any]] = []
        for request in filtered:
            created_at = parse_iso(request.get("createdAt"))
            if created_at is not None and start <= created_at <= end:
                in_range.append(request)
        filtered = in_range
    if options.urgency:
        filtered = [request for request in filtered if request.get("urgency") == options.urgency]
    return filtered


def _quote(value: Any) -> str:
    return '"' + str(value if value is not None else "").replace('"', '""') + '"'


def render_csv(requests: list[dict[str, Any]]) -> str:
    """Free-text columns are always quoted; id, email, urgency and timestamp never are.

    An empty list renders as an empty string, not a header-only document.
    """
    if not requests:
        return ""
    lines = [",".join(CSV_HEADERS)]
    for request in requests:
        lines.append(
            ",".join(
                [
                    str(request.get("id", "")),
                    _quote(request.get("name")),
                    str(request.get("email", "")),
                    _quote(request.get("topic")),
                    _quote(request.get("message")),
                    str(request.get("urgency", "")),
                    str(request.get("createdAt", "")),
                ]
            )
        )
    return "\n".join(lines)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ExportService:
    def __init__(
        self,
        *,
        support_repository: SupportQueueRepository,
        export_dir: Path,
        clock: Clock = utc_now,
    ) -> None:
        self.support_repository = support_repository
        self.export_dir = Path(export_dir)
        self.clock = clock

    def ensure_export_dir(self) -> Path:
        self.export_dir.mkdir(parents=True, exist_ok=True)
        return self.export_dir

    def export_requests(self, options: ExportOptions) -> ExportResult:
        if options.format not in EXPORT_FORMATS:
            raise UnsupportedExportFormatError(f"Unsupported export format: {options.format}")
        options = self._normalize(options)

        export_dir = self.ensure_export_dir()
        requests = filter_requests(self.support_repository.read_all(), options)
        export_path = self._unused_path(export_dir, self._filename_stem(options), options.format)

        if options.format == "json":
            content = json.dumps(self._json_document(requests, options), indent=2, ensure_ascii=False)
        else:
            content = render_csv(requests)
        with export_path.open("x", encoding="utf-8", newline="") as handle:
            handle.write(content)

        result = ExportResult(
            filename=export_path.name,
            path=str(export_path),
            recordCount=len(requests),
            fileSize=export_path.stat().st_size,
            format=options.format,
        )
        logger.info(
            "export_completed",
            filename=result.filename,
            format=result.format,
            record_count=result.recordCount,
            file_size=result.fileSize,
            filters=self._applied_filters(options),
        )
        return result

    def generate_export_stats(self) -> dict[str, Any]:
        requests = self.support_repository.read_all()
        if not requests:
            return {
                "totalRequests": 0,
                "urgentRequests": 0,
                "normalRequests": 0,
                "dateRange": {"earliest": None, "latest": None},
                "topTopics": [],
                "requestsByMonth": [],
            }

        urgent = sum(1 for request in requests if request.get("urgency") == "urgent")
        normal = sum(1 for request in requests if request.get("urgency") == "normal")

        dates = sorted(
            parsed for parsed in (parse_iso(request.get("createdAt")) for request in requests) if parsed is not None
        )

        topic_counts: Counter[str] = Counter()
        for request in requests:
            topic_counts[str(request.get("topic", "")).strip().lower()] += 1
        # sorted() is stable, so equal counts keep first-seen order.
        top_topics = sorted(topic_counts.items(), key=lambda item: -item[1])[:TOP_TOPIC_LIMIT]

        month_counts: Counter[str] = Counter(_as_utc(value).strftime("%Y-%m") for value in dates)

        return {
            "totalRequests": len(requests),
            "urgentRequests": urgent,
            "normalRequests": normal,
            "dateRange": {
                "earliest": to_iso(dates[0]) if dates else None,
                "latest": to_iso(dates[-1]) if dates else None,
            },
            "topTopics": [{"topic": topic, "count": count} for topic, count in top_topics],
            "requestsByMonth": [{"month": month, "count": month_counts[month]} for month in sorted(month_counts)],
        }

    def list_exports(self) -> list[ExportFileInfo]:
        export_dir = self.ensure_export_dir()
        rows: list[tuple[float, ExportFileInfo]] = []
        for path in export_dir.iterdir():
            if not path.name.startswith(EXPORT_PREFIX) or path.suffix not in {".json", ".csv"}:
                continue
            stats = path.stat()
            created = float(getattr(stats, "st_birthtime", stats.st_ctime))
            info = ExportFileInfo(
                filename=path.name,
                path=str(path),
                size=stats.st_size,
                created=to_iso(datetime.fromtimestamp(created, tz=timezone.utc)),
                format=path.suffix.lstrip("."),
            )
            rows.append((created, info))
        # Filenames embed the export timestamp and break ties between equal file times.
        rows.sort(key=lambda row: (row[0], row[1].filename), reverse=True)
        return [info for _, info in rows]

    def cleanup_old_exports(self, keep_count: int = DEFAULT_KEEP_COUNT) -> CleanupResult:
        keep_count = max(0, int(keep_count))
        exports = self.list_exports()
        if len(exports) <= keep_count:
            return CleanupResult(total=len(exports), deletedCount=0, remainingCount=len(exports))

        deleted = 0
        failed: list[str] = []
        for export in exports[keep_count:]:
            try:
                Path(export.path).unlink()
            except OSError as exc:
                failed.append(export.filename)
                logger.warning("export_delete_failed", filename=export.filename, error=str(exc))
                continue
            deleted += 1

        logger.info(
            "export_cleanup_completed",
            total_exports=len(exports),
            deleted_count=deleted,
            remaining_count=len(exports) - deleted,
        )
        return CleanupResult(
            total=len(exports),
            deletedCount=deleted,
            remainingCount=len(exports) - deleted,
            failed=failed,
        )

    def _normalize(self, options: ExportOptions) -> ExportOptions:
        if not options.has_date_range:
            return options
        return ExportOptions(
            format=options.format,
            start=_as_utc(options.start),  # type: ignore[arg-type]
            end=_as_utc(options.end),  # type: ignore[arg-type]
            urgency=options.urgency,
            include_metadata=options.include_metadata,
        )

    def _applied_filters(self, options: ExportOptions) -> dict[str, Any]:
        date_range = None
        if options.has_date_range:
            date_range = {"start": to_iso(options.start), "end": to_iso(options.end)}  # type: ignore[arg-type]
        return {"dateRange": date_range, "urgency": options.urgency or None}

    def _json_document(self, requests: list[dict[str, Any]], options: ExportOptions) -> dict[str, Any]:
        document: dict[str, Any] = {}
        if options.include_metadata:
            document["metadata"] = {
                "exportDate": to_iso(self.clock()),
                "totalRecords": len(requests),
                "format": "json",
                "version": EXPORT_FORMAT_VERSION,
                "filters": self._applied_filters(options),
            }
        document["data"] = requests
        return document

    def _filename_stem(self, options: ExportOptions) -> str:
        stem = f"{EXPORT_PREFIX}{filename_timestamp(self.clock())}"
        if options.has_date_range:
            stem += f"-{options.start.date().isoformat()}-to-{options.end.date().isoformat()}"  # type: ignore[union-attr]
        if options.urgency:
            stem += f"-{options.urgency}"
        return stem

    def _unused_path(self, directory: Path, stem: str, extension: str) -> Path:
        candidate = directory / f"{stem}.{extension}"
        suffix = 1
        while candidate.exists():
            candidate = directory / f"{stem}-{suffix}.{extension}"
            suffix += 1
        return candidate
