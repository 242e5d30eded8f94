from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime, timedelta
from typing import Any

from app.container import Container, container
from app.core.config import Settings
from app.core.errors import SupportQueueError
from app.infrastructure.logging import setup_logging
from app.models.support import ExportOptions


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage support queue backups, retention and exports.")
    parser.add_argument("--log-level", default=None, help="Log level override (defaults to LOG_LEVEL env).")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("create", help="Snapshot the queue into a new backup file.")
    commands.add_parser("list", help="List backups, newest first.")

    restore = commands.add_parser("restore", help="Replace the queue with a backup's data.")
    restore.add_argument("filename", help="Backup filename inside the backup directory.")

    cleanup = commands.add_parser("cleanup", help="Delete all but the newest backups.")
    cleanup.add_argument("--keep", type=int, default=10, help="Number of backups to keep.")

    retention = commands.add_parser("retention", help="Drop requests older than the retention period.")
    retention.add_argument("--days", type=float, default=None, help="Retention period in days (defaults to DATA_RETENTION_DAYS).")

    export = commands.add_parser("export", help="Write a filtered JSON or CSV export.")
    export.add_argument("--format", choices=["json", "csv"], default="json")
    export.add_argument("--start", type=datetime.fromisoformat, default=None, help="Inclusive ISO start date.")
    export.add_argument("--end", type=datetime.fromisoformat, default=None, help="Inclusive ISO end date.")
    export.add_argument("--urgency", choices=["normal", "urgent"], default=None)
    export.add_argument("--no-metadata", action="store_true", help="Omit the metadata block from JSON exports.")

    commands.add_parser("stats", help="Print aggregate statistics over the whole queue.")
    return parser


def run(args: argparse.Namespace, container: Container) -> Any:
    backups = container.backup_service
    exports = container.export_service

    if args.command == "create":
        return backups.create_backup().to_dict()
    if args.command == "list":
        return {"backups": [info.to_dict() for info in backups.list_backups()]}
    if args.command == "restore":
        return backups.restore_from_backup(args.filename).to_dict()
    if args.command == "cleanup":
        return backups.cleanup_old_backups(args.keep).to_dict()
    if args.command == "retention":
        period = timedelta(days=args.days) if args.days is not None else None
        return backups.apply_data_retention(period).to_dict()
    if args.command == "export":
        options = ExportOptions(
            format=args.format,
            start=args.start,
            end=args.end,
            urgency=args.urgency,
            include_metadata=not args.no_metadata,
        )
        return exports.export_requests(options).to_dict()
    if args.command == "stats":
        return exports.generate_export_stats()
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    settings = Settings.from_env()
    setup_logging(args.log_level or settings.log_level, settings.log_format, stream=sys.stderr)
    if settings != container.settings:
        container.build(settings)
    try:
        summary = run(args, container)
    except SupportQueueError as exc:
        print(json.dumps({"error": {"code": exc.code, "message": str(exc)}}, indent=2))
        return 1
    print(json.dumps(summary, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
