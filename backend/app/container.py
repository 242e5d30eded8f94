from __future__ import annotations

from datetime import timedelta

from app.core.config import Settings
from app.infrastructure.logging import setup_logging
from app.infrastructure.rate_limiter import FixedWindowRateLimiter
from app.infrastructure.timers import ThreadingIntervalTimer, TimerFactory
from app.repositories.support_repository import SupportQueueRepository
from app.services.admin_service import AdminService
from app.services.backup_scheduler import BackupScheduler
from app.services.backup_service import BackupService
from app.services.export_service import ExportService
from app.services.support_service import SupportService


class Container:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        timer_factory: TimerFactory = ThreadingIntervalTimer,
    ) -> None:
        self.timer_factory = timer_factory
        self.rate_limiter = FixedWindowRateLimiter()
        self.build(settings or Settings.from_env())

    def build(self, settings: Settings) -> None:
        """(Re)wires every repository and service against `settings`."""
        previous = getattr(self, "backup_scheduler", None)
        if previous is not None:
            previous.stop()

        self.settings = settings
        self.support_repository = SupportQueueRepository(
            queue_file=settings.support_queue_file,
        )
        self.support_service = SupportService(
            support_repository=self.support_repository,
        )
        self.backup_service = BackupService(
            support_repository=self.support_repository,
            backup_dir=settings.backup_path,
            retention_period=timedelta(days=settings.data_retention_days),
        )
        self.export_service = ExportService(
            support_repository=self.support_repository,
            export_dir=settings.export_path,
        )
        self.admin_service = AdminService(
            support_repository=self.support_repository,
            backup_service=self.backup_service,
            export_service=self.export_service,
        )
        self.backup_scheduler = BackupScheduler(
            backup_service=self.backup_service,
            interval_seconds=settings.backup_interval_seconds,
            keep_count=settings.scheduled_backup_keep_count,
            timer_factory=self.timer_factory,
        )
        self.rate_limiter.reset()

    async def start(self) -> None:
        setup_logging(self.settings.log_level, self.settings.log_format)
        self.support_repository.ensure()
        if self.settings.enable_automatic_backups:
            self.backup_scheduler.start()

    async def stop(self) -> None:
        self.backup_scheduler.stop()


container = Container()
