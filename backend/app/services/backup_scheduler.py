from __future__ import annotations

from threading import Lock

from app.infrastructure.logging import get_logger
from app.infrastructure.timers import IntervalTimer, ThreadingIntervalTimer, TimerFactory
from app.services.backup_service import BackupService

logger = get_logger(__name__)

STOPPED = "stopped"
RUNNING = "running"


class BackupScheduler:
    """Runs backup, cleanup and retention on a repeating timer.

    States are `stopped` and `running`. A failing tick is logged and the
    timer keeps firing.
    """

    def __init__(
        self,
        *,
        backup_service: BackupService,
        interval_seconds: float,
        keep_count: int = 30,
        timer_factory: TimerFactory = ThreadingIntervalTimer,
    ) -> None:
        self.backup_service = backup_service
        self.interval_seconds = interval_seconds
        self.keep_count = keep_count
        self.timer_factory = timer_factory
        self._state = STOPPED
        self._timer: IntervalTimer | None = None
        self._lock = Lock()
        self.ticks = 0
        self.failures = 0

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == RUNNING

    def start(self) -> None:
        with self._lock:
            if self._state == RUNNING:
                logger.warning("automatic_backups_already_running")
                return
            timer = self.timer_factory(self.interval_seconds, self.tick)
            timer.start()
            self._timer = timer
            self._state = RUNNING
        logger.info("automatic_backups_started", interval_hours=round(self.interval_seconds / 3600, 3))

    def stop(self) -> None:
        with self._lock:
            if self._state == STOPPED:
                return
            timer = self._timer
            self._timer = None
            self._state = STOPPED
        if timer is not None:
            timer.cancel()
        logger.info("automatic_backups_stopped")

    def tick(self) -> bool:
        self.ticks += 1
        try:
            self.backup_service.create_backup()
            self.backup_service.cleanup_old_backups(self.keep_count)
            self.backup_service.apply_data_retention()
        except Exception as exc:
            self.failures += 1
            logger.error("scheduled_backup_failed", error=str(exc), exc_info=True)
            return False
        return True
