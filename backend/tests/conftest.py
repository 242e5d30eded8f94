from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

import pytest

from app.container import container
from app.core.config import Settings
from app.repositories.support_repository import SupportQueueRepository


class FakeClock:
    """Deterministic clock; call it for the current time, advance it explicitly."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 3, 10, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, value: datetime) -> datetime:
        self.now = value
        return self.now


class ManualTimer:
    """Interval timer double: ticks fire only when `fire()` is called."""

    def __init__(self, interval_seconds: float, callback: Callable[[], None]) -> None:
        self.interval_seconds = interval_seconds
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self, times: int = 1) -> None:
        for _ in range(times):
            if self.cancelled:
                return
            self.callback()


def make_request(
    index: int,
    *,
    created_at: str,
    urgency: str = "normal",
    topic: str = "Billing",
    **overrides: Any,
) -> dict[str, Any]:
    row = {
        "id": f"req-{index:04d}",
        "name": f"Customer {index}",
        "email": f"customer{index}@example.com",
        "topic": topic,
        "message": "Please help me with my account settings.",
        "urgency": urgency,
        "createdAt": created_at,
    }
    row.update(overrides)
    return row


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def repository(data_dir: Path) -> SupportQueueRepository:
    return SupportQueueRepository(queue_file=data_dir / "support-queue.json")


@pytest.fixture(autouse=True)
def isolated_container(tmp_path: Path) -> Settings:
    # The app container is module-global; point it at a fresh data directory per test.
    root = tmp_path / "app-data"
    settings = Settings(
        support_queue_file=str(root / "support-queue.json"),
        backup_dir=str(root / "backups"),
        export_dir=str(root / "exports"),
        admin_username="admin",
        admin_password="test-admin-password",
    )
    container.build(settings)
    return settings


class ManualTimerFactory:
    def __init__(self) -> None:
        self.timers: list[ManualTimer] = []

    def __call__(self, interval_seconds: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(interval_seconds, callback)
        self.timers.append(timer)
        return timer


@pytest.fixture
def timer_factory() -> ManualTimerFactory:
    return ManualTimerFactory()


@pytest.fixture
def request_factory() -> Callable[..., dict[str, Any]]:
    return make_request
