from __future__ import annotations

from threading import Event, Thread, current_thread
from typing import Callable, Protocol


class IntervalTimer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], IntervalTimer]


class ThreadingIntervalTimer:
    """Calls `callback` every `interval_seconds` on a daemon thread until cancelled.

    The first call happens one full interval after `start()`.
    """

    def __init__(self, interval_seconds: float, callback: Callable[[], None]) -> None:
        self.interval_seconds = max(0.001, float(interval_seconds))
        self.callback = callback
        self._stopped = Event()
        self._thread: Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = Thread(target=self._run, name="interval-timer", daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        self._stopped.set()
        thread = self._thread
        if thread is not None and thread.is_alive() and thread is not current_thread():
            thread.join(timeout=1.0)

    def _run(self) -> None:
        while not self._stopped.wait(self.interval_seconds):
            self.callback()
