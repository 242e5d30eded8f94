from app.infrastructure.rate_limiter import FixedWindowRateLimiter


class TickingClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


def test_fixed_window_rate_limiter_blocks_after_limit() -> None:
    limiter = FixedWindowRateLimiter(clock=TickingClock())
    key = "support:127.0.0.1"

    first = limiter.check(key=key, limit=2, window_seconds=60)
    second = limiter.check(key=key, limit=2, window_seconds=60)
    third = limiter.check(key=key, limit=2, window_seconds=60)

    assert first.allowed is True
    assert first.remaining == 1
    assert second.allowed is True
    assert third.allowed is False
    assert third.remaining == 0
    assert third.count == 3


def test_window_opens_on_first_hit_and_resets_after_expiry() -> None:
    clock = TickingClock()
    limiter = FixedWindowRateLimiter(clock=clock)
    key = "admin:10.0.0.1"

    opened = limiter.check(key=key, limit=1, window_seconds=300)
    clock.now += 120
    blocked = limiter.check(key=key, limit=1, window_seconds=300)

    assert opened.reset_epoch == 1_300.0
    assert blocked.allowed is False
    assert blocked.reset_epoch == 1_300.0
    assert blocked.retry_after(clock.now) == 180

    clock.now = 1_300.0
    reopened = limiter.check(key=key, limit=1, window_seconds=300)

    assert reopened.allowed is True
    assert reopened.reset_epoch == 1_600.0


def test_keys_are_counted_independently_and_expired_keys_are_purged() -> None:
    clock = TickingClock()
    limiter = FixedWindowRateLimiter(clock=clock)

    limiter.check(key="health:a", limit=1, window_seconds=60)
    other = limiter.check(key="health:b", limit=1, window_seconds=60)
    assert other.allowed is True
    assert len(limiter) == 2

    clock.now += 61
    limiter.check(key="health:c", limit=1, window_seconds=60)

    assert len(limiter) == 1


def test_reset_forgets_every_window() -> None:
    limiter = FixedWindowRateLimiter(clock=TickingClock())
    limiter.check(key="general:a", limit=1, window_seconds=60)
    limiter.check(key="general:a", limit=1, window_seconds=60)

    limiter.reset()

    assert len(limiter) == 0
    assert limiter.check(key="general:a", limit=1, window_seconds=60).allowed is True


def test_retry_after_is_never_below_one_second() -> None:
    limiter = FixedWindowRateLimiter(clock=TickingClock())
    decision = limiter.check(key="support:x", limit=0, window_seconds=60)

    assert decision.allowed is False
    assert decision.retry_after(decision.reset_epoch + 5) == 1
