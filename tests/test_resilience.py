import pytest

from graphquery.resilience import (
    CircuitBreaker,
    RateLimiter,
    sanitize_input,
    should_compress_response,
)


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------- sanitize


def test_sanitize_removes_markup():
    assert sanitize_input("<script>alert('x')</script>") == "scriptalert(x)script"


@pytest.mark.parametrize("text", ["a", "node_1", "hello world", "a-b 3", "x\\y"])
def test_sanitize_keeps_safe_text(text):
    assert sanitize_input(text) == text


@pytest.mark.parametrize("char", list("<>&'\"/"))
def test_sanitize_strips_each_dangerous_char(char):
    assert sanitize_input(f"a{char}b") == "ab"


def test_sanitize_is_idempotent():
    once = sanitize_input("a</b>&\"c'/d")
    assert sanitize_input(once) == once
    assert not any(c in once for c in "<>&'\"/")


# ---------------------------------------------------------------- compression


def test_compress_large_text():
    assert should_compress_response(2048, "text/plain") is True


def test_compress_large_json():
    assert should_compress_response(2048, "application/json") is True


def test_no_compress_at_threshold():
    assert should_compress_response(1024, "text/plain") is False


def test_no_compress_binary():
    assert should_compress_response(4096, "application/octet-stream") is False


# ---------------------------------------------------------------- circuit breaker


def test_breaker_starts_closed():
    assert CircuitBreaker(clock=FakeClock()).is_open() is False


def test_breaker_opens_at_threshold():
    breaker = CircuitBreaker(threshold=5, reset_timeout=30, clock=FakeClock())
    for _ in range(4):
        breaker.record_failure()
    assert breaker.is_open() is False
    breaker.record_failure()
    assert breaker.is_open() is True


def test_breaker_default_threshold_is_five():
    breaker = CircuitBreaker(clock=FakeClock())
    for _ in range(4):
        breaker.record_failure()
    assert not breaker.is_open()
    breaker.record_failure()
    assert breaker.is_open()


def test_breaker_closes_after_timeout():
    clock = FakeClock()
    breaker = CircuitBreaker(threshold=1, reset_timeout=30, clock=clock)
    breaker.record_failure()
    clock.advance(30)
    assert breaker.is_open() is True
    clock.advance(0.5)
    assert breaker.is_open() is False


def test_breaker_success_resets():
    clock = FakeClock()
    breaker = CircuitBreaker(threshold=2, reset_timeout=30, clock=clock)
    breaker.record_failure()
    breaker.record_failure()
    assert breaker.is_open()
    breaker.record_success()
    assert not breaker.is_open()
    breaker.record_failure()
    assert not breaker.is_open()


def test_breaker_reopens_on_failure_after_timeout():
    clock = FakeClock()
    breaker = CircuitBreaker(threshold=3, reset_timeout=10, clock=clock)
    for _ in range(3):
        breaker.record_failure()
    clock.advance(11)
    assert not breaker.is_open()
    breaker.record_failure()
    assert breaker.is_open()


# ---------------------------------------------------------------- rate limiter


def test_limiter_allows_up_to_limit():
    limiter = RateLimiter(limit=3, window=60, clock=FakeClock())
    results = [limiter.hit("10.0.0.1") for _ in range(4)]
    assert results == [True, True, True, False]


def test_limiter_clients_are_independent():
    limiter = RateLimiter(limit=1, window=60, clock=FakeClock())
    assert limiter.hit("a")
    assert not limiter.hit("a")
    assert limiter.hit("b")


def test_limiter_resets_after_window():
    clock = FakeClock()
    limiter = RateLimiter(limit=1, window=60, clock=clock)
    assert limiter.hit("c")
    assert not limiter.hit("c")
    clock.advance(60)
    assert not limiter.hit("c")
    clock.advance(1)
    assert limiter.hit("c")


def test_limiter_default_limit():
    limiter = RateLimiter(clock=FakeClock())
    allowed = [limiter.hit("d") for _ in range(limiter.limit + 1)]
    assert allowed.count(True) == limiter.limit
    assert allowed[-1] is False


def test_seconds_until_reset_full_window():
    limiter = RateLimiter(limit=5, window=60, clock=FakeClock())
    limiter.hit("e")
    assert limiter.seconds_until_reset("e") == 60


def test_seconds_until_reset_decreases():
    clock = FakeClock()
    limiter = RateLimiter(limit=5, window=60, clock=clock)
    limiter.hit("f")
    first = limiter.seconds_until_reset("f")
    clock.advance(20)
    second = limiter.seconds_until_reset("f")
    assert 0 <= second < first <= 60


def test_seconds_until_reset_unknown_client():
    limiter = RateLimiter(clock=FakeClock())
    assert limiter.seconds_until_reset("nobody") == 0