"""Request hygiene helpers: input sanitising, rate limiting and circuit breaking."""

from __future__ import annotations

import re
import threading
import time
from dataclasses import dataclass
from typing import Callable

Clock = Callable[[], float]

_DANGEROUS_CHARS = re.compile(r"""[<>&'"/]""")
_COMPRESSION_THRESHOLD = 1024


def sanitize_input(text: str) -> str:
    """Remove characters that could be used for markup or path injection."""
    return _DANGEROUS_CHARS.sub("", text)


def should_compress_response(content_size: int, content_type: str) -> bool:
    """Return True for textual or JSON bodies larger than one kilobyte."""
    return content_size > _COMPRESSION_THRESHOLD and (
        "text/" in content_type or "application/json" in content_type
    )


class CircuitBreaker:
    """Opens after repeated failures and reports closed again once a timeout passes."""

    def __init__(
        self,
        threshold: int = 5,
        reset_timeout: float = 30.0,
        clock: Clock | None = None,
    ) -> None:
        self.threshold = threshold
        self.reset_timeout = reset_timeout
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()
        self._failures = 0
        self._open = False
        self._reset_at = 0.0

    def is_open(self) -> bool:
        """Return True while the circuit is open and its timeout has not passed."""
        with self._lock:
            if not self._open:
                return False
            return self._clock() <= self._reset_at

    def record_success(self) -> None:
        """Close the circuit and forget earlier failures."""
        with self._lock:
            self._failures = 0
            self._open = False

    def record_failure(self) -> None:
        """Count a failure, opening the circuit once the threshold is reached."""
        with self._lock:
            self._failures += 1
            if self._failures >= self.threshold:
                self._open = True
                self._reset_at = self._clock() + self.reset_timeout


@dataclass
class _Window:
    count: int
    started: float


class RateLimiter:
    """Fixed-window request counter keyed by client address."""

    def __init__(
        self,
        limit: int = 10,
        window: float = 60.0,
        clock: Clock | None = None,
    ) -> None:
        self.limit = limit
        self.window = window
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()
        self._clients: dict[str, _Window] = {}

    def hit(self, client: str) -> bool:
        """Record a request from ``client``; return False once it exceeds the limit."""
        with self._lock:
            now = self._clock()
            entry = self._clients.get(client)
            if entry is None or now - entry.started > self.window:
                entry = _Window(count=0, started=now)
                self._clients[client] = entry
            entry.count += 1
            return entry.count <= self.limit

    def seconds_until_reset(self, client: str) -> int:
        """Whole seconds left in ``client``'s current window (0 if none is active)."""
        with self._lock:
            entry = self._clients.get(client)
            if entry is None:
                return 0
            remaining = self.window - (self._clock() - entry.started)
            return max(0, int(remaining))