"""
Login Rate Limiting using a Fixed Window Counter

This module provides a thread-safe, per-client attempt counter guarding the
admin login entry point. Each client gets a window of `window_seconds` in which
at most `max_attempts` attempts are admitted.
"""

import math
import time

from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Optional, Protocol

import logfire

from fastapi import Request


@dataclass
class RateLimitEntry:
    """Attempt counter for a single client."""

    attempt_count: int
    window_start: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of an admission check.

    `retry_after_seconds` is only set when the attempt was denied.
    """

    admitted: bool
    attempt_count: int
    retry_after_seconds: Optional[int] = None


class RateLimitStore(Protocol):
    """Interface for anything able to admit or deny login attempts."""

    def admit(self, client_key: str, now: Optional[float] = None) -> RateLimitDecision:
        ...


class FixedWindowRateLimiter:
    """
    Fixed window counter for rate limiting.

    A client's window opens on its first attempt and is reset only once more
    than `window_seconds` have elapsed since it opened. Denied attempts are not
    counted.
    """

    def __init__(
        self,
        max_attempts: int = 15,
        window_seconds: float = 900,
        clock: Callable[[], float] = time.time,
        cleanup_interval: Optional[float] = 3600,
    ):
        """
        Initialize the rate limiter.

        Args:
            max_attempts: Maximum attempts admitted per window (default: 15)
            window_seconds: Window length in seconds (default: 900)
            clock: Source of the current time in seconds (default: time.time)
            cleanup_interval: Interval in seconds between sweeps of stale entries,
                None to disable sweeping (default: 3600)
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.cleanup_interval = cleanup_interval
        self._clock = clock

        # Storage for client entries
        self.entries: Dict[str, RateLimitEntry] = {}
        self.lock = Lock()
        self.last_cleanup = clock()

        logfire.info(
            f"Login rate limiter initialized: {max_attempts} attempts per {window_seconds}s window"
        )

    def admit(self, client_key: str, now: Optional[float] = None) -> RateLimitDecision:
        """
        Record an attempt for `client_key` and decide whether to admit it.

        Args:
            client_key: Client identifier (typically an IP address)
            now: Current time in seconds (default: read from the clock)

        Returns:
            RateLimitDecision describing the outcome
        """
        if now is None:
            now = self._clock()

        self._maybe_sweep(now)

        with self.lock:
            entry = self.entries.get(client_key)
            if entry is None:
                entry = RateLimitEntry(attempt_count=0, window_start=now)
                self.entries[client_key] = entry

            # Reset the counter once the window has passed
            if now - entry.window_start > self.window_seconds:
                entry.attempt_count = 0
                entry.window_start = now

            if entry.attempt_count >= self.max_attempts:
                retry_after = math.ceil(entry.window_start + self.window_seconds - now)
                return RateLimitDecision(
                    admitted=False,
                    attempt_count=entry.attempt_count,
                    retry_after_seconds=max(retry_after, 1),
                )

            entry.attempt_count += 1
            return RateLimitDecision(admitted=True, attempt_count=entry.attempt_count)

    def sweep(self, now: Optional[float] = None) -> int:
        """
        Remove entries whose window has already elapsed.

        Dropping such an entry is equivalent to the reset `admit` would perform
        on the next attempt, so this only reclaims memory.

        Returns:
            Number of entries removed
        """
        if now is None:
            now = self._clock()

        with self.lock:
            to_remove = [
                client_key
                for client_key, entry in self.entries.items()
                if now - entry.window_start > self.window_seconds
            ]
            for client_key in to_remove:
                del self.entries[client_key]
            self.last_cleanup = now

        if to_remove:
            logfire.info(f"Cleaned up {len(to_remove)} expired rate limit entries")

        return len(to_remove)

    def _maybe_sweep(self, now: float) -> None:
        if self.cleanup_interval is None:
            return
        if now - self.last_cleanup < self.cleanup_interval:
            return
        self.sweep(now)


def get_client_identifier(request: Request) -> str:
    """
    Extract client identifier from the request.

    Uses the peer address only. Behind a trusted proxy, uvicorn's
    ProxyHeadersMiddleware has already replaced it with the forwarded client
    address; X-Forwarded-For sent by anyone else is ignored.
    """
    return request.client.host if request.client else "unknown"
