"""
Request rate limiting and login brute-force protection.

Both helpers keep their bookkeeping in memory, keyed by an identifier
such as a client address or an e-mail. Time comes from an injectable
``clock`` so the windows can be exercised without waiting. Expired
entries are swept every ``CLEANUP_INTERVAL`` seconds, or on demand with
``cleanup()``.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from .errors import InvalidInput

security_logger = logging.getLogger("storefront.security.events")

PERIODS = {"minute": 60, "hour": 3600, "day": 86400}

DEFAULT_LIMITS = {"minute": 60, "hour": 1000, "day": 10000}

# Seconds between two automatic sweeps of expired entries
CLEANUP_INTERVAL = 300


def period_duration(period: str) -> int:
    try:
        return PERIODS[period]
    except KeyError:
        raise InvalidInput(f"Unknown rate limit period: {period!r}") from None


def log_security_event(event: str, identifier: str, **data) -> None:
    security_logger.warning("%s identifier=%s %s", event, identifier, data)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    period: Optional[str] = None
    retry_after: int = 0


class RateLimiter:
    """Sliding-window request counter.

    ``limits`` maps a period name (``minute``, ``hour``, ``day``) to the
    maximum number of requests accepted within that window.
    """

    def __init__(self, limits: Optional[Mapping[str, int]] = None, clock: Callable[[], float] = time.time):
        self.limits = dict(limits or DEFAULT_LIMITS)
        for period in self.limits:
            period_duration(period)
        self._clock = clock
        self._hits: Dict[str, Dict[str, List[float]]] = {}
        self._lock = threading.Lock()
        self._last_cleanup = clock()

    def check(self, identifier: str) -> RateLimitDecision:
        """Count a request from ``identifier`` unless one of the limits is reached.

        Refused requests are not counted.
        """
        now = self._clock()
        with self._lock:
            if now - self._last_cleanup >= CLEANUP_INTERVAL:
                self._purge(now)
            hits = self._hits.setdefault(identifier, {})
            for period, limit in self.limits.items():
                window = period_duration(period)
                recent = [t for t in hits.get(period, []) if now - t < window]
                hits[period] = recent
                if len(recent) >= limit:
                    retry_after = max(1, math.ceil(window - (now - recent[0])))
                    log_security_event(
                        "rate_limit_exceeded", identifier, period=period, limit=limit, requests=len(recent)
                    )
                    return RateLimitDecision(False, period, retry_after)
            for period in self.limits:
                hits[period].append(now)
        return RateLimitDecision(True)

    def cleanup(self) -> int:
        """Forget identifiers with no request left in any window.

        Returns the number of identifiers dropped.
        """
        with self._lock:
            return self._purge(self._clock())

    def _purge(self, now: float) -> int:
        dropped = 0
        for identifier in list(self._hits):
            hits = self._hits[identifier]
            for period in hits:
                window = period_duration(period)
                hits[period] = [t for t in hits[period] if now - t < window]
            if not any(hits.values()):
                del self._hits[identifier]
                dropped += 1
        self._last_cleanup = now
        return dropped

    def reset(self, identifier: Optional[str] = None) -> None:
        with self._lock:
            if identifier is None:
                self._hits.clear()
            else:
                self._hits.pop(identifier, None)


@dataclass(frozen=True)
class BlockStatus:
    blocked: bool
    remaining_attempts: int
    unlock_at: Optional[float] = None


class LoginGuard:
    """Block an identifier after repeated failed logins.

    An identifier is blocked once ``max_attempts`` failures happened
    within ``window`` seconds, until ``lockout`` seconds after the last
    failure. Successful logins are recorded but do not erase failures.
    """

    # Attempts older than this are dropped from memory
    RETENTION = 86400
    # Attempts remembered per identifier
    MAX_KEPT = 100

    def __init__(
        self,
        max_attempts: int = 5,
        window: int = 900,
        lockout: int = 3600,
        clock: Callable[[], float] = time.time,
    ):
        self.max_attempts = max_attempts
        self.window = window
        self.lockout = lockout
        self._clock = clock
        self._attempts: Dict[str, List[Tuple[float, bool]]] = {}
        self._lock = threading.Lock()
        self._last_cleanup = clock()

    def record_attempt(self, identifier: str, success: bool) -> None:
        now = self._clock()
        with self._lock:
            if now - self._last_cleanup >= CLEANUP_INTERVAL:
                self._purge(now)
            attempts = [a for a in self._attempts.get(identifier, []) if now - a[0] < self.RETENTION]
            attempts.append((now, success))
            self._attempts[identifier] = attempts[-self.MAX_KEPT :]
        if not success:
            log_security_event("login_failed", identifier)

    def is_blocked(self, identifier: str) -> BlockStatus:
        now = self._clock()
        with self._lock:
            attempts = list(self._attempts.get(identifier, []))
        failures = [t for t, ok in attempts if not ok and now - t < self.window]
        if len(failures) >= self.max_attempts:
            unlock_at = failures[-1] + self.lockout
            if now < unlock_at:
                log_security_event("login_blocked", identifier, failures=len(failures))
                return BlockStatus(True, 0, unlock_at)
        return BlockStatus(False, max(0, self.max_attempts - len(failures)))

    def cleanup(self) -> int:
        """Drop attempts older than a day and the identifiers left without any."""
        with self._lock:
            return self._purge(self._clock())

    def _purge(self, now: float) -> int:
        dropped = 0
        for identifier in list(self._attempts):
            attempts = [a for a in self._attempts[identifier] if now - a[0] < self.RETENTION]
            if attempts:
                self._attempts[identifier] = attempts
            else:
                del self._attempts[identifier]
                dropped += 1
        self._last_cleanup = now
        return dropped
