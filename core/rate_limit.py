"""
Rate limiting and lockout for authentication-sensitive endpoints.

Two independent mechanisms run on every login:

* a fixed-window counter per key (``login:ip:<ip>``, ``login:email:<email>``, ...)
  held durably in ``rate_limits`` and mirrored in a process-local cache, and
* a coarser lockout computed from the append-only ``login_attempts`` log.

The durable store is the source of truth. The cache only short-circuits
"window still open and already over the limit", and never outlives the
window it copied.

Counting contract:

``check``      peek only, never mutates the counter.
``increment``  count one attempt (opens a fresh window when none is active).
``consume``    count this attempt and report whether it fit in the budget.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from core.clock import to_epoch_ms, utcnow
from core.config import (
    LOCKOUT_EMAIL_THRESHOLD,
    LOCKOUT_IP_THRESHOLD,
    LOCKOUT_LOOKBACK_MS,
    RATE_LIMIT_FAIL_CLOSED,
    RateLimitConfig,
)
from core.database import (
    count_failed_attempts,
    delete_expired_rate_limits,
    get_rate_limit,
    increment_rate_limit,
    record_login_attempt,
)

log = logging.getLogger(__name__)

EMAIL_LOCKED_REASON = "Too many failed login attempts"
IP_LOCKED_REASON = "IP address blocked due to suspicious activity"


def login_ip_key(ip: str) -> str:
    return f"login:ip:{ip}"


def login_email_key(email: str) -> str:
    return f"login:email:{email}"


def two_factor_key(user_id, ip: str) -> str:
    return f"2fa:{user_id}:{ip}"


def password_reset_key(ip: str) -> str:
    return f"pwdreset:{ip}"


def verify_resend_key(ip: str) -> str:
    return f"verify_resend:{ip}"


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_time: int  # epoch ms


@dataclass(frozen=True)
class LockStatus:
    locked: bool
    reason: Optional[str] = None


@dataclass
class _CacheEntry:
    count: int
    reset_time: int


class RateLimiter:
    def __init__(
        self,
        clock: Callable[[], datetime] = utcnow,
        fail_closed: bool = RATE_LIMIT_FAIL_CLOSED,
    ):
        self.clock = clock
        self.fail_closed = fail_closed
        self._cache: Dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()

    def _now_ms(self) -> int:
        return to_epoch_ms(self.clock())

    def _remember(self, key: str, count: int, reset_time: int) -> None:
        with self._lock:
            self._cache[key] = _CacheEntry(count=count, reset_time=reset_time)

    def _forget(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def _store_unavailable(self, key: str, config: RateLimitConfig, now_ms: int) -> RateLimitResult:
        # Allows unless RATE_LIMIT_FAIL_CLOSED is set.
        log.warning("Rate-limit store unavailable", extra={"key": key, "fail_closed": self.fail_closed})
        if self.fail_closed:
            return RateLimitResult(allowed=False, remaining=0, reset_time=now_ms + config.window_ms)
        return RateLimitResult(allowed=True, remaining=config.max_attempts, reset_time=now_ms + config.window_ms)

    def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        """Would another attempt on key be allowed right now? Does not count anything."""
        now_ms = self._now_ms()
        denied = self._cached_denial(key, config, now_ms)
        if denied:
            return denied

        try:
            row = get_rate_limit(key)
        except Exception:
            log.exception("Rate-limit lookup failed", extra={"key": key})
            return self._store_unavailable(key, config, now_ms)

        if row and int(row["expires_at"]) > now_ms:
            count = int(row["count"])
            reset_time = int(row["expires_at"])
            self._remember(key, count, reset_time)
            return RateLimitResult(
                allowed=count < config.max_attempts,
                remaining=max(0, config.max_attempts - count),
                reset_time=reset_time,
            )

        self._forget(key)
        return RateLimitResult(allowed=True, remaining=config.max_attempts, reset_time=now_ms + config.window_ms)

    def _cached_denial(self, key: str, config: RateLimitConfig, now_ms: int) -> Optional[RateLimitResult]:
        with self._lock:
            cached = self._cache.get(key)
        if cached and cached.reset_time > now_ms and cached.count >= config.max_attempts:
            return RateLimitResult(allowed=False, remaining=0, reset_time=cached.reset_time)
        return None

    def _count(self, key: str, config: RateLimitConfig, now_ms: int) -> Optional[_CacheEntry]:
        try:
            row = increment_rate_limit(key, config.window_ms, now_ms)
        except Exception:
            log.exception("Rate-limit increment failed", extra={"key": key})
            return None
        entry = _CacheEntry(count=int(row["count"]), reset_time=int(row["expires_at"]))
        self._remember(key, entry.count, entry.reset_time)
        return entry

    def increment(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        """Count one attempt. The result describes whether a further attempt is allowed."""
        now_ms = self._now_ms()
        entry = self._count(key, config, now_ms)
        if entry is None:
            return self._store_unavailable(key, config, now_ms)
        return RateLimitResult(
            allowed=entry.count < config.max_attempts,
            remaining=max(0, config.max_attempts - entry.count),
            reset_time=entry.reset_time,
        )

    def consume(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        """Count this attempt; allowed iff it was within max_attempts for the window."""
        now_ms = self._now_ms()
        denied = self._cached_denial(key, config, now_ms)
        if denied:
            return denied

        entry = self._count(key, config, now_ms)
        if entry is None:
            return self._store_unavailable(key, config, now_ms)
        return RateLimitResult(
            allowed=entry.count <= config.max_attempts,
            remaining=max(0, config.max_attempts - entry.count),
            reset_time=entry.reset_time,
        )

    def record_attempt(self, email: str, ip: str, success: bool, user_id: Optional[int] = None) -> None:
        record_login_attempt(email, ip, success, user_id=user_id, now=self.clock())

    def is_locked(self, email: str, ip: str) -> LockStatus:
        since = self.clock() - timedelta(milliseconds=LOCKOUT_LOOKBACK_MS)
        try:
            counts = count_failed_attempts(email, ip, since)
        except Exception:
            log.exception("Lockout lookup failed", extra={"email": email, "ip": ip})
            if self.fail_closed:
                return LockStatus(locked=True, reason="Account temporarily locked")
            return LockStatus(locked=False)

        if counts["email"] >= LOCKOUT_EMAIL_THRESHOLD:
            return LockStatus(locked=True, reason=EMAIL_LOCKED_REASON)
        if counts["ip"] >= LOCKOUT_IP_THRESHOLD:
            return LockStatus(locked=True, reason=IP_LOCKED_REASON)
        return LockStatus(locked=False)

    def purge_cache(self) -> int:
        """Drop cache entries whose window has ended."""
        now_ms = self._now_ms()
        with self._lock:
            stale = [k for k, entry in self._cache.items() if entry.reset_time <= now_ms]
            for k in stale:
                del self._cache[k]
        return len(stale)

    def purge_expired(self) -> int:
        """Delete lapsed durable counters and stale cache entries."""
        removed = delete_expired_rate_limits(self._now_ms())
        self.purge_cache()
        return removed

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()


__all__ = [
    "RateLimitResult",
    "LockStatus",
    "RateLimiter",
    "EMAIL_LOCKED_REASON",
    "IP_LOCKED_REASON",
    "login_ip_key",
    "login_email_key",
    "two_factor_key",
    "password_reset_key",
    "verify_resend_key",
]
