"""
Central configuration: environment-driven constants and rate-limit policy.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class RateLimitConfig:
    max_attempts: int
    window_ms: int


_DEFAULT_LIMITS: Dict[str, RateLimitConfig] = {
    "login_ip": RateLimitConfig(max_attempts=5, window_ms=15 * MINUTE_MS),
    "login_email": RateLimitConfig(max_attempts=5, window_ms=15 * MINUTE_MS),
    "two_factor": RateLimitConfig(max_attempts=3, window_ms=15 * MINUTE_MS),
    "password_reset": RateLimitConfig(max_attempts=3, window_ms=HOUR_MS),
    "verify_email_resend": RateLimitConfig(max_attempts=3, window_ms=HOUR_MS),
}


def load_rate_limits() -> Dict[str, RateLimitConfig]:
    """
    Build the per-action policy table. Each action can be overridden with
    RATE_LIMIT_<ACTION>_MAX and RATE_LIMIT_<ACTION>_WINDOW_MS.
    """
    limits = {}
    for action, default in _DEFAULT_LIMITS.items():
        prefix = f"RATE_LIMIT_{action.upper()}"
        limits[action] = RateLimitConfig(
            max_attempts=_env_int(f"{prefix}_MAX", default.max_attempts),
            window_ms=_env_int(f"{prefix}_WINDOW_MS", default.window_ms),
        )
    return limits


RATE_LIMITS = load_rate_limits()

DB_TIMEOUT_SECONDS = _env_int("DB_TIMEOUT_SECONDS", 5)
SESSION_DAYS = _env_int("SESSION_DAYS", 30)
TOTP_ISSUER = os.getenv("TOTP_ISSUER", "Auth Service")
RATE_LIMIT_FAIL_CLOSED = _env_flag("RATE_LIMIT_FAIL_CLOSED", False)

# Attempt-log lockout thresholds over a fixed lookback.
LOCKOUT_LOOKBACK_MS = 15 * MINUTE_MS
LOCKOUT_EMAIL_THRESHOLD = 10
LOCKOUT_IP_THRESHOLD = 20

CLEANUP_ENABLED = _env_flag("CLEANUP_ENABLED", True)
CLEANUP_INTERVAL_SECONDS = _env_int("CLEANUP_INTERVAL_SECONDS", 3600)
LOGIN_ATTEMPT_RETENTION_HOURS = _env_int("LOGIN_ATTEMPT_RETENTION_HOURS", 24)

# Only set behind a proxy that overwrites these headers.
TRUST_PROXY_HEADERS = _env_flag("TRUST_PROXY_HEADERS", False)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


__all__ = [
    "RateLimitConfig",
    "RATE_LIMITS",
    "load_rate_limits",
    "DB_TIMEOUT_SECONDS",
    "SESSION_DAYS",
    "TOTP_ISSUER",
    "RATE_LIMIT_FAIL_CLOSED",
    "LOCKOUT_LOOKBACK_MS",
    "LOCKOUT_EMAIL_THRESHOLD",
    "LOCKOUT_IP_THRESHOLD",
    "CLEANUP_ENABLED",
    "CLEANUP_INTERVAL_SECONDS",
    "LOGIN_ATTEMPT_RETENTION_HOURS",
    "TRUST_PROXY_HEADERS",
    "LOG_LEVEL",
]
