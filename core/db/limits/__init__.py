"""
Abuse-control storage: rate-limit counters and the login attempt log.
"""
from core.db.limits.rate_limit_store import (
    delete_expired_rate_limits,
    get_rate_limit,
    increment_rate_limit,
)
from core.db.limits.login_attempts import (
    count_failed_attempts,
    delete_login_attempts_before,
    record_login_attempt,
)

__all__ = [
    "get_rate_limit",
    "increment_rate_limit",
    "delete_expired_rate_limits",
    "record_login_attempt",
    "count_failed_attempts",
    "delete_login_attempts_before",
]
