"""
Durable rate-limit counters. Windows are stored as epoch milliseconds.
"""
from __future__ import annotations

from typing import Dict, Optional

from core.db.base import get_conn


def get_rate_limit(key: str) -> Optional[Dict]:
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute("SELECT key, count, expires_at FROM rate_limits WHERE key = ?", (key,))
        return cur.fetchone()


def increment_rate_limit(key: str, window_ms: int, now_ms: int) -> Dict:
    """
    Atomically add one attempt to key's counter.
    A missing or lapsed window restarts at count 1 expiring at now_ms + window_ms;
    an active window keeps its expiry.
    """
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO rate_limits (key, count, expires_at)
            VALUES (?, 1, ?)
            ON CONFLICT (key) DO UPDATE SET
                count = CASE WHEN rate_limits.expires_at <= ? THEN 1 ELSE rate_limits.count + 1 END,
                expires_at = CASE WHEN rate_limits.expires_at <= ? THEN excluded.expires_at
                                  ELSE rate_limits.expires_at END
            RETURNING key, count, expires_at
            """,
            (key, now_ms + window_ms, now_ms, now_ms),
        )
        return cur.fetchall()[0]


def delete_expired_rate_limits(now_ms: int) -> int:
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute("DELETE FROM rate_limits WHERE expires_at <= ?", (now_ms,))
        return cur.rowcount


__all__ = ["get_rate_limit", "increment_rate_limit", "delete_expired_rate_limits"]
