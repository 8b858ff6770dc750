"""
Append-only login attempt log.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from core.clock import to_iso, utcnow
from core.db.base import get_conn


def record_login_attempt(
    email: str,
    ip_address: str,
    success: bool,
    user_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> None:
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO login_attempts (email, ip_address, success, user_id, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (email, ip_address, 1 if success else 0, user_id, to_iso(now or utcnow())),
        )


def count_failed_attempts(email: str, ip_address: str, since: datetime) -> Dict[str, int]:
    """Failed attempts since `since`, counted per email and per IP."""
    since_iso = to_iso(since)
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            "SELECT COUNT(*) AS n FROM login_attempts WHERE email = ? AND success = 0 AND created_at >= ?",
            (email, since_iso),
        )
        email_count = int(cur.fetchone()["n"])
        cur.execute(
            "SELECT COUNT(*) AS n FROM login_attempts WHERE ip_address = ? AND success = 0 AND created_at >= ?",
            (ip_address, since_iso),
        )
        ip_count = int(cur.fetchone()["n"])
    return {"email": email_count, "ip": ip_count}


def delete_login_attempts_before(cutoff: datetime) -> int:
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute("DELETE FROM login_attempts WHERE created_at < ?", (to_iso(cutoff),))
        return cur.rowcount


__all__ = ["record_login_attempt", "count_failed_attempts", "delete_login_attempts_before"]
