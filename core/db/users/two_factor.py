"""
Per-user TOTP secrets. A record only authorizes logins once enabled.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from core.clock import to_iso, utcnow
from core.db.base import get_conn


def save_two_factor_secret(user_id: int, secret: str, now: Optional[datetime] = None) -> None:
    """Create or replace the user's secret in the not-yet-enabled state."""
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO two_factor_auth (user_id, secret, enabled, created_at)
            VALUES (?, ?, 0, ?)
            ON CONFLICT (user_id) DO UPDATE
            SET secret = excluded.secret, enabled = 0, created_at = excluded.created_at
            """,
            (user_id, secret, to_iso(now or utcnow())),
        )


def get_two_factor(user_id: int) -> Optional[Dict]:
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            "SELECT user_id, secret, enabled, created_at FROM two_factor_auth WHERE user_id = ?",
            (user_id,),
        )
        row = cur.fetchone()
    if not row:
        return None
    row["enabled"] = bool(row["enabled"])
    return row


def enable_two_factor(user_id: int) -> None:
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute("UPDATE two_factor_auth SET enabled = 1 WHERE user_id = ?", (user_id,))


__all__ = ["save_two_factor_secret", "get_two_factor", "enable_two_factor"]
