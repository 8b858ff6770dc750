"""
Password reset token storage.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, Optional

from core.clock import to_iso, utcnow
from core.db.base import get_conn
from core.db.users.tokens import TokenLedger

RESET_TOKEN_MINUTES = 60

reset_tokens = TokenLedger(
    "password_reset_tokens",
    ttl=timedelta(minutes=RESET_TOKEN_MINUTES),
    # Invalidate any existing tokens for this user
    replace_existing=True,
)


def create_password_reset_token(user_id: int, now: Optional[datetime] = None) -> str:
    return reset_tokens.issue(user_id, now=now)


def get_password_reset_token(token: str, now: Optional[datetime] = None) -> Optional[Dict]:
    return reset_tokens.resolve(token, now=now)


def delete_password_reset_token(token: str) -> bool:
    return reset_tokens.consume(token)


def reset_password_with_token(token: str, password_hash: str, now: Optional[datetime] = None) -> Optional[int]:
    """
    Consume a reset token and store the new hash in one transaction.
    Returns the user id, or None when the token was already gone or expired.
    """
    if not token:
        return None

    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            "DELETE FROM password_reset_tokens WHERE token = ? AND expires_at >= ? RETURNING user_id",
            (token, to_iso(now or utcnow())),
        )
        rows = cur.fetchall()
        if not rows:
            return None
        user_id = int(rows[0]["user_id"])
        cur.execute("UPDATE users SET password_hash = ? WHERE id = ?", (password_hash, user_id))
    return user_id


__all__ = [
    "RESET_TOKEN_MINUTES",
    "reset_tokens",
    "create_password_reset_token",
    "get_password_reset_token",
    "delete_password_reset_token",
    "reset_password_with_token",
]
