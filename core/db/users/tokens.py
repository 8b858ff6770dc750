"""
Single-use token ledger shared by password reset and email verification.
"""
from __future__ import annotations

import secrets
from datetime import datetime, timedelta
from typing import Dict, Optional

from core.clock import from_iso, to_iso, utcnow
from core.db.base import get_conn

_TABLES = ("password_reset_tokens", "email_verification_tokens")


class TokenLedger:
    """
    Opaque 256-bit tokens with an absolute expiry, stored in one table.
    Expired tokens are deleted the moment they are looked up.
    """

    def __init__(self, table: str, ttl: timedelta, replace_existing: bool = False):
        if table not in _TABLES:
            raise ValueError(f"unknown token table: {table}")
        self.table = table
        self.ttl = ttl
        self.replace_existing = replace_existing

    def issue(self, user_id: int, now: Optional[datetime] = None, ttl: Optional[timedelta] = None) -> str:
        token = secrets.token_hex(32)
        now = now or utcnow()
        expires = now + (ttl or self.ttl)

        with get_conn() as conn:
            cur = conn.cursor()
            if self.replace_existing:
                cur.execute(f"DELETE FROM {self.table} WHERE user_id = ?", (user_id,))
            cur.execute(
                f"""
                INSERT INTO {self.table} (token, user_id, created_at, expires_at)
                VALUES (?, ?, ?, ?)
                """,
                (token, user_id, to_iso(now), to_iso(expires)),
            )
        return token

    def resolve(self, token: str, now: Optional[datetime] = None) -> Optional[Dict]:
        """Return the token row if valid, otherwise None."""
        if not token:
            return None

        with get_conn() as conn:
            cur = conn.cursor()
            cur.execute(
                f"SELECT token, user_id, created_at, expires_at FROM {self.table} WHERE token = ?",
                (token,),
            )
            row = cur.fetchone()

        if not row:
            return None

        try:
            expires_at = from_iso(row["expires_at"])
        except ValueError:
            self.consume(token)
            return None

        if expires_at < (now or utcnow()):
            self.consume(token)
            return None

        row["expires_at"] = expires_at
        return row

    def consume(self, token: str) -> bool:
        """Delete the token. True only for the call that actually removed it."""
        if not token:
            return False
        with get_conn() as conn:
            cur = conn.cursor()
            cur.execute(f"DELETE FROM {self.table} WHERE token = ?", (token,))
            return cur.rowcount > 0

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        with get_conn() as conn:
            cur = conn.cursor()
            cur.execute(f"DELETE FROM {self.table} WHERE expires_at < ?", (to_iso(now or utcnow()),))
            return cur.rowcount


__all__ = ["TokenLedger"]
