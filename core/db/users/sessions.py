"""
Session storage helpers.
"""
from __future__ import annotations

import secrets
from datetime import datetime, timedelta
from typing import Dict, Optional

from core.clock import from_iso, to_iso, utcnow
from core.config import SESSION_DAYS
from core.db.base import get_conn

SESSION_LIFETIME = timedelta(days=SESSION_DAYS)


def create_session(user_id: int, now: Optional[datetime] = None) -> str:
    """Create a new login session for the given user_id and return the session id."""
    session_id = secrets.token_urlsafe(32)
    now = now or utcnow()
    expires = now + SESSION_LIFETIME

    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO sessions (id, user_id, created_at, expires_at)
            VALUES (?, ?, ?, ?)
            """,
            (session_id, user_id, to_iso(now), to_iso(expires)),
        )
    return session_id


def delete_session(session_id: str) -> None:
    """Remove a session (logout). Unknown ids are ignored."""
    if not session_id:
        return
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute("DELETE FROM sessions WHERE id = ?", (session_id,))


def get_session(session_id: str, now: Optional[datetime] = None) -> Optional[Dict]:
    """
    Look up a session by id.
    - Returns None if it does not exist or has expired.
    - If expired, it is removed from the DB.
    """
    if not session_id:
        return None

    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            "SELECT id, user_id, created_at, expires_at FROM sessions WHERE id = ?",
            (session_id,),
        )
        row = cur.fetchone()

    if not row:
        return None

    try:
        expires_at = from_iso(row["expires_at"])
    except ValueError:
        delete_session(session_id)
        return None

    if expires_at <= (now or utcnow()):
        delete_session(session_id)
        return None

    row["expires_at"] = expires_at
    return row


def purge_expired_sessions(now: Optional[datetime] = None) -> int:
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute("DELETE FROM sessions WHERE expires_at <= ?", (to_iso(now or utcnow()),))
        return cur.rowcount


__all__ = [
    "SESSION_LIFETIME",
    "create_session",
    "delete_session",
    "get_session",
    "purge_expired_sessions",
]
