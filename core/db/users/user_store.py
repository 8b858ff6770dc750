"""
User records: create, lookup, password updates.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from core.clock import to_iso, utcnow
from core.db.base import get_conn, is_unique_violation
from core.db.users.auth import hash_password
from core.errors import Conflict

_USER_COLUMNS = "id, email, password_hash, email_verified, created_at"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _to_user(row: Optional[Dict]) -> Optional[Dict]:
    if not row:
        return None
    data = dict(row)
    data["email_verified"] = bool(data.get("email_verified"))
    return data


def create_user(email: str, raw_password: str, now: Optional[datetime] = None) -> Dict:
    """
    Insert a user with a bcrypt hash of raw_password.
    Raises Conflict when the email is already registered.
    """
    password_hash = hash_password(raw_password)
    created_at = to_iso(now or utcnow())

    try:
        with get_conn() as conn:
            cur = conn.cursor()
            cur.execute(
                f"""
                INSERT INTO users (email, password_hash, email_verified, created_at)
                VALUES (?, ?, 0, ?)
                RETURNING {_USER_COLUMNS}
                """,
                (normalize_email(email), password_hash, created_at),
            )
            rows = cur.fetchall()
            row = rows[0] if rows else None
    except Exception as exc:
        if is_unique_violation(exc):
            raise Conflict("User already exists") from exc
        raise
    return _to_user(row)


def get_user_by_email(email: str) -> Optional[Dict]:
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE email = ?", (normalize_email(email),))
        row = cur.fetchone()
    return _to_user(row)


def get_user_by_id(user_id: int) -> Optional[Dict]:
    """Look up a user by numeric id. Returns dict or None."""
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (user_id,))
        row = cur.fetchone()
    return _to_user(row)


def update_user_password(user_id: int, raw_password: str) -> None:
    # Existing sessions stay valid; see DESIGN.md.
    password_hash = hash_password(raw_password)
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute("UPDATE users SET password_hash=? WHERE id=?", (password_hash, user_id))


def mark_user_email_verified(user_id: int) -> None:
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute("UPDATE users SET email_verified = 1 WHERE id = ?", (user_id,))


__all__ = [
    "normalize_email",
    "create_user",
    "get_user_by_email",
    "get_user_by_id",
    "update_user_password",
    "mark_user_email_verified",
]
