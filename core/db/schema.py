"""
Schema helpers for Postgres and SQLite.
"""
from __future__ import annotations

from core.db.base import get_conn


def _serial(dialect: str) -> str:
    if dialect == "postgres":
        return "SERIAL PRIMARY KEY"
    return "INTEGER PRIMARY KEY AUTOINCREMENT"


def init_db() -> None:
    """Create the auth tables if they don't exist."""
    with get_conn() as conn:
        cur = conn.cursor()
        serial = _serial(conn.dialect)

        cur.execute(
            f"""
            CREATE TABLE IF NOT EXISTS users(
                id {serial},
                email TEXT NOT NULL UNIQUE,
                password_hash TEXT NOT NULL,
                email_verified INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS sessions(
                id TEXT PRIMARY KEY,
                user_id INTEGER NOT NULL,
                created_at TEXT NOT NULL,
                expires_at TEXT NOT NULL,
                FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS two_factor_auth(
                user_id INTEGER PRIMARY KEY,
                secret TEXT NOT NULL,
                enabled INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
            )
            """
        )
        for table in ("password_reset_tokens", "email_verification_tokens"):
            cur.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {table}(
                    token TEXT PRIMARY KEY,
                    user_id INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    expires_at TEXT NOT NULL,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                )
                """
            )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS rate_limits(
                key TEXT PRIMARY KEY,
                count INTEGER NOT NULL,
                expires_at BIGINT NOT NULL
            )
            """
        )
        cur.execute(
            f"""
            CREATE TABLE IF NOT EXISTS login_attempts(
                id {serial},
                email TEXT NOT NULL,
                ip_address TEXT NOT NULL,
                success INTEGER NOT NULL,
                user_id INTEGER,
                created_at TEXT NOT NULL
            )
            """
        )
        cur.execute("CREATE INDEX IF NOT EXISTS idx_sessions_user ON sessions(user_id)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_login_attempts_email ON login_attempts(email, created_at)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_login_attempts_ip ON login_attempts(ip_address, created_at)")


__all__ = ["init_db"]
