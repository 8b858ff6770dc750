"""
Low-level database helpers (Postgres in production, SQLite for tests/dev).
"""
from __future__ import annotations

import os
import sqlite3
from typing import Iterable

import psycopg
from psycopg.rows import dict_row

from core.config import DB_TIMEOUT_SECONDS


def _resolve_database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL must be set")
    if url.startswith(("postgres://", "postgresql://", "sqlite:///")):
        return url
    raise RuntimeError("DATABASE_URL must start with postgres://, postgresql:// or sqlite:///")


def _convert_qmarks(sql: str) -> str:
    if "?" not in sql:
        return sql
    return sql.replace("?", "%s")


class _CursorWrapper:
    def __init__(self, cursor, dialect: str):
        self._cursor = cursor
        self._dialect = dialect

    def execute(self, sql: str, params: Iterable | None = None):
        if self._dialect == "postgres":
            sql = _convert_qmarks(sql)
        if params is None:
            return self._cursor.execute(sql)
        return self._cursor.execute(sql, params)

    def executemany(self, sql: str, seq_of_params: Iterable):
        if self._dialect == "postgres":
            sql = _convert_qmarks(sql)
        return self._cursor.executemany(sql, seq_of_params)

    def fetchone(self):
        row = self._cursor.fetchone()
        return dict(row) if row is not None else None

    def fetchall(self):
        return [dict(r) for r in self._cursor.fetchall()]

    @property
    def rowcount(self):
        return getattr(self._cursor, "rowcount", 0)


class _ConnWrapper:
    def __init__(self, conn, dialect: str):
        self._conn = conn
        self.dialect = dialect

    def cursor(self):
        return _CursorWrapper(self._conn.cursor(), self.dialect)

    def commit(self):
        return self._conn.commit()

    def rollback(self):
        return self._conn.rollback()

    def close(self):
        return self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            self.close()
        return False


def get_conn():
    """
    Return a DB connection for DATABASE_URL.
    Every connection is bounded by DB_TIMEOUT_SECONDS.
    """
    url = _resolve_database_url()
    if url.startswith("sqlite:///"):
        conn = sqlite3.connect(url[len("sqlite:///"):], timeout=DB_TIMEOUT_SECONDS)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return _ConnWrapper(conn, "sqlite")

    conn = psycopg.connect(
        url,
        row_factory=dict_row,
        connect_timeout=DB_TIMEOUT_SECONDS,
        options=f"-c statement_timeout={DB_TIMEOUT_SECONDS * 1000}",
    )
    return _ConnWrapper(conn, "postgres")


def is_unique_violation(exc: Exception) -> bool:
    if isinstance(exc, psycopg.errors.UniqueViolation):
        return True
    return isinstance(exc, sqlite3.IntegrityError) and "UNIQUE" in str(exc)


__all__ = ["get_conn", "is_unique_violation", "DB_TIMEOUT_SECONDS"]
