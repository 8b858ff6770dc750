import os
from datetime import datetime, timedelta

import pytest

# Cheap hashes and no background task for the test-suite.
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("CLEANUP_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite:///unused.db")

from app.security import limiter
from core.db.schema import init_db


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def _clean_db(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'auth.db'}")
    init_db()
    limiter.clear_cache()
    yield
    limiter.clear_cache()


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 1, 15, 12, 0, 0))
