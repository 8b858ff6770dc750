"""
Time helpers. All stored timestamps are naive UTC.
"""
from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_iso(value: datetime) -> str:
    # Fixed-width so stored values compare correctly as text.
    return value.isoformat(timespec="microseconds")


def from_iso(value: str) -> datetime:
    return datetime.fromisoformat(value)


def to_epoch(value: datetime) -> float:
    return value.replace(tzinfo=timezone.utc).timestamp()


def to_epoch_ms(value: datetime) -> int:
    return int(to_epoch(value) * 1000)


__all__ = ["utcnow", "to_iso", "from_iso", "to_epoch", "to_epoch_ms"]
