"""
Password hashing and verification.
"""
from __future__ import annotations

import os
from functools import lru_cache

import bcrypt

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))


def hash_password(raw_password: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(raw_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(raw_password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(raw_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash or over-long input never matches.
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password("dummy-password-for-timing")


def verify_password_against_nothing(raw_password: str) -> bool:
    """
    Burn the same bcrypt cost as a real check when no user matched,
    so "unknown email" and "wrong password" take comparable time.
    """
    verify_password(raw_password, _dummy_hash())
    return False


__all__ = ["hash_password", "verify_password", "verify_password_against_nothing", "BCRYPT_ROUNDS"]
