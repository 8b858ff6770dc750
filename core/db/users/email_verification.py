"""
Email verification token storage helpers.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, Optional

from core.db.users.tokens import TokenLedger

VERIFY_TOKEN_HOURS = 24

verification_tokens = TokenLedger("email_verification_tokens", ttl=timedelta(hours=VERIFY_TOKEN_HOURS))


def create_email_verification_token(user_id: int, now: Optional[datetime] = None) -> str:
    """
    Create a new single-use email verification token for a user.
    """
    return verification_tokens.issue(user_id, now=now)


def get_email_verification_token(token: str, now: Optional[datetime] = None) -> Optional[Dict]:
    """
    Return the token row if valid (not expired). Otherwise return None.
    """
    return verification_tokens.resolve(token, now=now)


def delete_email_verification_token(token: str) -> bool:
    return verification_tokens.consume(token)


__all__ = [
    "VERIFY_TOKEN_HOURS",
    "verification_tokens",
    "create_email_verification_token",
    "get_email_verification_token",
    "delete_email_verification_token",
]
