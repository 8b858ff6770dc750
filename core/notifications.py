"""
Out-of-band link hand-off for reset and verification tokens.

Delivery (SMTP, queues, ...) lives outside this service. The default
notifier only logs the link, which is what local development relies on.
"""
from __future__ import annotations

import logging
import os

log = logging.getLogger(__name__)


class LogNotifier:
    def __init__(self, base_url: str | None = None):
        self.base_url = (base_url or os.getenv("PUBLIC_BASE_URL") or "http://localhost:8000").rstrip("/")

    def password_reset(self, email: str, token: str) -> str:
        link = f"{self.base_url}/reset-password?token={token}"
        log.info("Password reset link issued", extra={"email": email, "link": link})
        return link

    def email_verification(self, email: str, token: str) -> str:
        link = f"{self.base_url}/api/auth/verify-email?token={token}"
        log.info("Email verification link issued", extra={"email": email, "link": link})
        return link


__all__ = ["LogNotifier"]
