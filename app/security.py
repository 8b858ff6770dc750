"""
Client identity and the process-wide rate limiter.
"""
from __future__ import annotations

import os

from core.config import TRUST_PROXY_HEADERS
from core.rate_limit import RateLimiter

SECURE_COOKIES = (
    os.getenv("COOKIE_SECURE", "").lower() in ("1", "true", "yes")
    or os.getenv("PUBLIC_BASE_URL", "").lower().startswith("https://")
)

# Initialized empty at import; entries are evicted by the cleanup worker.
limiter = RateLimiter()


def get_client_ip(request) -> str:
    """
    Best-effort client address: first X-Forwarded-For hop, then X-Real-IP,
    then the socket peer.
    """
    headers = getattr(request, "headers", None) or {}
    if TRUST_PROXY_HEADERS:
        forwarded = headers.get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
        real_ip = headers.get("x-real-ip")
        if real_ip:
            return real_ip.strip()
    client = getattr(request, "client", None)
    if client and client.host:
        return client.host
    return "unknown"


__all__ = ["SECURE_COOKIES", "limiter", "get_client_ip"]
