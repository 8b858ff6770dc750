"""
Error taxonomy shared by the auth engine and the HTTP layer.
"""
from __future__ import annotations

from typing import Optional


class AuthError(Exception):
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthError):
    status_code = 400
    default_message = "Invalid input data"


class Unauthorized(AuthError):
    status_code = 401
    default_message = "Unauthorized"


class Conflict(AuthError):
    status_code = 409
    default_message = "User already exists"


class RateLimited(AuthError):
    status_code = 429
    default_message = "Too many attempts. Please try again later."

    def __init__(self, message: Optional[str] = None, reset_time: Optional[int] = None):
        super().__init__(message)
        self.reset_time = reset_time


class InternalFailure(AuthError):
    status_code = 500
    default_message = "Internal server error"


__all__ = [
    "AuthError",
    "ValidationError",
    "Unauthorized",
    "Conflict",
    "RateLimited",
    "InternalFailure",
]
