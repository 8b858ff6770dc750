"""
Helpers for session cookies and current-user lookup.
"""
from __future__ import annotations

from fastapi import Request
from fastapi.responses import Response

from app.security import SECURE_COOKIES, limiter
from core.auth_service import AuthService
from core.database import SESSION_LIFETIME

SESSION_COOKIE_NAME = "session"
SESSION_COOKIE_MAX_AGE = int(SESSION_LIFETIME.total_seconds())  # 30 days

auth_service = AuthService(limiter)


def get_current_user(request: Request):
    """
    Read session cookie and return (user_dict, session_id) or (None, session_id).
    Expired and unknown sessions look the same to callers.
    """
    session_id = request.cookies.get(SESSION_COOKIE_NAME)
    if not session_id:
        return None, None
    return auth_service.current_user(session_id), session_id


def set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session_id,
        httponly=True,
        max_age=SESSION_COOKIE_MAX_AGE,
        samesite="lax",
        secure=SECURE_COOKIES,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME, httponly=True, samesite="lax", secure=SECURE_COOKIES)
