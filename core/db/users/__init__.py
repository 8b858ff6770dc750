"""
User-related storage helpers, split by responsibility.
"""
from core.db.users.auth import hash_password, verify_password, verify_password_against_nothing
from core.db.users.user_store import (
    normalize_email,
    create_user,
    get_user_by_email,
    get_user_by_id,
    update_user_password,
    mark_user_email_verified,
)
from core.db.users.password_reset import (
    create_password_reset_token,
    get_password_reset_token,
    delete_password_reset_token,
    reset_password_with_token,
    reset_tokens,
    RESET_TOKEN_MINUTES,
)
from core.db.users.sessions import (
    create_session,
    delete_session,
    get_session,
    purge_expired_sessions,
    SESSION_LIFETIME,
)
from core.db.users.email_verification import (
    VERIFY_TOKEN_HOURS,
    create_email_verification_token,
    get_email_verification_token,
    delete_email_verification_token,
    verification_tokens,
)
from core.db.users.two_factor import enable_two_factor, get_two_factor, save_two_factor_secret

__all__ = [
    "hash_password",
    "verify_password",
    "verify_password_against_nothing",
    "normalize_email",
    "create_user",
    "get_user_by_email",
    "get_user_by_id",
    "update_user_password",
    "mark_user_email_verified",
    "create_password_reset_token",
    "get_password_reset_token",
    "delete_password_reset_token",
    "reset_password_with_token",
    "reset_tokens",
    "RESET_TOKEN_MINUTES",
    "create_session",
    "delete_session",
    "get_session",
    "purge_expired_sessions",
    "SESSION_LIFETIME",
    "VERIFY_TOKEN_HOURS",
    "create_email_verification_token",
    "get_email_verification_token",
    "delete_email_verification_token",
    "verification_tokens",
    "save_two_factor_secret",
    "get_two_factor",
    "enable_two_factor",
]
