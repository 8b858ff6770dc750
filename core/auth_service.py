"""
AuthService: the login, registration, 2FA and password-reset flows.

Holds no state of its own. Each flow consults the rate limiter first,
then the credential/TOTP/token stores, and only issues a session once
authentication is complete. Expected negatives (wrong password, unknown
email, bad code, dead token) surface as deliberately generic errors.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Mapping, Optional

from core.clock import to_epoch, utcnow
from core.config import RATE_LIMITS, RateLimitConfig
from core.database import (
    create_email_verification_token,
    create_password_reset_token,
    create_session,
    create_user,
    delete_email_verification_token,
    delete_session,
    enable_two_factor,
    get_email_verification_token,
    get_password_reset_token,
    get_session,
    get_two_factor,
    get_user_by_email,
    get_user_by_id,
    hash_password,
    mark_user_email_verified,
    normalize_email,
    reset_password_with_token,
    save_two_factor_secret,
    verify_password,
    verify_password_against_nothing,
)
from core.errors import Conflict, RateLimited, Unauthorized, ValidationError
from core.notifications import LogNotifier
from core.rate_limit import (
    RateLimiter,
    login_email_key,
    login_ip_key,
    password_reset_key,
    two_factor_key,
    verify_resend_key,
)
from core.totp import generate_secret, render_provisioning_image, verify_code
from core.validation import is_valid_email, validate_new_password, validate_registration

log = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_TWO_FACTOR_CODE = "Invalid two-factor code"
INVALID_RESET_TOKEN = "Invalid or expired reset token"
INVALID_VERIFICATION_TOKEN = "Invalid or expired verification link"
TOO_MANY_ATTEMPTS = "Too many login attempts. Please try again later."
RESET_REQUESTED_MESSAGE = "If an account exists, a password reset email has been sent"
VERIFICATION_RESENT_MESSAGE = "If that email exists, a verification link has been sent"


@dataclass(frozen=True)
class LoginResult:
    user_id: int
    session_id: Optional[str] = None
    requires_two_factor: bool = False


class AuthService:
    def __init__(
        self,
        limiter: RateLimiter,
        notifier=None,
        clock: Callable[[], datetime] = utcnow,
        limits: Mapping[str, RateLimitConfig] = RATE_LIMITS,
    ):
        self.limiter = limiter
        self.notifier = notifier or LogNotifier()
        self.clock = clock
        self.limits = limits

    # -------- registration / email verification --------

    def register(self, email: str, password: str, confirm_password: str) -> Dict:
        """Create an account. Does not log the user in."""
        validate_registration(email, password, confirm_password)
        if get_user_by_email(email):
            raise Conflict("User already exists")

        user = create_user(email, password, now=self.clock())
        token = create_email_verification_token(user["id"], now=self.clock())
        self.notifier.email_verification(user["email"], token)
        log.info("User registered", extra={"user_id": user["id"]})
        return user

    def verify_email(self, token: str) -> int:
        record = get_email_verification_token(token, now=self.clock())
        if not record or not delete_email_verification_token(token):
            raise ValidationError(INVALID_VERIFICATION_TOKEN)
        user_id = int(record["user_id"])
        mark_user_email_verified(user_id)
        return user_id

    def resend_verification(self, email: str, ip: str) -> str:
        if not is_valid_email(email):
            raise ValidationError("Invalid email address")
        result = self.limiter.consume(verify_resend_key(ip), self.limits["verify_email_resend"])
        if not result.allowed:
            raise RateLimited("Too many attempts. Please try again later.", reset_time=result.reset_time)
        return VERIFICATION_RESENT_MESSAGE

    def send_verification(self, email: str) -> None:
        """Issue and hand off a new link if email belongs to an unverified user."""
        user = get_user_by_email(email)
        if user and not user["email_verified"]:
            token = create_email_verification_token(user["id"], now=self.clock())
            self.notifier.email_verification(user["email"], token)

    # -------- login --------

    def login(self, email: str, password: str, ip: str) -> LoginResult:
        email = normalize_email(email)
        if not email or not password:
            raise ValidationError()

        lock = self.limiter.is_locked(email, ip)
        if lock.locked:
            log.warning("Login blocked by lockout", extra={"email": email, "ip": ip, "reason": lock.reason})
            raise RateLimited(lock.reason or "Account temporarily locked")

        ip_key = login_ip_key(ip)
        email_key = login_email_key(email)
        for key, action in ((ip_key, "login_ip"), (email_key, "login_email")):
            result = self.limiter.check(key, self.limits[action])
            if not result.allowed:
                raise RateLimited(TOO_MANY_ATTEMPTS, reset_time=result.reset_time)

        user = get_user_by_email(email)
        if user:
            password_ok = verify_password(password, user["password_hash"])
        else:
            password_ok = verify_password_against_nothing(password)

        if not password_ok:
            self.limiter.record_attempt(email, ip, False, user["id"] if user else None)
            self.limiter.increment(ip_key, self.limits["login_ip"])
            self.limiter.increment(email_key, self.limits["login_email"])
            raise Unauthorized(INVALID_CREDENTIALS)

        self.limiter.record_attempt(email, ip, True, user["id"])

        two_factor = get_two_factor(user["id"])
        if two_factor and two_factor["enabled"]:
            return LoginResult(user_id=user["id"], requires_two_factor=True)

        session_id = create_session(user["id"], now=self.clock())
        log.info("Login succeeded", extra={"user_id": user["id"]})
        return LoginResult(user_id=user["id"], session_id=session_id)

    # -------- two-factor --------

    def verify_two_factor(self, user_id: int, code: str, ip: str) -> str:
        """Second login step. Returns a new session id."""
        key = two_factor_key(user_id, ip)
        config = self.limits["two_factor"]
        result = self.limiter.check(key, config)
        if not result.allowed:
            raise RateLimited("Too many attempts. Please try again later.", reset_time=result.reset_time)

        record = get_two_factor(user_id)
        secret = record["secret"] if record and record["enabled"] else None
        code_ok = verify_code(code, secret, for_time=to_epoch(self.clock())) if secret else False
        if code_ok and not get_user_by_id(user_id):
            code_ok = False

        if not code_ok:
            self.limiter.increment(key, config)
            raise Unauthorized(INVALID_TWO_FACTOR_CODE)

        return create_session(user_id, now=self.clock())

    def begin_two_factor_setup(self, user: Dict) -> Dict:
        """New (disabled) secret for user; confirm_two_factor_setup enables it."""
        generated = generate_secret(label=user["email"])
        save_two_factor_secret(user["id"], generated.base32_secret, now=self.clock())
        return {
            "secret": generated.base32_secret,
            "qrCode": render_provisioning_image(generated.provisioning_uri),
            "otpauthUrl": generated.provisioning_uri,
        }

    def confirm_two_factor_setup(self, user_id: int, code: str, ip: str) -> None:
        key = two_factor_key(user_id, ip)
        config = self.limits["two_factor"]
        result = self.limiter.check(key, config)
        if not result.allowed:
            raise RateLimited("Too many attempts. Please try again later.", reset_time=result.reset_time)

        record = get_two_factor(user_id)
        if not record or not verify_code(code, record["secret"], for_time=to_epoch(self.clock())):
            self.limiter.increment(key, config)
            raise ValidationError(INVALID_TWO_FACTOR_CODE)

        enable_two_factor(user_id)
        log.info("Two-factor enabled", extra={"user_id": user_id})

    # -------- password reset --------

    def request_password_reset(self, email: str, ip: str) -> str:
        """
        Validate and rate-limit a reset request. Never looks the email up:
        send_password_reset does that after the response is sent, so known
        and unknown emails answer the same way in the same time.
        """
        if not is_valid_email(email):
            raise ValidationError("Invalid email address")
        result = self.limiter.consume(password_reset_key(ip), self.limits["password_reset"])
        if not result.allowed:
            raise RateLimited("Too many password reset requests. Please try again later.", reset_time=result.reset_time)
        return RESET_REQUESTED_MESSAGE

    def send_password_reset(self, email: str) -> None:
        user = get_user_by_email(email)
        if user:
            token = create_password_reset_token(user["id"], now=self.clock())
            self.notifier.password_reset(user["email"], token)

    def confirm_password_reset(self, token: str, password: str, confirm_password: str) -> int:
        validate_new_password(password, confirm_password)
        if not get_password_reset_token(token, now=self.clock()):
            raise ValidationError(INVALID_RESET_TOKEN)

        # Token deletion and the new hash commit together.
        user_id = reset_password_with_token(token, hash_password(password), now=self.clock())
        if user_id is None:
            raise ValidationError(INVALID_RESET_TOKEN)
        log.info("Password reset completed", extra={"user_id": user_id})
        return user_id

    # -------- sessions --------

    def current_user(self, session_id: Optional[str]) -> Optional[Dict]:
        if not session_id:
            return None
        session = get_session(session_id, now=self.clock())
        if not session:
            return None
        user = get_user_by_id(session["user_id"])
        if not user:
            delete_session(session_id)
            return None
        return user

    def profile(self, user: Dict) -> Dict:
        two_factor = get_two_factor(user["id"])
        return {
            "id": user["id"],
            "email": user["email"],
            "emailVerified": user["email_verified"],
            "twoFactorEnabled": bool(two_factor and two_factor["enabled"]),
        }

    def logout(self, session_id: Optional[str]) -> None:
        if session_id:
            delete_session(session_id)


__all__ = [
    "AuthService",
    "LoginResult",
    "INVALID_CREDENTIALS",
    "INVALID_TWO_FACTOR_CODE",
    "INVALID_RESET_TOKEN",
    "RESET_REQUESTED_MESSAGE",
    "VERIFICATION_RESENT_MESSAGE",
]
