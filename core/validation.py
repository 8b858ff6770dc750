"""
Input shape checks for emails and passwords.
"""
from __future__ import annotations

import re

from email_validator import EmailNotValidError, validate_email
from password_strength import PasswordPolicy

from core.errors import ValidationError

# bcrypt only looks at the first 72 bytes.
MAX_PASSWORD_BYTES = 72
MAX_EMAIL_LENGTH = 254

password_policy = PasswordPolicy.from_names(length=8, numbers=1)


def is_valid_email(email: str) -> bool:
    email = (email or "").strip()
    if not email or len(email) > MAX_EMAIL_LENGTH:
        return False
    if not re.fullmatch(r"[^@\s]+@[^@\s]+\.[^@\s]+", email):
        return False
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


# At least 8 chars with one letter and one number, no whitespace
def is_valid_password(pw: str) -> bool:
    if not pw or len(pw.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return False
    if re.search(r"\s", pw):
        return False
    if not re.search(r"[A-Za-z]", pw):
        return False
    return not password_policy.test(pw)


def validate_new_password(password: str, confirm_password: str) -> None:
    if not is_valid_password(password):
        raise ValidationError("Password must be at least 8 characters and include a letter and a number")
    if password != confirm_password:
        raise ValidationError("Passwords don't match")


def validate_registration(email: str, password: str, confirm_password: str) -> None:
    if not is_valid_email(email):
        raise ValidationError("Invalid email address")
    validate_new_password(password, confirm_password)


__all__ = [
    "MAX_PASSWORD_BYTES",
    "is_valid_email",
    "is_valid_password",
    "validate_new_password",
    "validate_registration",
]
