import pytest

from core.errors import ValidationError
from core.validation import (
    is_valid_email,
    is_valid_password,
    validate_new_password,
    validate_registration,
)


@pytest.mark.parametrize(
    "email,expected",
    [
        ("user@example.com", True),
        ("User.Name+tag@example.co.uk", True),
        ("  user@example.com  ", True),  # trims spaces
        ("name@mail.example-domain.co.uk", True),
        ("bademail", False),
        ("", False),
        ("user@no-tld", False),
        ("user @example.com", False),
        ("@gmail.com", False),
        ("user..name@example.com", False),
        ("a" * 250 + "@example.com", False),
    ],
)
def test_is_valid_email(email: str, expected: bool):
    assert is_valid_email(email) is expected


@pytest.mark.parametrize(
    "pw,expected",
    [
        ("Passw0rd", True),
        ("abc12345", True),
        ("Abcdef1!", True),
        ("a" * 71 + "1", True),     # exactly 72 bytes
        ("a" * 72 + "1", False),    # bcrypt would truncate
        ("short1", False),
        ("Abcdef1", False),
        ("pass word1", False),
        ("Passw0rd\n", False),
        ("lettersOnly", False),
        ("12345678", False),
        ("", False),
    ],
)
def test_is_valid_password(pw: str, expected: bool):
    assert is_valid_password(pw) is expected


def test_mismatched_confirmation_is_rejected():
    with pytest.raises(ValidationError) as exc:
        validate_new_password("Passw0rd", "Passw0rd!")
    assert exc.value.message == "Passwords don't match"
    assert exc.value.status_code == 400


def test_registration_checks_email_first():
    with pytest.raises(ValidationError) as exc:
        validate_registration("not-an-email", "short", "other")
    assert exc.value.message == "Invalid email address"
