"""
TOTP (RFC 6238) secrets, codes and provisioning QR images.

Codes are 6 digits over 30-second steps; verification accepts the
current step and one step either side to absorb clock drift. Every
time-dependent function takes an optional Unix timestamp so callers
and tests can pin the clock.
"""
from __future__ import annotations

import base64
import io
import re
import time
from dataclasses import dataclass
from typing import Optional

import pyotp
import qrcode
from qrcode.constants import ERROR_CORRECT_L

from core.config import TOTP_ISSUER

TOTP_DIGITS = 6
TOTP_INTERVAL = 30
TOTP_SECRET_LENGTH = 32  # base32 chars -> 160 bits
TOTP_VALID_WINDOW = 1

_CODE_RE = re.compile(r"\d{%d}" % TOTP_DIGITS)


@dataclass(frozen=True)
class TwoFactorSecret:
    base32_secret: str
    provisioning_uri: str


def _totp(secret: str) -> pyotp.TOTP:
    return pyotp.TOTP(secret, digits=TOTP_DIGITS, interval=TOTP_INTERVAL)


def generate_secret(label: str, issuer: str = TOTP_ISSUER) -> TwoFactorSecret:
    """Fresh random secret plus the otpauth:// URI authenticator apps scan."""
    secret = pyotp.random_base32(length=TOTP_SECRET_LENGTH)
    uri = _totp(secret).provisioning_uri(name=label, issuer_name=issuer)
    return TwoFactorSecret(base32_secret=secret, provisioning_uri=uri)


def current_code(secret: str, for_time: Optional[float] = None) -> str:
    if for_time is None:
        for_time = time.time()
    return _totp(secret).at(int(for_time))


def verify_code(code: str, secret: str, for_time: Optional[float] = None) -> bool:
    """
    True when `code` matches the step at for_time or an adjacent step.
    Anything that is not exactly six digits is rejected up front.
    """
    code = (code or "").strip()
    if not _CODE_RE.fullmatch(code) or not secret:
        return False
    if for_time is None:
        for_time = time.time()
    return _totp(secret).verify(code, for_time=int(for_time), valid_window=TOTP_VALID_WINDOW)


def render_provisioning_image(uri: str) -> str:
    """
    Creates a QR code image for uri and returns it as a PNG data URL
    """
    qr = qrcode.QRCode(
        version=1,
        error_correction=ERROR_CORRECT_L,
        box_size=10,
        border=4,
    )
    qr.add_data(uri)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffered = io.BytesIO()
    img.save(buffered, format="PNG")
    img_str = base64.b64encode(buffered.getvalue()).decode()
    return f"data:image/png;base64,{img_str}"


__all__ = [
    "TOTP_DIGITS",
    "TOTP_INTERVAL",
    "TwoFactorSecret",
    "generate_secret",
    "current_code",
    "verify_code",
    "render_provisioning_image",
]
