"""
Input validation for identity and location fields.

All validators raise InvalidInputError so callers can reject a request
before touching the store or any external provider.
"""

import re
from typing import Optional

from email_validator import EmailNotValidError, validate_email as _validate_email

from app.core.errors import InvalidInputError

# Country code + national number, E.164 length without the leading "+"
MOBILE_PATTERN = re.compile(r"^[1-9]\d{10,14}$")
OTP_PATTERN = re.compile(r"^\d{4,8}$")


def normalize_mobile(mobile: Optional[str]) -> str:
    """Strip separators and the leading "+" (e.g. "+91 98765-43210" -> "919876543210")."""
    if not mobile:
        return ""
    return (
        mobile.strip()
        .replace(" ", "")
        .replace("-", "")
        .replace("(", "")
        .replace(")", "")
        .replace("+", "")
    )


def validate_mobile(mobile: Optional[str]) -> str:
    """Return the normalized mobile number or raise InvalidInputError."""
    normalized = normalize_mobile(mobile)
    if not MOBILE_PATTERN.match(normalized):
        raise InvalidInputError("Invalid mobile number. Include the country code, e.g. 919876543210")
    return normalized


def validate_email(email: Optional[str]) -> str:
    """Syntax-only email check; no DNS lookups."""
    if not email or not email.strip():
        raise InvalidInputError("Invalid email address")
    try:
        result = _validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise InvalidInputError(f"Invalid email address: {e}") from e
    return result.normalized


def validate_otp_code(code: Optional[str]) -> str:
    code = (code or "").strip()
    if not OTP_PATTERN.match(code):
        raise InvalidInputError("Invalid OTP format")
    return code


def validate_coordinates(latitude: Optional[float], longitude: Optional[float]) -> None:
    if latitude is None or not -90.0 <= latitude <= 90.0:
        raise InvalidInputError("Invalid latitude")
    if longitude is None or not -180.0 <= longitude <= 180.0:
        raise InvalidInputError("Invalid longitude")
