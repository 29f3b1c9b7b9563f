"""
OTP delivery providers.

Each provider wraps an external SMS/OTP service behind the OTPProvider
interface; the registry picks one from settings.
"""

from app.services.otp.base import OTPProvider, OTPError, OTPRejectedError, OTPProviderError
from app.services.otp.registry import get_otp_provider

__all__ = [
    "OTPProvider",
    "OTPError",
    "OTPRejectedError",
    "OTPProviderError",
    "get_otp_provider",
]
