"""
OTP Service - validate identity input and broker OTP send/verify.

The service keeps no state of its own. Code generation, delivery, expiry
and attempt limits belong to the external provider (MSG91 in production).
"""

import logging
from typing import Optional

from app.core.errors import ServiceUnavailableError, UnauthorizedError
from app.services.otp import OTPError, OTPProvider, OTPRejectedError, get_otp_provider
from app.utils.validators import validate_email, validate_mobile, validate_otp_code

logger = logging.getLogger(__name__)


class OTPService:
    """
    Broker between the auth routes and the OTP provider.

    Error mapping:
    - malformed mobile/email/code -> InvalidInputError (provider not contacted)
    - provider rejected the code   -> UnauthorizedError
    - provider unreachable/failed  -> ServiceUnavailableError
    """

    def __init__(self, provider: Optional[OTPProvider] = None):
        self._provider = provider

    @property
    def provider(self) -> OTPProvider:
        if self._provider is None:
            self._provider = get_otp_provider()
        return self._provider

    def send_otp(self, mobile: str, email: str) -> str:
        """
        Validate the mobile and email, then ask the provider to send a code.

        Returns:
            The normalized mobile number the code was sent to
        """
        normalized_mobile = validate_mobile(mobile)
        validate_email(email)

        try:
            self.provider.send_otp(normalized_mobile)
        except OTPError as e:
            raise self._map_error(e, action="send") from e

        logger.info(f"OTP sent to {self._mask(normalized_mobile)}")
        return normalized_mobile

    def resend_otp(self, mobile: str) -> str:
        normalized_mobile = validate_mobile(mobile)
        try:
            self.provider.resend_otp(normalized_mobile)
        except OTPError as e:
            raise self._map_error(e, action="resend") from e
        logger.info(f"OTP resent to {self._mask(normalized_mobile)}")
        return normalized_mobile

    def verify_otp(self, mobile: str, code: str) -> str:
        """
        Verify a code with the provider.

        Returns:
            The normalized mobile number that was verified
        """
        normalized_mobile = validate_mobile(mobile)
        code = validate_otp_code(code)

        try:
            self.provider.verify_otp(normalized_mobile, code)
        except OTPError as e:
            raise self._map_error(e, action="verify") from e

        logger.info(f"OTP verified for {self._mask(normalized_mobile)}")
        return normalized_mobile

    def _map_error(self, error: Exception, action: str):
        if isinstance(error, OTPRejectedError):
            logger.info(f"OTP {action} rejected by provider: {error}")
            return UnauthorizedError("Invalid or expired OTP")
        logger.error(f"OTP provider failure during {action}: {error}")
        return ServiceUnavailableError(f"Failed to {action} OTP. Please try again later.")

    @staticmethod
    def _mask(mobile: str) -> str:
        return f"{mobile[:4]}****{mobile[-2:]}"


# Global service instance (singleton pattern)
_otp_service = None


def get_otp_service() -> OTPService:
    """
    Get or create OTPService singleton instance.

    Returns:
        OTPService: The global OTP service instance
    """
    global _otp_service
    if _otp_service is None:
        _otp_service = OTPService()
    return _otp_service
