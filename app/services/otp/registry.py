import logging
from typing import Optional

from app.core.settings import settings
from .base import OTPProvider
from .mock_provider import MockOTPProvider
from .msg91_provider import Msg91Provider

logger = logging.getLogger(__name__)

_provider_instance: Optional[OTPProvider] = None


def get_otp_provider() -> OTPProvider:
    """
    Resolve the active OTP provider based on settings.

    Rules:
    - OTP_PROVIDER='mock' -> MockOTPProvider.
    - OTP_PROVIDER='msg91' requires MSG91_AUTH_KEY; without it we refuse to
      start silently accepting a fixed code and raise instead.
    """
    global _provider_instance
    if _provider_instance is not None:
        return _provider_instance

    provider_name = (settings.OTP_PROVIDER or "msg91").lower()

    if provider_name == "mock":
        _provider_instance = MockOTPProvider(fixed_code=settings.MOCK_OTP_CODE)
        logger.warning("OTP provider initialized: mock (do not use in production)")
        return _provider_instance

    if provider_name == "msg91":
        _provider_instance = Msg91Provider(
            auth_key=settings.MSG91_AUTH_KEY or "",
            template_id=settings.MSG91_TEMPLATE_ID,
            base_url=settings.MSG91_BASE_URL,
            timeout=settings.OTP_TIMEOUT_SECONDS,
        )
        logger.info("OTP provider initialized: msg91")
        return _provider_instance

    raise ValueError(f"Unknown OTP_PROVIDER: {settings.OTP_PROVIDER}")
