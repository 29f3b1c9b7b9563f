"""
Mock OTP Provider - used when no SMS provider is configured.

Accepts one fixed code for every number and never contacts the network.
"""

import logging

from .base import OTPProvider, OTPRejectedError

logger = logging.getLogger(__name__)


class MockOTPProvider(OTPProvider):
    name = "mock"

    def __init__(self, fixed_code: str = "123456"):
        self.fixed_code = fixed_code
        logger.info("Mock OTP provider initialized (fixed code)")

    def send_otp(self, mobile: str) -> None:
        logger.info(f"[MOCK OTP] code for {mobile}: {self.fixed_code}")

    def resend_otp(self, mobile: str) -> None:
        self.send_otp(mobile)

    def verify_otp(self, mobile: str, code: str) -> None:
        if code != self.fixed_code:
            raise OTPRejectedError("OTP not match")
