"""
OTP Provider Base Interface.

The external provider owns the whole OTP lifecycle: code generation,
delivery, expiry and attempt limits. We only ask it to send, resend and
verify, and classify what comes back.
"""

from abc import ABC, abstractmethod


class OTPError(Exception):
    """Base class for provider outcomes other than success."""


class OTPRejectedError(OTPError):
    """The provider answered and said the code is wrong, expired or used up."""


class OTPProviderError(OTPError):
    """The provider could not be reached or failed to process the request."""


class OTPProvider(ABC):
    """
    Contract:
    - Input mobile numbers are already normalized (digits, country code first).
    - Success returns None.
    - Wrong/expired code raises OTPRejectedError.
    - Timeouts, transport errors and provider-side failures raise OTPProviderError.
    """

    name: str = "base"

    @abstractmethod
    def send_otp(self, mobile: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def resend_otp(self, mobile: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def verify_otp(self, mobile: str, code: str) -> None:
        raise NotImplementedError
