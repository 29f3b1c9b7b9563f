import logging
from typing import Any, Dict, Optional

import requests

from .base import OTPProvider, OTPProviderError, OTPRejectedError

logger = logging.getLogger(__name__)


class Msg91Provider(OTPProvider):
    """
    MSG91 OTP v5 provider.

    - Auth key travels in the `authkey` header.
    - MSG91 answers HTTP 200 with {"type": "success"|"error", "message": ...};
      an "error" on verify about the code itself is a rejection, anything
      else is a provider failure.
    - Strict network timeout from settings; no retries.
    """

    name = "msg91"

    # Error messages MSG91 returns when the code itself is the problem
    REJECTION_MARKERS = (
        "otp not match",
        "otp expired",
        "invalid otp",
        "already verified",
        "max limit",
    )

    def __init__(self, auth_key: str, template_id: Optional[str], base_url: str, timeout: float = 5.0):
        if not auth_key:
            raise ValueError("MSG91 auth key is required")
        self.auth_key = auth_key
        self.template_id = template_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _call(self, method: str, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = {"authkey": self.auth_key, "accept": "application/json"}
        try:
            resp = requests.request(method, url, params=params, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"MSG91 {path} transport error: {e}")
            raise OTPProviderError(f"OTP provider unreachable: {e}") from e

        if not 200 <= resp.status_code < 300:
            logger.warning(f"MSG91 {path} failed with status {resp.status_code}")
            raise OTPProviderError(f"OTP provider returned HTTP {resp.status_code}")

        try:
            return resp.json()
        except ValueError as e:
            raise OTPProviderError("OTP provider returned a non-JSON response") from e

    def send_otp(self, mobile: str) -> None:
        params = {"mobile": mobile}
        if self.template_id:
            params["template_id"] = self.template_id
        data = self._call("POST", "/otp", params)
        if data.get("type") != "success":
            raise OTPProviderError(data.get("message") or "Failed to send OTP")
        logger.info(f"MSG91 OTP sent to {mobile[:4]}****{mobile[-2:]}")

    def resend_otp(self, mobile: str) -> None:
        data = self._call("GET", "/otp/retry", {"mobile": mobile, "retrytype": "text"})
        if data.get("type") != "success":
            message = data.get("message") or "Failed to resend OTP"
            if self._is_rejection(message):
                raise OTPRejectedError(message)
            raise OTPProviderError(message)

    def verify_otp(self, mobile: str, code: str) -> None:
        data = self._call("GET", "/otp/verify", {"mobile": mobile, "otp": code})
        if data.get("type") == "success":
            return
        message = data.get("message") or "OTP verification failed"
        if self._is_rejection(message):
            raise OTPRejectedError(message)
        raise OTPProviderError(message)

    def _is_rejection(self, message: str) -> bool:
        lowered = message.lower()
        return any(marker in lowered for marker in self.REJECTION_MARKERS)
