import pytest
import requests

from app.core.errors import InvalidInputError, ServiceUnavailableError, UnauthorizedError
from app.services.otp.base import OTPProvider, OTPProviderError, OTPRejectedError
from app.services.otp.msg91_provider import Msg91Provider
from app.services.otp_service import OTPService


class RecordingProvider(OTPProvider):
    name = "recording"

    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def send_otp(self, mobile):
        self.calls.append(("send", mobile))
        if self.error:
            raise self.error

    def resend_otp(self, mobile):
        self.calls.append(("resend", mobile))
        if self.error:
            raise self.error

    def verify_otp(self, mobile, code):
        self.calls.append(("verify", mobile, code))
        if self.error:
            raise self.error


def test_send_normalizes_mobile_before_delegating():
    provider = RecordingProvider()

    mobile = OTPService(provider).send_otp("+91 98765-43210", "a@example.com")

    assert mobile == "919876543210"
    assert provider.calls == [("send", "919876543210")]


@pytest.mark.parametrize("mobile,email", [
    ("9876543210", "a@example.com"),       # no country code
    ("09876543210", "a@example.com"),      # leading zero
    ("91abc6543210", "a@example.com"),
    ("919876543210", "not-an-email"),
    ("919876543210", ""),
])
def test_malformed_input_never_reaches_provider(mobile, email):
    provider = RecordingProvider()

    with pytest.raises(InvalidInputError):
        OTPService(provider).send_otp(mobile, email)

    assert provider.calls == []


def test_malformed_code_never_reaches_provider():
    provider = RecordingProvider()

    with pytest.raises(InvalidInputError):
        OTPService(provider).verify_otp("919876543210", "12ab")

    assert provider.calls == []


def test_rejected_code_is_unauthorized():
    service = OTPService(RecordingProvider(error=OTPRejectedError("OTP not match")))

    with pytest.raises(UnauthorizedError):
        service.verify_otp("919876543210", "111111")


def test_provider_failure_is_service_unavailable():
    service = OTPService(RecordingProvider(error=OTPProviderError("timeout")))

    with pytest.raises(ServiceUnavailableError):
        service.verify_otp("919876543210", "111111")
    with pytest.raises(ServiceUnavailableError):
        service.send_otp("919876543210", "a@example.com")


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


@pytest.fixture
def msg91():
    return Msg91Provider(auth_key="key", template_id="tmpl", base_url="https://msg91.test/api/v5/", timeout=2.0)


def test_msg91_send_request_shape(monkeypatch, msg91):
    seen = {}

    def fake_request(method, url, params=None, headers=None, timeout=None):
        seen.update(method=method, url=url, params=params, headers=headers, timeout=timeout)
        return FakeResponse(payload={"type": "success", "request_id": "abc"})

    monkeypatch.setattr(requests, "request", fake_request)

    msg91.send_otp("919876543210")

    assert seen["method"] == "POST"
    assert seen["url"] == "https://msg91.test/api/v5/otp"
    assert seen["params"] == {"mobile": "919876543210", "template_id": "tmpl"}
    assert seen["headers"]["authkey"] == "key"
    assert seen["timeout"] == 2.0


def test_msg91_wrong_code_is_rejection(monkeypatch, msg91):
    monkeypatch.setattr(
        requests, "request",
        lambda *a, **kw: FakeResponse(payload={"type": "error", "message": "OTP not match"}),
    )

    with pytest.raises(OTPRejectedError):
        msg91.verify_otp("919876543210", "123456")


def test_msg91_other_error_is_provider_failure(monkeypatch, msg91):
    monkeypatch.setattr(
        requests, "request",
        lambda *a, **kw: FakeResponse(payload={"type": "error", "message": "Invalid authkey"}),
    )

    with pytest.raises(OTPProviderError):
        msg91.verify_otp("919876543210", "123456")


def test_msg91_outage_mentioning_otp_is_provider_failure(monkeypatch, msg91):
    monkeypatch.setattr(
        requests, "request",
        lambda *a, **kw: FakeResponse(payload={"type": "error", "message": "OTP service temporarily unavailable"}),
    )

    with pytest.raises(OTPProviderError):
        msg91.verify_otp("919876543210", "123456")


def test_msg91_expired_code_is_rejection(monkeypatch, msg91):
    monkeypatch.setattr(
        requests, "request",
        lambda *a, **kw: FakeResponse(payload={"type": "error", "message": "OTP expired"}),
    )

    with pytest.raises(OTPRejectedError):
        msg91.verify_otp("919876543210", "123456")


def test_msg91_non_2xx_is_provider_failure(monkeypatch, msg91):
    monkeypatch.setattr(requests, "request", lambda *a, **kw: FakeResponse(status_code=502))

    with pytest.raises(OTPProviderError):
        msg91.send_otp("919876543210")


def test_msg91_timeout_is_provider_failure(monkeypatch, msg91):
    def timeout(*args, **kwargs):
        raise requests.Timeout("read timed out")

    monkeypatch.setattr(requests, "request", timeout)

    with pytest.raises(OTPProviderError):
        msg91.verify_otp("919876543210", "123456")


def test_msg91_requires_auth_key():
    with pytest.raises(ValueError):
        Msg91Provider(auth_key="", template_id=None, base_url="https://msg91.test")
