"""
Razorpay gateway.

Orders are created through the official SDK. Webhooks are authenticated
with an HMAC-SHA256 hex digest over the raw request body, keyed with the
webhook secret configured in the Razorpay dashboard.
"""

import hashlib
import hmac
import logging
from typing import Any, Dict, Optional

import razorpay
import requests
from razorpay.errors import BadRequestError, GatewayError, ServerError, SignatureVerificationError

from .base import PaymentGateway, PaymentGatewayError, PaymentSignatureError

logger = logging.getLogger(__name__)

CURRENCY = "INR"


class RazorpayGateway(PaymentGateway):
    name = "razorpay"

    def __init__(self, key_id: Optional[str], key_secret: Optional[str], webhook_secret: Optional[str] = None):
        self.key_id = key_id
        self.webhook_secret = webhook_secret
        self._client: Optional[razorpay.Client] = None
        if key_id and key_secret:
            self._client = razorpay.Client(auth=(key_id, key_secret))

    @property
    def client(self) -> razorpay.Client:
        if self._client is None:
            raise PaymentGatewayError("Razorpay is not configured")
        return self._client

    def create_order(self, amount: float, receipt: str, notes: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        data = {
            "amount": int(round(amount * 100)),  # paise
            "currency": CURRENCY,
            "receipt": receipt[:40],
            "notes": notes or {},
        }
        try:
            order = self.client.order.create(data=data)
        except (BadRequestError, GatewayError, ServerError) as e:
            msg = getattr(e, "args", [str(e)])[0]
            logger.error(f"Razorpay order create failed: {msg}")
            raise PaymentGatewayError(f"Order creation failed: {msg}") from e
        except requests.RequestException as e:
            logger.error(f"Razorpay unreachable: {e}")
            raise PaymentGatewayError("Order creation failed: gateway unreachable") from e

        logger.info(f"Razorpay order created: {order.get('id')} ({data['amount']} {CURRENCY})")
        return order

    def verify_payment_signature(self, order_id: str, payment_id: str, signature: str) -> None:
        try:
            self.client.utility.verify_payment_signature({
                "razorpay_order_id": order_id,
                "razorpay_payment_id": payment_id,
                "razorpay_signature": signature,
            })
        except SignatureVerificationError as e:
            raise PaymentSignatureError("Payment signature verification failed") from e

    def verify_webhook_signature(self, body: bytes, signature: str) -> None:
        if not self.webhook_secret:
            raise PaymentGatewayError("Webhook secret not configured")
        expected = hmac.new(self.webhook_secret.encode(), body, hashlib.sha256).hexdigest()
        if not hmac.compare_digest(expected, signature or ""):
            raise PaymentSignatureError("Invalid webhook signature")
