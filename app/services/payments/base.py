"""
Payment Gateway Base Interface.

Settlement happens at the gateway. We create an order for a price, and
later check that a payment confirmation (checkout callback or webhook)
really came from the gateway before activating anything.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class PaymentError(Exception):
    """Base class for gateway failures."""


class PaymentSignatureError(PaymentError):
    """A checkout or webhook signature did not verify."""


class PaymentGatewayError(PaymentError):
    """The gateway is unreachable, misconfigured or refused the request."""


class PaymentGateway(ABC):
    name: str = "base"

    @abstractmethod
    def create_order(self, amount: float, receipt: str, notes: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Create an order for `amount` in major currency units; returns the gateway order (with "id")."""
        raise NotImplementedError

    @abstractmethod
    def verify_payment_signature(self, order_id: str, payment_id: str, signature: str) -> None:
        """Raise PaymentSignatureError unless the checkout signature is valid."""
        raise NotImplementedError

    @abstractmethod
    def verify_webhook_signature(self, body: bytes, signature: str) -> None:
        """Raise PaymentSignatureError unless the webhook body is signed with our secret."""
        raise NotImplementedError
