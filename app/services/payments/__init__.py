"""
Payment gateways for subscription purchases.
"""

from app.services.payments.base import PaymentError, PaymentGateway, PaymentGatewayError, PaymentSignatureError
from app.services.payments.registry import get_payment_gateway

__all__ = [
    "PaymentGateway",
    "PaymentError",
    "PaymentGatewayError",
    "PaymentSignatureError",
    "get_payment_gateway",
]
