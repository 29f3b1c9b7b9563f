import logging
from typing import Optional

from app.core.settings import settings
from .base import PaymentGateway
from .razorpay_gateway import RazorpayGateway

logger = logging.getLogger(__name__)

_gateway_instance: Optional[PaymentGateway] = None


def get_payment_gateway() -> PaymentGateway:
    global _gateway_instance
    if _gateway_instance is None:
        _gateway_instance = RazorpayGateway(
            key_id=settings.RAZORPAY_KEY_ID,
            key_secret=settings.RAZORPAY_KEY_SECRET,
            webhook_secret=settings.RAZORPAY_WEBHOOK_SECRET,
        )
        if not settings.RAZORPAY_KEY_ID:
            logger.warning("Razorpay keys missing; subscription purchases will fail")
    return _gateway_instance
