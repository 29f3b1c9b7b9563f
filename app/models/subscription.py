"""
Subscription models.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class SubscriptionType(str, Enum):
    WORKER = "worker"
    JOB_SEEKER = "job_seeker"


class SubscriptionStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class VerifyPaymentRequest(BaseModel):
    """Fields returned to the client by Razorpay checkout."""
    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)


class SubscriptionResponse(BaseModel):
    id: str
    user_id: str
    subscription_type: SubscriptionType
    plan_name: str
    price: float
    status: SubscriptionStatus
    starts_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    auto_renew: bool = False
    payment_order_id: Optional[str] = None
    payment_id: Optional[str] = None

    @classmethod
    def from_record(cls, subscription: Dict[str, Any]) -> "SubscriptionResponse":
        return cls(**{k: v for k, v in subscription.items() if k in cls.model_fields})
