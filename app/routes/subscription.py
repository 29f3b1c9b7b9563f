"""
Subscription endpoints - plan purchase through Razorpay.

Flow:
1. POST /subscription/create/{plan}   -> pending subscription + Razorpay order
2. client completes Razorpay checkout
3. POST /subscription/verify           -> checkout signature checked, subscription active
   (or the payment.captured webhook activates it)
"""

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from app.core.guards import Identity, require_auth, require_kyc
from app.models.base import success_response
from app.models.subscription import SubscriptionResponse, VerifyPaymentRequest
from app.services.subscription_service import SubscriptionService, get_subscription_service
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscription", tags=["Subscription"])
webhook_router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


def _subscription_json(subscription: dict) -> dict:
    return SubscriptionResponse.from_record(subscription).model_dump(mode="json")


@router.post("/create/{plan_name}")
def create_subscription(
    plan_name: str,
    identity: Identity = Depends(require_kyc),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """Start a plan purchase (silver or gold). Requires approved KYC."""
    result = subscription_service.create_subscription(identity.user_id, plan_name)
    return success_response(data={
        "subscription": _subscription_json(result["subscription"]),
        "order": result["order"],
        "key_id": result["key_id"],
    })


@router.post("/verify")
def verify_payment(
    request: VerifyPaymentRequest,
    identity: Identity = Depends(require_auth),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    subscription = subscription_service.verify_payment(
        identity.user_id,
        request.razorpay_order_id,
        request.razorpay_payment_id,
        request.razorpay_signature,
    )
    return success_response(data=_subscription_json(subscription), message="Payment verified")


@router.post("/{subscription_id}/cancel")
def cancel_subscription(
    subscription_id: str,
    identity: Identity = Depends(require_auth),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    subscription = subscription_service.cancel(identity.user_id, subscription_id)
    return success_response(data=_subscription_json(subscription), message="Subscription cancelled")


@router.get("/current")
def current_subscription(
    identity: Identity = Depends(require_auth),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    subscription = subscription_service.get_current(identity.user_id)
    return success_response(data={
        "subscription": _subscription_json(subscription) if subscription else None,
    })


@webhook_router.post("/razorpay")
async def razorpay_webhook(
    request: Request,
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """Razorpay webhook. Authenticated by the X-Razorpay-Signature HMAC over the raw body."""
    body = await request.body()
    signature = request.headers.get("X-Razorpay-Signature", "")
    result = await run_in_threadpool(subscription_service.handle_webhook, body, signature)
    return success_response(data=result)
