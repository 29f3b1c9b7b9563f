"""
Subscription Service - plan purchases and the mirrors they feed.

A subscription is created `pending` together with a gateway order and only
becomes `active` once the payment is confirmed, either by the checkout
signature the client posts back or by the gateway's webhook.

The subscription record is the source of truth. The user record
(subscription_id / subscription_plan / subscription_expires_at) and the
worker profile (subscription_plan / plan_rank / subscription_expires_at)
hold a cached copy for fast reads and search ranking. The cache is
recomputed from the subscriptions collection after every status
transition, never patched independently.
"""

import json
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from app.config.firebase import get_db
from app.core.errors import InvalidInputError, NotFoundError, ServiceUnavailableError, UnauthorizedError
from app.models.subscription import SubscriptionStatus, SubscriptionType
from app.models.worker import SubscriptionPlan
from app.services.payments import (
    PaymentGateway,
    PaymentGatewayError,
    PaymentSignatureError,
    get_payment_gateway,
)
from app.services.status_workflow import SubscriptionWorkflow
from app.services.user_service import UserService, get_user_service
from app.services.worker_service import WorkerService, get_worker_service
from app.utils.firestore_helpers import snapshot_to_dict, to_utc, utcnow, where_filter

logger = logging.getLogger(__name__)

SUBSCRIPTIONS = "subscriptions"

# INR
PLAN_PRICES = {
    SubscriptionPlan.SILVER: 499.0,
    SubscriptionPlan.GOLD: 799.0,
}
SUBSCRIPTION_PERIOD = timedelta(days=365)

# Webhook events that mean the money has been captured
CAPTURE_EVENTS = ("payment.captured", "order.paid")


class SubscriptionService:
    def __init__(
        self,
        gateway: Optional[PaymentGateway] = None,
        user_service: Optional[UserService] = None,
        worker_service: Optional[WorkerService] = None,
    ):
        self._gateway = gateway
        self._user_service = user_service
        self._worker_service = worker_service

    @property
    def db(self):
        return get_db()

    @property
    def gateway(self) -> PaymentGateway:
        return self._gateway or get_payment_gateway()

    @property
    def users(self) -> UserService:
        return self._user_service or get_user_service()

    @property
    def workers(self) -> WorkerService:
        return self._worker_service or get_worker_service()

    # ------------------------------------------------------------ purchase

    def create_subscription(self, user_id: str, plan_name: str) -> Dict[str, Any]:
        """
        Start a plan purchase.

        Returns:
            {"subscription": <record>, "order": {id, amount, currency}, "key_id": ...}

        Raises:
            InvalidInputError: unknown or free plan
            ServiceUnavailableError: the gateway could not create the order
        """
        plan = self._parse_plan(plan_name)
        price = PLAN_PRICES[plan]
        subscription_type = (
            SubscriptionType.WORKER if self.workers.get_by_owner(user_id) else SubscriptionType.JOB_SEEKER
        )

        now = utcnow()
        ref = self.db.collection(SUBSCRIPTIONS).document()
        subscription = {
            "user_id": user_id,
            "subscription_type": subscription_type.value,
            "plan_name": plan.value,
            "price": price,
            "status": SubscriptionStatus.PENDING.value,
            "starts_at": None,
            "expires_at": None,
            "auto_renew": False,
            "payment_order_id": None,
            "payment_id": None,
            "status_history": [],
            "created_at": now,
            "updated_at": now,
        }
        ref.set(subscription)
        subscription["id"] = ref.id

        try:
            order = self.gateway.create_order(
                price,
                receipt=ref.id,
                notes={"subscription_id": ref.id, "user_id": user_id, "plan": plan.value},
            )
        except PaymentGatewayError as e:
            self._transition(subscription, SubscriptionStatus.CANCELLED, changed_by="system", note=str(e))
            raise ServiceUnavailableError("Payment gateway unavailable, please retry") from e

        ref.update({"payment_order_id": order["id"], "updated_at": utcnow()})
        subscription["payment_order_id"] = order["id"]
        logger.info(f"Subscription {ref.id} created for user {user_id}: {plan.value} @ {price}")

        return {
            "subscription": subscription,
            "order": {
                "id": order["id"],
                "amount": order.get("amount"),
                "currency": order.get("currency"),
            },
            "key_id": getattr(self.gateway, "key_id", None),
        }

    def verify_payment(self, user_id: str, order_id: str, payment_id: str, signature: str) -> Dict[str, Any]:
        """Activate the caller's subscription after checking the checkout signature."""
        subscription = self._find_by_order(order_id)
        if subscription is None or subscription.get("user_id") != user_id:
            raise NotFoundError("Subscription not found")

        try:
            self.gateway.verify_payment_signature(order_id, payment_id, signature)
        except PaymentSignatureError as e:
            logger.warning(f"Payment signature mismatch for subscription {subscription['id']}")
            raise InvalidInputError("Payment verification failed") from e
        except PaymentGatewayError as e:
            raise ServiceUnavailableError(str(e)) from e

        if subscription["status"] == SubscriptionStatus.ACTIVE.value:
            return subscription
        return self._activate(subscription, payment_id, changed_by=user_id)

    def handle_webhook(self, body: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Process a gateway webhook. Only capture events change state; anything
        else is acknowledged and ignored so the gateway stops retrying.
        """
        try:
            self.gateway.verify_webhook_signature(body, signature or "")
        except PaymentSignatureError as e:
            raise UnauthorizedError("Invalid signature") from e
        except PaymentGatewayError as e:
            raise ServiceUnavailableError(str(e)) from e

        try:
            event = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise InvalidInputError("Malformed webhook payload") from e

        event_type = event.get("event", "")
        if event_type not in CAPTURE_EVENTS:
            return {"event": event_type, "handled": False}

        payment = ((event.get("payload") or {}).get("payment") or {}).get("entity") or {}
        order_id = payment.get("order_id")
        subscription = self._find_by_order(order_id) if order_id else None
        if subscription is None:
            logger.warning(f"Webhook {event_type}: no subscription for order {order_id}")
            return {"event": event_type, "handled": False}

        if subscription["status"] == SubscriptionStatus.PENDING.value:
            self._activate(subscription, payment.get("id"), changed_by="razorpay_webhook")
        return {"event": event_type, "handled": True, "subscription_id": subscription["id"]}

    # ----------------------------------------------------------- lifecycle

    def cancel(self, user_id: str, subscription_id: str) -> Dict[str, Any]:
        subscription = self._get(subscription_id)
        if subscription is None or subscription.get("user_id") != user_id:
            raise NotFoundError("Subscription not found")

        self._transition(subscription, SubscriptionStatus.CANCELLED, changed_by=user_id)
        self._refresh_mirrors(user_id)
        logger.info(f"Subscription {subscription_id} cancelled by user {user_id}")
        return subscription

    def get_current(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        The user's active subscription, or None.

        An active subscription past its expiry is moved to `expired` here,
        on read, since nothing runs in the background.
        """
        now = utcnow()
        current = None
        lapsed = False
        for subscription in self._active_for(user_id):
            expires_at = to_utc(subscription.get("expires_at"))
            if expires_at is not None and expires_at <= now:
                self._transition(subscription, SubscriptionStatus.EXPIRED, changed_by="system")
                lapsed = True
            elif current is None:
                current = subscription

        if lapsed:
            self._refresh_mirrors(user_id)
        return current

    # ------------------------------------------------------------ internals

    def _activate(self, subscription: Dict[str, Any], payment_id: Optional[str], changed_by: str) -> Dict[str, Any]:
        user_id = subscription["user_id"]

        # A new purchase replaces whatever plan was running before
        for previous in self._active_for(user_id):
            if previous["id"] != subscription["id"]:
                self._transition(previous, SubscriptionStatus.CANCELLED, changed_by="system", note="superseded")

        now = utcnow()
        self._transition(
            subscription,
            SubscriptionStatus.ACTIVE,
            changed_by=changed_by,
            extra={
                "payment_id": payment_id,
                "starts_at": now,
                "expires_at": now + SUBSCRIPTION_PERIOD,
            },
        )
        self._refresh_mirrors(user_id)
        logger.info(f"Subscription {subscription['id']} activated for user {user_id}")
        return subscription

    def _transition(
        self,
        subscription: Dict[str, Any],
        new_status: SubscriptionStatus,
        changed_by: str,
        note: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        current = subscription.get("status")
        if current == new_status.value:
            raise InvalidInputError(f"Subscription is already {current}")
        try:
            result = SubscriptionWorkflow.validate_and_transition(current, new_status.value, changed_by, note)
        except ValueError as e:
            raise InvalidInputError(str(e)) from e

        update_data = dict(extra or {})
        update_data.update({
            "status": new_status.value,
            "status_history": (subscription.get("status_history") or []) + [result["history_entry"]],
            "updated_at": utcnow(),
        })
        self.db.collection(SUBSCRIPTIONS).document(subscription["id"]).update(update_data)
        subscription.update(update_data)

    def _refresh_mirrors(self, user_id: str) -> None:
        """Recompute the cached plan fields on the user and worker records."""
        now = utcnow()
        live = [
            s for s in self._active_for(user_id)
            if to_utc(s.get("expires_at")) is None or to_utc(s["expires_at"]) > now
        ]
        current = live[0] if live else None

        plan = SubscriptionPlan.parse(current["plan_name"]) if current else SubscriptionPlan.NONE
        expires_at = current.get("expires_at") if current else None

        self.users.apply_subscription_mirror(user_id, {
            "subscription_id": current["id"] if current else None,
            "subscription_plan": plan.value,
            "subscription_expires_at": expires_at,
        })
        self.workers.apply_subscription_mirror(user_id, plan, expires_at)

    def _active_for(self, user_id: str) -> List[Dict[str, Any]]:
        """Active subscriptions for a user, latest expiry first."""
        query = where_filter(self.db.collection(SUBSCRIPTIONS), "user_id", "==", user_id)
        query = where_filter(query, "status", "==", SubscriptionStatus.ACTIVE.value)
        subscriptions = [snapshot_to_dict(doc) for doc in query.stream()]
        subscriptions.sort(key=lambda s: to_utc(s.get("expires_at")) or utcnow(), reverse=True)
        return subscriptions

    def _find_by_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        query = where_filter(self.db.collection(SUBSCRIPTIONS), "payment_order_id", "==", order_id)
        for doc in query.limit(1).stream():
            return snapshot_to_dict(doc)
        return None

    def _get(self, subscription_id: str) -> Optional[Dict[str, Any]]:
        return snapshot_to_dict(self.db.collection(SUBSCRIPTIONS).document(subscription_id).get())

    @staticmethod
    def _parse_plan(plan_name: str) -> SubscriptionPlan:
        try:
            plan = SubscriptionPlan((plan_name or "").strip().lower())
        except ValueError:
            plan = SubscriptionPlan.NONE
        if plan not in PLAN_PRICES:
            raise InvalidInputError(f"Invalid plan: {plan_name}")
        return plan


_subscription_service = None


def get_subscription_service() -> SubscriptionService:
    global _subscription_service
    if _subscription_service is None:
        _subscription_service = SubscriptionService()
    return _subscription_service
