import hashlib
import hmac
import json
from datetime import timedelta

import pytest

from app.core.errors import InvalidInputError, NotFoundError, ServiceUnavailableError, UnauthorizedError
from app.services.payments.base import PaymentGateway, PaymentGatewayError, PaymentSignatureError
from app.services.payments.razorpay_gateway import RazorpayGateway
from app.services.subscription_service import SubscriptionService, get_subscription_service
from app.services.user_service import UserService
from app.services.worker_service import WorkerService
from app.utils.firestore_helpers import utcnow

from conftest import API


class FakeGateway(PaymentGateway):
    name = "fake"
    key_id = "rzp_test_key"

    def __init__(self, fail_orders=False):
        self.fail_orders = fail_orders
        self.orders = []

    def create_order(self, amount, receipt, notes=None):
        if self.fail_orders:
            raise PaymentGatewayError("gateway down")
        order = {"id": f"order_{len(self.orders) + 1}", "amount": int(amount * 100), "currency": "INR"}
        self.orders.append((order, receipt, notes))
        return order

    def verify_payment_signature(self, order_id, payment_id, signature):
        if signature != f"sig:{order_id}:{payment_id}":
            raise PaymentSignatureError("bad signature")

    def verify_webhook_signature(self, body, signature):
        if signature != "good":
            raise PaymentSignatureError("bad signature")


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def service(db, gateway):
    return SubscriptionService(gateway=gateway, user_service=UserService(), worker_service=WorkerService())


@pytest.fixture
def worker(make_user, make_worker):
    user = make_user(kyc_status="approved")
    make_worker(user["id"])
    return user


def _user(db, user_id):
    return db.collection("users").document(user_id).get().to_dict()


def _profile(db, user_id):
    return db.collection("worker_profiles").document(user_id).get().to_dict()


def _purchase(service, user_id, plan="silver"):
    result = service.create_subscription(user_id, plan)
    order_id = result["order"]["id"]
    return service.verify_payment(user_id, order_id, "pay_1", f"sig:{order_id}:pay_1")


def test_create_is_pending_with_order(service, gateway, worker, db):
    result = service.create_subscription(worker["id"], "Gold")

    subscription = result["subscription"]
    assert subscription["status"] == "pending"
    assert subscription["price"] == 799.0
    assert subscription["subscription_type"] == "worker"
    assert result["order"] == {"id": "order_1", "amount": 79900, "currency": "INR"}
    assert result["key_id"] == "rzp_test_key"
    stored = db.collection("subscriptions").document(subscription["id"]).get().to_dict()
    assert stored["payment_order_id"] == "order_1"
    # Nothing is granted before payment
    assert _profile(db, worker["id"])["plan_rank"] == 0


@pytest.mark.parametrize("plan", ["platinum", "none", ""])
def test_invalid_plan(service, worker, plan):
    with pytest.raises(InvalidInputError):
        service.create_subscription(worker["id"], plan)


def test_verified_payment_activates_and_refreshes_mirrors(service, worker, db):
    subscription = _purchase(service, worker["id"], "silver")

    assert subscription["status"] == "active"
    assert subscription["payment_id"] == "pay_1"
    assert subscription["expires_at"] - subscription["starts_at"] == timedelta(days=365)

    user = _user(db, worker["id"])
    assert user["subscription_id"] == subscription["id"]
    assert user["subscription_plan"] == "silver"
    profile = _profile(db, worker["id"])
    assert profile["subscription_plan"] == "silver"
    assert profile["plan_rank"] == 1


def test_bad_signature_leaves_subscription_pending(service, worker, db):
    result = service.create_subscription(worker["id"], "silver")

    with pytest.raises(InvalidInputError):
        service.verify_payment(worker["id"], result["order"]["id"], "pay_1", "forged")

    stored = db.collection("subscriptions").document(result["subscription"]["id"]).get().to_dict()
    assert stored["status"] == "pending"


def test_verify_other_users_order_is_not_found(service, worker, make_user):
    result = service.create_subscription(worker["id"], "silver")
    other = make_user(mobile="919811111111")
    order_id = result["order"]["id"]

    with pytest.raises(NotFoundError):
        service.verify_payment(other["id"], order_id, "pay_1", f"sig:{order_id}:pay_1")


def test_new_purchase_supersedes_previous_plan(service, worker, db):
    first = _purchase(service, worker["id"], "silver")
    second = _purchase(service, worker["id"], "gold")

    assert db.collection("subscriptions").document(first["id"]).get().to_dict()["status"] == "cancelled"
    assert _profile(db, worker["id"])["plan_rank"] == 2
    assert _user(db, worker["id"])["subscription_id"] == second["id"]


def test_cancel_clears_mirrors(service, worker, db):
    subscription = _purchase(service, worker["id"], "gold")

    cancelled = service.cancel(worker["id"], subscription["id"])

    assert cancelled["status"] == "cancelled"
    assert [h["to"] for h in cancelled["status_history"]] == ["active", "cancelled"]
    assert _profile(db, worker["id"])["plan_rank"] == 0
    assert _user(db, worker["id"])["subscription_plan"] == "none"

    with pytest.raises(InvalidInputError):
        service.cancel(worker["id"], subscription["id"])


def test_current_expires_lapsed_subscription(service, worker, db):
    subscription = _purchase(service, worker["id"], "gold")
    db.collection("subscriptions").document(subscription["id"]).update({
        "expires_at": utcnow() - timedelta(days=1),
    })

    assert service.get_current(worker["id"]) is None

    stored = db.collection("subscriptions").document(subscription["id"]).get().to_dict()
    assert stored["status"] == "expired"
    assert _profile(db, worker["id"])["subscription_plan"] == "none"


def test_current_returns_active(service, worker):
    subscription = _purchase(service, worker["id"], "silver")

    assert service.get_current(worker["id"])["id"] == subscription["id"]


def test_gateway_failure_cancels_pending_record(db, worker):
    service = SubscriptionService(gateway=FakeGateway(fail_orders=True))

    with pytest.raises(ServiceUnavailableError):
        service.create_subscription(worker["id"], "silver")

    statuses = [doc.to_dict()["status"] for doc in db.collection("subscriptions").stream()]
    assert statuses == ["cancelled"]


def _webhook(order_id, event="payment.captured"):
    return json.dumps({
        "event": event,
        "payload": {"payment": {"entity": {"id": "pay_9", "order_id": order_id}}},
    }).encode()


def test_webhook_capture_activates(service, worker, db):
    result = service.create_subscription(worker["id"], "gold")

    outcome = service.handle_webhook(_webhook(result["order"]["id"]), "good")

    assert outcome["handled"] is True
    stored = db.collection("subscriptions").document(result["subscription"]["id"]).get().to_dict()
    assert stored["status"] == "active"
    assert stored["payment_id"] == "pay_9"
    assert _profile(db, worker["id"])["plan_rank"] == 2

    # Redelivery is harmless
    assert service.handle_webhook(_webhook(result["order"]["id"]), "good")["handled"] is True


def test_webhook_bad_signature(service):
    with pytest.raises(UnauthorizedError):
        service.handle_webhook(_webhook("order_1"), "bad")


def test_webhook_other_events_are_ignored(service, worker):
    result = service.create_subscription(worker["id"], "gold")

    outcome = service.handle_webhook(_webhook(result["order"]["id"], event="payment.failed"), "good")

    assert outcome == {"event": "payment.failed", "handled": False}


def test_razorpay_webhook_signature_is_hmac_of_raw_body():
    gateway = RazorpayGateway(key_id=None, key_secret=None, webhook_secret="whsec")
    body = b'{"event":"payment.captured"}'
    signature = hmac.new(b"whsec", body, hashlib.sha256).hexdigest()

    gateway.verify_webhook_signature(body, signature)
    with pytest.raises(PaymentSignatureError):
        gateway.verify_webhook_signature(body, "0" * 64)


def test_razorpay_without_keys_cannot_create_orders():
    with pytest.raises(PaymentGatewayError):
        RazorpayGateway(key_id=None, key_secret=None).create_order(499.0, receipt="r1")


def test_subscription_routes(client, worker, gateway, auth_headers):
    client.app.dependency_overrides[get_subscription_service] = lambda: SubscriptionService(gateway=gateway)
    headers = auth_headers(worker)

    created = client.post(f"{API}/subscription/create/silver", headers=headers)
    assert created.status_code == 200
    order_id = created.json()["data"]["order"]["id"]

    verified = client.post(f"{API}/subscription/verify", headers=headers, json={
        "razorpay_order_id": order_id,
        "razorpay_payment_id": "pay_1",
        "razorpay_signature": f"sig:{order_id}:pay_1",
    })
    assert verified.status_code == 200
    assert verified.json()["data"]["status"] == "active"

    current = client.get(f"{API}/subscription/current", headers=headers).json()["data"]["subscription"]
    assert current["plan_name"] == "silver"

    cancelled = client.post(f"{API}/subscription/{current['id']}/cancel", headers=headers)
    assert cancelled.json()["data"]["status"] == "cancelled"
    assert client.get(f"{API}/subscription/current", headers=headers).json()["data"]["subscription"] is None


def test_subscription_create_requires_kyc(client, make_user, auth_headers):
    user = make_user(kyc_status="submitted")

    resp = client.post(f"{API}/subscription/create/silver", headers=auth_headers(user))

    assert resp.status_code == 403


def test_webhook_route(client, worker, gateway):
    service = SubscriptionService(gateway=gateway)
    client.app.dependency_overrides[get_subscription_service] = lambda: service
    order_id = service.create_subscription(worker["id"], "gold")["order"]["id"]

    resp = client.post(
        f"{API}/webhooks/razorpay",
        content=_webhook(order_id),
        headers={"X-Razorpay-Signature": "good", "Content-Type": "application/json"},
    )

    assert resp.status_code == 200
    assert resp.json()["data"]["handled"] is True

    resp = client.post(f"{API}/webhooks/razorpay", content=_webhook(order_id), headers={"X-Razorpay-Signature": "bad"})
    assert resp.status_code == 401
