import pytest

from app.services.status_workflow import KycWorkflow, SubscriptionWorkflow

from conftest import ADMIN_MOBILE, API


@pytest.mark.parametrize("current,new,allowed", [
    ("pending", "submitted", True),
    ("submitted", "approved", True),
    ("submitted", "rejected", True),
    ("rejected", "submitted", True),
    ("pending", "approved", False),
    ("approved", "submitted", False),
    ("bogus", "submitted", False),
])
def test_kyc_transitions(current, new, allowed):
    assert KycWorkflow.is_valid_transition(current, new) is allowed


def test_subscription_terminal_states():
    assert SubscriptionWorkflow.get_allowed_transitions("cancelled") == []
    assert SubscriptionWorkflow.get_allowed_transitions("expired") == []
    with pytest.raises(ValueError):
        SubscriptionWorkflow.validate_and_transition("expired", "active", "system")


@pytest.fixture
def admin(make_user):
    return make_user(mobile=ADMIN_MOBILE)


def _submit(client, user, auth_headers):
    return client.post(
        f"{API}/kyc/submit",
        json={"document_type": "aadhaar", "document_url": "https://files.example.com/a.jpg"},
        headers=auth_headers(user),
    )


def _review(client, admin, user, auth_headers, status):
    return client.put(f"{API}/admin/kyc/{user['id']}", json={"status": status}, headers=auth_headers(admin))


def test_kyc_approval_unlocks_worker_profile(client, make_user, admin, auth_headers):
    user = make_user(kyc_status="pending")
    headers = auth_headers(user)

    assert client.post(f"{API}/worker/profile", json={"categories": ["cleaning"]}, headers=headers).status_code == 403

    resp = _submit(client, user, auth_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["kyc_status"] == "submitted"

    resp = _review(client, admin, user, auth_headers, "approved")
    assert resp.status_code == 200
    assert resp.json()["data"]["kyc_status"] == "approved"

    status = client.get(f"{API}/kyc/status", headers=headers).json()["data"]
    assert status["kyc_status"] == "approved"
    assert status["kyc_document_type"] == "aadhaar"

    assert client.post(f"{API}/worker/profile", json={"categories": ["cleaning"]}, headers=headers).status_code == 201


def test_rejected_kyc_can_be_resubmitted(client, make_user, admin, auth_headers, db):
    user = make_user(kyc_status="pending")
    _submit(client, user, auth_headers)
    _review(client, admin, user, auth_headers, "rejected")

    assert _submit(client, user, auth_headers).status_code == 200

    history = db.collection("users").document(user["id"]).get().to_dict()["kyc_history"]
    assert [(h["from"], h["to"]) for h in history] == [
        ("pending", "submitted"),
        ("submitted", "rejected"),
        ("rejected", "submitted"),
    ]


def test_review_requires_submission(client, make_user, admin, auth_headers):
    user = make_user(kyc_status="pending")

    resp = _review(client, admin, user, auth_headers, "approved")

    assert resp.status_code == 400


def test_approved_kyc_cannot_be_resubmitted(client, make_user, auth_headers):
    user = make_user(kyc_status="approved")

    assert _submit(client, user, auth_headers).status_code == 400


def test_review_needs_admin(client, make_user, auth_headers):
    user = make_user(kyc_status="submitted")

    resp = client.put(f"{API}/admin/kyc/{user['id']}", json={"status": "approved"}, headers=auth_headers(user))

    assert resp.status_code == 403


def test_review_unknown_user(client, admin, auth_headers):
    resp = client.put(f"{API}/admin/kyc/nobody", json={"status": "approved"}, headers=auth_headers(admin))

    assert resp.status_code == 404


def test_profile_update_validates_email(client, make_user, auth_headers):
    user = make_user()

    resp = client.put(f"{API}/user/profile", json={"email": "nope"}, headers=auth_headers(user))
    assert resp.status_code == 400

    resp = client.put(f"{API}/user/profile", json={"name": "Asha", "email": "Asha@Example.com"}, headers=auth_headers(user))
    assert resp.status_code == 200
    assert resp.json()["data"]["name"] == "Asha"


def test_fcm_token(client, db, make_user, auth_headers):
    user = make_user()

    resp = client.put(f"{API}/user/fcm-token", json={"android": "tok-a"}, headers=auth_headers(user))

    assert resp.status_code == 200
    stored = db.collection("users").document(user["id"]).get().to_dict()
    assert stored["fcm_token"] == {"android": "tok-a", "ios": None}


def test_delete_account_is_soft(client, db, make_user, auth_headers):
    user = make_user()

    assert client.delete(f"{API}/user/account", headers=auth_headers(user)).status_code == 200

    stored = db.collection("users").document(user["id"]).get().to_dict()
    assert stored["is_active"] is False
    resp = client.post(f"{API}/auth/verify-otp", json={"mobile": user["mobile"], "otp": "123456"})
    assert resp.status_code == 403


def test_health(client):
    assert client.get(f"{API}/health").json()["data"]["status"] == "healthy"
    assert client.get(f"{API}/health/db").json()["data"]["connected"] is True


def test_unknown_route_uses_envelope(client):
    resp = client.get(f"{API}/nope")

    assert resp.status_code == 404
    assert resp.json()["success"] is False
