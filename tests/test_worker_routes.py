from datetime import datetime, timezone

import pytest

from app.core.errors import ConflictError, InvalidInputError
from app.models.worker import CreateWorkerProfileRequest, SubscriptionPlan
from app.services.worker_service import WorkerService

from conftest import ADMIN_MOBILE, API

PROFILE = {
    "categories": ["Plumbing"],
    "subcategories": ["Pipe Repair"],
    "experience_years": 5,
    "hourly_rate": 350,
    "description": "Leak fixes and fittings",
    "service_areas": ["Koramangala"],
}


@pytest.fixture
def worker_user(make_user):
    return make_user(mobile="919812345678", kyc_status="approved", city="Bengaluru")


def _create(client, user, auth_headers, **overrides):
    return client.post(f"{API}/worker/profile", json={**PROFILE, **overrides}, headers=auth_headers(user))


def test_create_profile(client, db, worker_user, auth_headers):
    resp = _create(client, worker_user, auth_headers, latitude=12.97, longitude=77.59)

    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["id"] == worker_user["id"]
    assert data["is_verified"] is False
    assert data["subscription_plan"] == "none"
    assert data["city"] == "bengaluru"
    assert data["location"] == {"type": "Point", "coordinates": [77.59, 12.97]}

    stored = db.collection("worker_profiles").document(worker_user["id"]).get().to_dict()
    assert stored["plan_rank"] == 0
    assert "c:plumbing" in stored["search_keys"]
    assert stored["location_lat"] == 12.97


def test_second_profile_is_conflict(client, worker_user, auth_headers):
    assert _create(client, worker_user, auth_headers).status_code == 201

    resp = _create(client, worker_user, auth_headers)

    assert resp.status_code == 409
    assert resp.json()["error"] == "conflict"


def test_uniqueness_is_enforced_by_the_store(db, worker_user):
    service = WorkerService()
    request = CreateWorkerProfileRequest(**PROFILE)
    service.create_profile(worker_user, request)

    with pytest.raises(ConflictError):
        service.create_profile(worker_user, request)
    assert len(list(db.collection("worker_profiles").stream())) == 1


def test_create_with_half_a_location_is_invalid(client, worker_user, auth_headers):
    resp = _create(client, worker_user, auth_headers, latitude=12.97)

    assert resp.status_code == 400


def test_create_requires_auth(client):
    resp = client.post(f"{API}/worker/profile", json=PROFILE)

    assert resp.status_code == 401


def test_update_location_rejects_bad_latitude_before_any_write(client, db, worker_user, auth_headers):
    _create(client, worker_user, auth_headers)
    before = db.collection("worker_profiles").document(worker_user["id"]).get().to_dict()

    resp = client.post(
        f"{API}/worker/location",
        json={"latitude": 95, "longitude": 10},
        headers=auth_headers(worker_user),
    )

    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid latitude"
    after = db.collection("worker_profiles").document(worker_user["id"]).get().to_dict()
    assert after == before


def test_update_location_service_validates_first(db, worker_user):
    with pytest.raises(InvalidInputError):
        WorkerService().update_location(worker_user["id"], 95, 10)


def test_update_location(client, db, worker_user, auth_headers):
    _create(client, worker_user, auth_headers)

    resp = client.post(
        f"{API}/worker/location",
        json={"latitude": 12.5, "longitude": 77.1},
        headers=auth_headers(worker_user),
    )

    assert resp.status_code == 200
    stored = db.collection("worker_profiles").document(worker_user["id"]).get().to_dict()
    assert stored["location"]["coordinates"] == [77.1, 12.5]
    assert stored["location_lat"] == 12.5


def test_update_location_without_profile_is_not_found(client, worker_user, auth_headers):
    resp = client.post(
        f"{API}/worker/location",
        json={"latitude": 12.5, "longitude": 77.1},
        headers=auth_headers(worker_user),
    )

    assert resp.status_code == 404


def test_get_update_delete_profile(client, db, worker_user, auth_headers):
    headers = auth_headers(worker_user)
    _create(client, worker_user, auth_headers)

    resp = client.put(
        f"{API}/worker/profile",
        json={"categories": ["Electrical"], "is_available": False},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["categories"] == ["Electrical"]
    assert resp.json()["data"]["hourly_rate"] == 350

    stored = db.collection("worker_profiles").document(worker_user["id"]).get().to_dict()
    assert "c:electrical" in stored["search_keys"]
    assert "cs:electrical|pipe repair" in stored["search_keys"]
    assert "c:plumbing" not in stored["search_keys"]

    resp = client.get(f"{API}/worker/profile", headers=headers)
    assert resp.json()["data"]["is_available"] is False

    assert client.delete(f"{API}/worker/profile", headers=headers).status_code == 200
    assert client.get(f"{API}/worker/profile", headers=headers).status_code == 404
    assert client.delete(f"{API}/worker/profile", headers=headers).status_code == 404


def test_get_worker_by_id(client, make_worker):
    make_worker("w-1", rating=4.5)

    assert client.get(f"{API}/worker/w-1").json()["data"]["rating"] == 4.5
    assert client.get(f"{API}/worker/missing").status_code == 404


def test_admin_verifies_worker_and_it_becomes_searchable(client, worker_user, make_user, auth_headers):
    admin = make_user(mobile=ADMIN_MOBILE)
    _create(client, worker_user, auth_headers)

    search = client.get(f"{API}/worker/search", params={"category": "plumbing"}).json()["data"]
    assert search["pagination"]["total"] == 0

    resp = client.put(
        f"{API}/admin/workers/{worker_user['id']}/verify",
        json={"is_verified": True},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 200

    search = client.get(f"{API}/worker/search", params={"category": "plumbing"}).json()["data"]
    assert [w["id"] for w in search["workers"]] == [worker_user["id"]]


def test_non_admin_cannot_verify(client, worker_user, auth_headers):
    _create(client, worker_user, auth_headers)

    resp = client.put(
        f"{API}/admin/workers/{worker_user['id']}/verify",
        json={"is_verified": True},
        headers=auth_headers(worker_user),
    )

    assert resp.status_code == 403


def test_city_change_refreshes_worker_mirror(client, db, worker_user, auth_headers):
    _create(client, worker_user, auth_headers)

    resp = client.put(f"{API}/user/profile", json={"city": "  New   Delhi "}, headers=auth_headers(worker_user))

    assert resp.status_code == 200
    stored = db.collection("worker_profiles").document(worker_user["id"]).get().to_dict()
    assert stored["city"] == "new delhi"


def test_admin_worker_stats(client, db, make_user, make_worker, auth_headers):
    admin = make_user(mobile=ADMIN_MOBILE)
    make_worker("gold-1", plan=SubscriptionPlan.GOLD)
    make_worker("silver-1", plan=SubscriptionPlan.SILVER, is_available=False)
    make_worker("pending-1", is_verified=False)
    for day, worker_id in enumerate(["gold-1", "silver-1", "pending-1"], start=1):
        db.collection("worker_profiles").document(worker_id).update({"created_at": datetime(2025, 1, day, tzinfo=timezone.utc)})

    resp = client.get(f"{API}/admin/workers/stats", params={"limit": 2}, headers=auth_headers(admin))

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["stats"] == {
        "total_workers": 3,
        "verified_workers": 2,
        "available_workers": 2,
        "silver_subscribers": 1,
        "gold_subscribers": 1,
    }
    assert [w["id"] for w in data["workers"]] == ["pending-1", "silver-1"]
    assert data["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}


def test_admin_worker_stats_requires_admin(client, make_user, auth_headers):
    user = make_user()

    assert client.get(f"{API}/admin/workers/stats", headers=auth_headers(user)).status_code == 403
