import os

# Settings are read once at import time
os.environ["USE_MOCK_DB"] = "true"
os.environ["OTP_PROVIDER"] = "mock"
os.environ["MOCK_OTP_CODE"] = "123456"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ADMIN_MOBILES"] = "+919999999999"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.config import firebase  # noqa: E402
from app.config.mock_firestore import MockFirestore  # noqa: E402
from app.main import app  # noqa: E402
from app.models.worker import SubscriptionPlan  # noqa: E402
from app.services.token_service import get_token_service  # noqa: E402
from app.services.worker_query import build_search_keys  # noqa: E402
from app.utils.firestore_helpers import utcnow  # noqa: E402
from app.utils.geo import geo_point  # noqa: E402

API = "/api/v1"
ADMIN_MOBILE = "919999999999"
CENTER = (12.9716, 77.5946)


@pytest.fixture
def db(monkeypatch):
    """A fresh in-memory Firestore for every test."""
    mock_db = MockFirestore()
    monkeypatch.setattr(firebase, "db", mock_db)
    return mock_db


@pytest.fixture
def client(db):
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make_user(mobile="919876543210", kyc_status="approved", **fields):
        user_id = f"user-{mobile}"
        now = utcnow()
        data = {
            "mobile": mobile,
            "email": None,
            "name": None,
            "profile_photo": None,
            "city": None,
            "pincode": None,
            "kyc_status": kyc_status,
            "is_active": True,
            "fcm_token": None,
            "last_login_at": now,
            "created_at": now,
            "updated_at": now,
        }
        data.update(fields)
        db.collection("users").document(user_id).set(data)
        db.collection("user_mobiles").document(mobile).set({"user_id": user_id, "created_at": now})
        return {"id": user_id, **data}

    return _make_user


@pytest.fixture
def make_worker(db):
    def _make_worker(
        worker_id,
        categories=("plumbing",),
        subcategories=(),
        plan=SubscriptionPlan.NONE,
        rating=0.0,
        total_reviews=0,
        is_verified=True,
        is_available=True,
        city=None,
        location=None,
    ):
        now = utcnow()
        data = {
            "user_id": worker_id,
            "categories": list(categories),
            "subcategories": list(subcategories),
            "search_keys": build_search_keys(categories, subcategories),
            "experience_years": 2,
            "description": None,
            "hourly_rate": 300.0,
            "license_number": None,
            "service_areas": [],
            "city": city,
            "subscription_plan": plan.value,
            "plan_rank": plan.rank,
            "subscription_expires_at": None,
            "is_verified": is_verified,
            "is_available": is_available,
            "rating": rating,
            "total_reviews": total_reviews,
            "total_jobs_completed": 0,
            "location": geo_point(*location) if location else None,
            "location_lat": location[0] if location else None,
            "created_at": now,
            "updated_at": now,
        }
        db.collection("worker_profiles").document(worker_id).set(data)
        return {"id": worker_id, **data}

    return _make_worker


def auth_headers(user, refresh=False):
    tokens = get_token_service()
    issue = tokens.issue_refresh_token if refresh else tokens.issue_access_token
    return {"Authorization": f"Bearer {issue(user['id'], user['mobile'])}"}


@pytest.fixture(name="auth_headers")
def auth_headers_fixture():
    return auth_headers
