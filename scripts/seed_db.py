"""
Seed demo users and worker profiles into the mock DB or Firestore.

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to configured DB: python scripts/seed_db.py --apply
  - Force mock DB even if FIREBASE configured: python scripts/seed_db.py --apply --force-mock

Behavior:
  - Builds a handful of KYC-approved users, each owning a verified worker
    profile spread across plans, ratings and distances around a city centre.
  - Writes users/, user_mobiles/ and worker_profiles/ through
    `app.config.firebase.get_db()`, so the documents have exactly the shape
    the API writes (search_keys, plan_rank, location_lat).
  - Document ids are deterministic; re-running overwrites the same records.

NOTE: When applying to real Firestore, ensure `FIREBASE_CREDENTIALS_PATH` and `USE_MOCK_DB=false` are set in `.env`.
"""

import argparse
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

from app.config import firebase
from app.core.settings import settings
from app.models.user import KycStatus
from app.models.worker import SubscriptionPlan
from app.services.worker_query import build_search_keys
from app.utils.geo import geo_point
from app.utils.geocoding import normalize_city_name

CITY = "Bengaluru"
CENTER = (12.9716, 77.5946)

# name, categories, subcategories, plan, rating, reviews, (dlat, dlng)
DEMO_WORKERS = [
    ("Ravi Kumar", ["plumbing"], ["pipe repair"], SubscriptionPlan.GOLD, 4.2, 31, (0.010, 0.004)),
    ("Anita Sharma", ["plumbing"], ["bathroom fitting"], SubscriptionPlan.SILVER, 4.8, 52, (0.020, -0.010)),
    ("Mohd Irfan", ["plumbing", "electrical"], ["pipe repair", "wiring"], SubscriptionPlan.NONE, 4.9, 120, (-0.030, 0.020)),
    ("Suresh Babu", ["electrical"], ["wiring"], SubscriptionPlan.GOLD, 3.9, 12, (0.050, 0.050)),
    ("Lakshmi N", ["cleaning"], ["deep cleaning"], SubscriptionPlan.NONE, 4.5, 8, (0.150, 0.000)),
]


def build_seed() -> List[Tuple[str, str, Dict[str, Any]]]:
    now = datetime.now(timezone.utc)
    city = normalize_city_name(CITY)
    records = []

    for index, (name, categories, subcategories, plan, rating, reviews, offset) in enumerate(DEMO_WORKERS, start=1):
        user_id = f"seed-user-{index}"
        mobile = f"9190000000{index:02d}"
        latitude, longitude = CENTER[0] + offset[0], CENTER[1] + offset[1]

        records.append(("users", user_id, {
            "mobile": mobile,
            "email": f"worker{index}@example.com",
            "name": name,
            "profile_photo": None,
            "city": CITY,
            "pincode": None,
            "kyc_status": KycStatus.APPROVED.value,
            "is_active": True,
            "fcm_token": None,
            "subscription_plan": plan.value,
            "last_login_at": now,
            "created_at": now,
            "updated_at": now,
        }))
        records.append(("user_mobiles", mobile, {"user_id": user_id, "created_at": now}))
        records.append(("worker_profiles", user_id, {
            "user_id": user_id,
            "categories": categories,
            "subcategories": subcategories,
            "search_keys": build_search_keys(categories, subcategories),
            "experience_years": 3 + index,
            "description": f"{name} - {', '.join(categories)}",
            "hourly_rate": 300.0 + 50 * index,
            "license_number": None,
            "service_areas": [CITY],
            "city": city,
            "subscription_plan": plan.value,
            "plan_rank": plan.rank,
            "subscription_expires_at": None,
            "is_verified": True,
            "is_available": True,
            "rating": rating,
            "total_reviews": reviews,
            "total_jobs_completed": reviews * 2,
            "location": geo_point(latitude, longitude),
            "location_lat": latitude,
            "created_at": now,
            "updated_at": now,
        }))

    return records


def write_to_db(db: Any, records: List[Tuple[str, str, Dict[str, Any]]], apply: bool = False):
    for collection, doc_id, data in records:
        print(f"Preparing: {collection}/{doc_id}")
        if not apply:
            continue
        db.collection(collection).document(doc_id).set(data)
        print(f"Wrote: {collection}/{doc_id}")


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Write seed to the DB instead of dry-run")
    parser.add_argument("--force-mock", action="store_true", help="Force use of mock DB even if FIREBASE configured")
    args = parser.parse_args()

    if args.force_mock:
        print("Forcing mock DB usage for this run.")
        settings.USE_MOCK_DB = True

    records = build_seed()
    db = firebase.get_db() if args.apply else None
    write_to_db(db, records, apply=args.apply)

    if args.apply:
        print("Seeding completed.")
    else:
        print("Dry run complete. Re-run with --apply to write to DB.")


if __name__ == "__main__":
    main()
