"""
Worker Service - worker profile lifecycle.

Profiles live in worker_profiles/{user_id}. Keying the document by the
owner's id makes "one profile per user" a property of the store: create()
fails with AlreadyExists for a second profile, even when two requests race.
"""

import logging
from typing import Any, Dict, Optional

from google.api_core.exceptions import AlreadyExists, NotFound

from app.config.firebase import get_db
from app.core.errors import ConflictError, InvalidInputError, NotFoundError
from app.models.worker import CreateWorkerProfileRequest, SubscriptionPlan, UpdateWorkerProfileRequest
from app.services.worker_query import build_search_keys
from app.utils.firestore_helpers import snapshot_to_dict, utcnow
from app.utils.geo import geo_point
from app.utils.geocoding import normalize_city_name
from app.utils.validators import validate_coordinates

logger = logging.getLogger(__name__)

WORKER_PROFILES = "worker_profiles"


def _location_fields(latitude: Optional[float], longitude: Optional[float]) -> Dict[str, Any]:
    validate_coordinates(latitude, longitude)
    return {
        "location": geo_point(latitude, longitude),
        # Scalar copy of the latitude so nearby search can range-filter on it
        "location_lat": latitude,
    }


class WorkerService:
    """
    Service for worker profile management in Firestore.
    """

    @property
    def db(self):
        return get_db()

    def _ref(self, user_id: str):
        return self.db.collection(WORKER_PROFILES).document(user_id)

    def create_profile(self, user: Dict[str, Any], request: CreateWorkerProfileRequest) -> Dict[str, Any]:
        """
        Create the caller's worker profile.

        New profiles start unverified, available and on the free plan; an
        admin verifies them before they show up in public search.

        Raises:
            InvalidInputError: bad coordinates, or only one of latitude/longitude given
            ConflictError: the user already has a profile
        """
        if (request.latitude is None) != (request.longitude is None):
            raise InvalidInputError("latitude and longitude must be provided together")

        location = {"location": None, "location_lat": None}
        if request.latitude is not None:
            location = _location_fields(request.latitude, request.longitude)

        user_id = user["id"]
        plan = SubscriptionPlan.NONE
        now = utcnow()
        worker_data = {
            "user_id": user_id,
            "categories": request.categories,
            "subcategories": request.subcategories,
            "search_keys": build_search_keys(request.categories, request.subcategories),
            "experience_years": request.experience_years,
            "description": request.description,
            "hourly_rate": request.hourly_rate,
            "license_number": request.license_number,
            "service_areas": request.service_areas,
            "city": normalize_city_name(user.get("city")),
            "subscription_plan": plan.value,
            "plan_rank": plan.rank,
            "subscription_expires_at": None,
            "is_verified": False,
            "is_available": True,
            "rating": 0.0,
            "total_reviews": 0,
            "total_jobs_completed": 0,
            "created_at": now,
            "updated_at": now,
            **location,
        }

        try:
            self._ref(user_id).create(worker_data)
        except AlreadyExists as e:
            raise ConflictError("Worker profile already exists") from e

        logger.info(f"Worker profile created for user {user_id}")
        worker_data["id"] = user_id
        return worker_data

    def get_by_owner(self, user_id: str) -> Optional[Dict[str, Any]]:
        return snapshot_to_dict(self._ref(user_id).get())

    def get_by_id(self, worker_id: str) -> Dict[str, Any]:
        worker = snapshot_to_dict(self._ref(worker_id).get()) if worker_id else None
        if worker is None:
            raise NotFoundError("Worker not found")
        return worker

    def update_profile(self, user_id: str, request: UpdateWorkerProfileRequest) -> Dict[str, Any]:
        """Partial merge of the provided fields; search_keys follow the tag lists."""
        worker = self.get_by_owner(user_id)
        if worker is None:
            raise NotFoundError("Worker profile not found")

        update_data = request.model_dump(exclude_none=True)
        if "categories" in update_data and not update_data["categories"]:
            raise InvalidInputError("At least one category is required")

        if "categories" in update_data or "subcategories" in update_data:
            update_data["search_keys"] = build_search_keys(
                update_data.get("categories", worker.get("categories")),
                update_data.get("subcategories", worker.get("subcategories")),
            )

        update_data["updated_at"] = utcnow()
        self._update(user_id, update_data)
        worker.update(update_data)
        return worker

    def delete_profile(self, user_id: str) -> None:
        ref = self._ref(user_id)
        if not ref.get().exists:
            raise NotFoundError("Worker profile not found")
        ref.delete()
        logger.info(f"Worker profile deleted for user {user_id}")

    def update_location(self, user_id: str, latitude: float, longitude: float) -> Dict[str, Any]:
        update_data = _location_fields(latitude, longitude)
        update_data["updated_at"] = utcnow()
        self._update(user_id, update_data)
        return update_data

    def set_verified(self, worker_id: str, is_verified: bool) -> Dict[str, Any]:
        worker = self.get_by_id(worker_id)
        update_data = {"is_verified": is_verified, "updated_at": utcnow()}
        self._update(worker_id, update_data)
        worker.update(update_data)
        logger.info(f"Worker {worker_id} verification set to {is_verified}")
        return worker

    def sync_owner_city(self, user_id: str, city: Optional[str]) -> None:
        """Mirror the owner's normalized city; users without a profile are skipped."""
        try:
            self._ref(user_id).update({"city": city, "updated_at": utcnow()})
        except NotFound:
            return

    def apply_subscription_mirror(self, user_id: str, plan: SubscriptionPlan, expires_at) -> bool:
        """
        Refresh the cached plan fields on the owner's profile.

        Returns False when the user has no worker profile (job seekers).
        """
        try:
            self._ref(user_id).update({
                "subscription_plan": plan.value,
                "plan_rank": plan.rank,
                "subscription_expires_at": expires_at,
                "updated_at": utcnow(),
            })
        except NotFound:
            return False
        return True

    def _update(self, worker_id: str, update_data: Dict[str, Any]) -> None:
        try:
            self._ref(worker_id).update(update_data)
        except NotFound as e:
            raise NotFoundError("Worker profile not found") from e


# Global service instance (singleton pattern)
_worker_service = None


def get_worker_service() -> WorkerService:
    global _worker_service
    if _worker_service is None:
        _worker_service = WorkerService()
    return _worker_service
