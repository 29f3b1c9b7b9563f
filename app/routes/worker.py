"""
Worker endpoints - profile lifecycle and public discovery.

Route order matters: /worker/search, /worker/nearby and /worker/profile are
declared before /worker/{worker_id} so they are not captured as ids.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.guards import Identity, require_auth, require_kyc
from app.models.base import success_response
from app.models.worker import (
    CreateWorkerProfileRequest,
    UpdateLocationRequest,
    UpdateWorkerProfileRequest,
    WorkerProfileResponse,
)
from app.core.errors import NotFoundError
from app.services.worker_search_service import SearchResult, WorkerSearchService, get_worker_search_service
from app.services.worker_service import WorkerService, get_worker_service
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/worker", tags=["Worker"])


def _worker_json(worker: dict) -> dict:
    return WorkerProfileResponse.from_record(worker).model_dump(mode="json")


def _page_json(result: SearchResult) -> dict:
    return {
        "workers": [_worker_json(w) for w in result.items],
        "pagination": result.pagination.model_dump(),
    }


@router.get("/search")
def search_workers(
    category: Optional[str] = Query(None),
    subcategory: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    min_rating: Optional[float] = Query(None, description="Inclusive lower bound, 0-5"),
    page: Optional[int] = Query(None, description="1-indexed page number"),
    limit: Optional[int] = Query(None, description="Page size, clamped to 1-100"),
    search_service: WorkerSearchService = Depends(get_worker_search_service),
):
    """
    Search verified, available workers.

    Ordered by subscription plan (gold, silver, none), then rating, then
    number of reviews, all descending.
    """
    result = search_service.search(
        category=category,
        subcategory=subcategory,
        city=city,
        min_rating=min_rating,
        page=page,
        limit=limit,
    )
    return success_response(data=_page_json(result))


@router.get("/nearby")
def nearby_workers(
    latitude: float = Query(...),
    longitude: float = Query(...),
    category: Optional[str] = Query(None),
    subcategory: Optional[str] = Query(None),
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None, description="Page size, clamped to 1-50"),
    search_service: WorkerSearchService = Depends(get_worker_search_service),
):
    """Verified, available workers within 10 km, nearest first."""
    result = search_service.nearby(
        latitude=latitude,
        longitude=longitude,
        category=category,
        subcategory=subcategory,
        page=page,
        limit=limit,
    )
    return success_response(data=_page_json(result))


@router.post("/location")
def update_worker_location(
    request: UpdateLocationRequest,
    identity: Identity = Depends(require_auth),
    worker_service: WorkerService = Depends(get_worker_service),
):
    worker_service.update_location(identity.user_id, request.latitude, request.longitude)
    return success_response(message="Location updated successfully")


@router.post("/profile", status_code=201)
def create_worker_profile(
    request: CreateWorkerProfileRequest,
    identity: Identity = Depends(require_kyc),
    worker_service: WorkerService = Depends(get_worker_service),
):
    """Create the caller's worker profile. Requires approved KYC."""
    worker = worker_service.create_profile(identity.user, request)
    return success_response(data=_worker_json(worker), message="Worker profile created successfully")


@router.get("/profile")
def get_worker_profile(
    identity: Identity = Depends(require_auth),
    worker_service: WorkerService = Depends(get_worker_service),
):
    worker = worker_service.get_by_owner(identity.user_id)
    if worker is None:
        raise NotFoundError("Worker profile not found")
    return success_response(data=_worker_json(worker))


@router.put("/profile")
def update_worker_profile(
    request: UpdateWorkerProfileRequest,
    identity: Identity = Depends(require_auth),
    worker_service: WorkerService = Depends(get_worker_service),
):
    worker = worker_service.update_profile(identity.user_id, request)
    return success_response(data=_worker_json(worker), message="Worker profile updated successfully")


@router.delete("/profile")
def delete_worker_profile(
    identity: Identity = Depends(require_auth),
    worker_service: WorkerService = Depends(get_worker_service),
):
    worker_service.delete_profile(identity.user_id)
    return success_response(message="Worker profile deleted successfully")


@router.get("/{worker_id}")
def get_worker_by_id(worker_id: str, worker_service: WorkerService = Depends(get_worker_service)):
    return success_response(data=_worker_json(worker_service.get_by_id(worker_id)))
