"""
Admin endpoints - KYC review, worker verification and worker stats.

Admins are identified by mobile number (ADMIN_MOBILES). The two writes are
plain record updates; KYC review goes through the KYC state machine so a
document can only be approved or rejected after it has been submitted.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.guards import Identity, require_admin
from app.models.base import success_response
from app.models.user import KycReviewRequest, UserResponse
from app.models.worker import SetVerifiedRequest, WorkerProfileResponse
from app.services.user_service import UserService, get_user_service
from app.services.worker_search_service import WorkerSearchService, get_worker_search_service
from app.services.worker_service import WorkerService, get_worker_service
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.put("/kyc/{user_id}")
def review_kyc(
    user_id: str,
    request: KycReviewRequest,
    admin: Identity = Depends(require_admin),
    user_service: UserService = Depends(get_user_service),
):
    """Approve or reject a submitted KYC."""
    user = user_service.review_kyc(user_id, request.status, reviewer_id=admin.user_id, note=request.note)
    return success_response(
        data=UserResponse.from_record(user).model_dump(mode="json"),
        message=f"KYC {request.status.value}",
    )


@router.put("/workers/{worker_id}/verify")
def verify_worker(
    worker_id: str,
    request: SetVerifiedRequest,
    admin: Identity = Depends(require_admin),
    worker_service: WorkerService = Depends(get_worker_service),
):
    worker = worker_service.set_verified(worker_id, request.is_verified)
    logger.info(f"Admin {admin.user_id} set worker {worker_id} verified={request.is_verified}")
    return success_response(
        data=WorkerProfileResponse.from_record(worker).model_dump(mode="json"),
        message="Worker verification updated",
    )


@router.get("/workers/stats")
def worker_stats(
    page: Optional[int] = Query(None, description="1-indexed page number"),
    limit: Optional[int] = Query(None, description="Page size, clamped to 1-100"),
    admin: Identity = Depends(require_admin),
    search_service: WorkerSearchService = Depends(get_worker_search_service),
):
    """
    Worker counts (total, verified, available, silver, gold) and a page of
    all worker profiles, newest first.
    """
    stats, result = search_service.admin_stats(page=page, limit=limit)
    return success_response(data={
        "stats": stats,
        "workers": [WorkerProfileResponse.from_record(w).model_dump(mode="json") for w in result.items],
        "pagination": result.pagination.model_dump(),
    })
