"""
KYC endpoints - identity document submission.

Review happens in the admin router.
"""

from fastapi import APIRouter, Depends

from app.core.errors import NotFoundError
from app.core.guards import Identity, require_auth
from app.models.base import success_response
from app.models.user import KycStatus, KycSubmitRequest
from app.services.user_service import UserService, get_user_service

router = APIRouter(prefix="/kyc", tags=["KYC"])


@router.post("/submit")
def submit_kyc(
    request: KycSubmitRequest,
    identity: Identity = Depends(require_auth),
    user_service: UserService = Depends(get_user_service),
):
    user = user_service.submit_kyc(identity.user_id, request.document_type, request.document_url)
    return success_response(
        data={"kyc_status": user["kyc_status"]},
        message="KYC submitted for review",
    )


@router.get("/status")
def kyc_status(
    identity: Identity = Depends(require_auth),
    user_service: UserService = Depends(get_user_service),
):
    user = user_service.get_user_by_id(identity.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return success_response(data={
        "kyc_status": user.get("kyc_status") or KycStatus.PENDING.value,
        "kyc_document_type": user.get("kyc_document_type"),
        "kyc_submitted_at": user.get("kyc_submitted_at"),
        "kyc_reviewed_at": user.get("kyc_reviewed_at"),
    })
