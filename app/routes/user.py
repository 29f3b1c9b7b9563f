"""
User endpoints - the caller's own account.
"""

from fastapi import APIRouter, Depends

from app.core.guards import Identity, require_auth
from app.core.errors import NotFoundError
from app.models.base import success_response
from app.models.user import FcmTokenRequest, UpdateProfileRequest, UserResponse
from app.services.user_service import UserService, get_user_service

router = APIRouter(prefix="/user", tags=["User"])


@router.get("/profile")
def get_profile(
    identity: Identity = Depends(require_auth),
    user_service: UserService = Depends(get_user_service),
):
    user = user_service.get_user_by_id(identity.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return success_response(data=UserResponse.from_record(user).model_dump(mode="json"))


@router.put("/profile")
def update_profile(
    request: UpdateProfileRequest,
    identity: Identity = Depends(require_auth),
    user_service: UserService = Depends(get_user_service),
):
    """Partial update; omitted fields are left unchanged."""
    user = user_service.update_profile(identity.user_id, request.model_dump(exclude_none=True))
    return success_response(
        data=UserResponse.from_record(user).model_dump(mode="json"),
        message="Profile updated successfully",
    )


@router.put("/fcm-token")
def update_fcm_token(
    request: FcmTokenRequest,
    identity: Identity = Depends(require_auth),
    user_service: UserService = Depends(get_user_service),
):
    user_service.update_fcm_token(identity.user_id, request.android, request.ios)
    return success_response(message="FCM token updated")


@router.delete("/account")
def delete_account(
    identity: Identity = Depends(require_auth),
    user_service: UserService = Depends(get_user_service),
):
    """Deactivate the account. The record is kept; logging in again is refused."""
    user_service.deactivate(identity.user_id)
    return success_response(message="Account deactivated")
