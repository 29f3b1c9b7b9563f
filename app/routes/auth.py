"""
Authentication endpoints - Phone number + OTP authentication.

The OTP provider owns code generation and expiry; a successful verification
logs the user in (registering them on first use) and returns an
access/refresh token pair.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials

from app.core.errors import UnauthorizedError
from app.core.guards import bearer_scheme
from app.models.base import success_response
from app.models.user import (
    RefreshTokenRequest,
    ResendOtpRequest,
    SendOtpRequest,
    UserResponse,
    VerifyOtpRequest,
)
from app.services.otp_service import OTPService, get_otp_service
from app.services.token_service import (
    TokenExpiredError,
    TokenInvalidError,
    TokenService,
    get_token_service,
)
from app.services.user_service import UserService, get_user_service
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/send-otp")
def send_otp(request: SendOtpRequest, otp_service: OTPService = Depends(get_otp_service)):
    """
    Send an OTP to the mobile number.

    Mobile and email are validated before the provider is contacted.
    """
    otp_service.send_otp(request.mobile, request.email)
    return success_response(message="OTP sent successfully")


@router.post("/resend-otp")
def resend_otp(request: ResendOtpRequest, otp_service: OTPService = Depends(get_otp_service)):
    otp_service.resend_otp(request.mobile)
    return success_response(message="OTP resent successfully")


@router.post("/verify-otp")
def verify_otp(
    request: VerifyOtpRequest,
    otp_service: OTPService = Depends(get_otp_service),
    user_service: UserService = Depends(get_user_service),
    token_service: TokenService = Depends(get_token_service),
):
    """
    Verify the OTP and log in, creating the user on first login.

    Returns:
        data: {message, isNewUser, user, accessToken, refreshToken}
    """
    mobile = otp_service.verify_otp(request.mobile, request.otp)
    user, is_new_user = user_service.login_or_register(mobile)

    access_token = token_service.issue_access_token(user["id"], mobile)
    refresh_token = token_service.issue_refresh_token(user["id"], mobile)

    logger.info(f"User authenticated: {user['id']} (new={is_new_user})")

    return success_response(data={
        "message": "Registration successful" if is_new_user else "Login successful",
        "isNewUser": is_new_user,
        "user": UserResponse.from_record(user).model_dump(mode="json"),
        "accessToken": access_token,
        "refreshToken": refresh_token,
    })


@router.post("/refresh-token")
def refresh_token(
    request: Optional[RefreshTokenRequest] = None,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    token_service: TokenService = Depends(get_token_service),
):
    """
    Mint a new access token from a refresh token.

    The refresh token is read from the Authorization header, or from the
    body as `refresh_token`. Access tokens are refused here.
    """
    token = credentials.credentials if credentials else None
    if not token and request is not None:
        token = request.refresh_token
    if not token:
        raise UnauthorizedError("Refresh token required")

    try:
        access_token = token_service.refresh(token)
    except TokenExpiredError as e:
        raise UnauthorizedError("Refresh token has expired") from e
    except TokenInvalidError as e:
        raise UnauthorizedError("Invalid refresh token") from e

    return success_response(data={"accessToken": access_token})
