"""
User models for authentication, profile and KYC.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class KycStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class SendOtpRequest(BaseModel):
    """Request to send an OTP. Format checks happen in the OTP service."""
    mobile: str = Field(..., description="Mobile number with country code, e.g. 919876543210")
    email: str = Field(..., description="Email address")


class ResendOtpRequest(BaseModel):
    mobile: str = Field(..., description="Mobile number with country code")


class VerifyOtpRequest(BaseModel):
    mobile: str = Field(..., description="Mobile number with country code")
    otp: str = Field(..., description="OTP code received by SMS")


class RefreshTokenRequest(BaseModel):
    refresh_token: Optional[str] = Field(None, description="Refresh token (alternative to the Authorization header)")


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=254)
    city: Optional[str] = Field(None, max_length=100)
    pincode: Optional[str] = Field(None, max_length=10)
    profile_photo: Optional[str] = Field(None, max_length=500)


class FcmTokenRequest(BaseModel):
    android: Optional[str] = None
    ios: Optional[str] = None


class KycSubmitRequest(BaseModel):
    document_type: str = Field(..., min_length=2, max_length=50, description="e.g. aadhaar, pan, driving_license")
    document_url: str = Field(..., min_length=1, max_length=500, description="URL of the uploaded document")


class KycReviewRequest(BaseModel):
    status: KycStatus = Field(..., description="approved or rejected")
    note: Optional[str] = Field(None, max_length=500)


class UserResponse(BaseModel):
    """Public view of a user record."""
    id: str
    mobile: str
    email: Optional[str] = None
    name: Optional[str] = None
    profile_photo: Optional[str] = None
    city: Optional[str] = None
    pincode: Optional[str] = None
    kyc_status: KycStatus = KycStatus.PENDING
    is_active: bool = True
    subscription_plan: Optional[str] = None
    subscription_expires_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, user: Dict[str, Any]) -> "UserResponse":
        return cls(**{k: v for k, v in user.items() if k in cls.model_fields})
