"""
Worker profile models.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class SubscriptionPlan(str, Enum):
    """
    Ordered worker plan. Search ranks by `rank` descending, so paid tiers
    are always listed ahead of free ones.
    """
    NONE = "none"
    SILVER = "silver"
    GOLD = "gold"

    @property
    def rank(self) -> int:
        return PLAN_RANKS[self]

    @classmethod
    def parse(cls, value: Optional[str]) -> "SubscriptionPlan":
        try:
            return cls((value or "none").lower())
        except ValueError:
            return cls.NONE


PLAN_RANKS = {
    SubscriptionPlan.NONE: 0,
    SubscriptionPlan.SILVER: 1,
    SubscriptionPlan.GOLD: 2,
}


class GeoLocation(BaseModel):
    type: str = "Point"
    coordinates: List[float] = Field(..., min_length=2, max_length=2, description="[longitude, latitude]")


class CreateWorkerProfileRequest(BaseModel):
    categories: List[str] = Field(..., min_length=1)
    subcategories: List[str] = Field(default_factory=list)
    experience_years: Optional[int] = Field(None, ge=0, le=80)
    description: Optional[str] = Field(None, max_length=2000)
    hourly_rate: Optional[float] = Field(None, ge=0)
    license_number: Optional[str] = Field(None, max_length=100)
    service_areas: List[str] = Field(default_factory=list)
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class UpdateWorkerProfileRequest(BaseModel):
    categories: Optional[List[str]] = None
    subcategories: Optional[List[str]] = None
    experience_years: Optional[int] = Field(None, ge=0, le=80)
    description: Optional[str] = Field(None, max_length=2000)
    hourly_rate: Optional[float] = Field(None, ge=0)
    service_areas: Optional[List[str]] = None
    is_available: Optional[bool] = None


class UpdateLocationRequest(BaseModel):
    latitude: float
    longitude: float


class SetVerifiedRequest(BaseModel):
    is_verified: bool


class WorkerProfileResponse(BaseModel):
    id: str
    user_id: str
    categories: List[str] = []
    subcategories: List[str] = []
    experience_years: Optional[int] = None
    description: Optional[str] = None
    hourly_rate: Optional[float] = None
    license_number: Optional[str] = None
    service_areas: List[str] = []
    city: Optional[str] = None
    is_verified: bool = False
    is_available: bool = True
    subscription_plan: SubscriptionPlan = SubscriptionPlan.NONE
    subscription_expires_at: Optional[datetime] = None
    rating: float = 0.0
    total_reviews: int = 0
    total_jobs_completed: int = 0
    location: Optional[GeoLocation] = None
    distance_meters: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, worker: Dict[str, Any]) -> "WorkerProfileResponse":
        return cls(**{k: v for k, v in worker.items() if k in cls.model_fields})
