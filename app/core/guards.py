"""
Authorization guard chain.

A guard turns the request's bearer credentials into an Identity or raises.
Guards compose by wrapping: KycGuard and AdminGuard run their inner guard
first and only then check their own precondition, so a handler behind
require_kyc never runs unless both checks pass.

    AuthGuard                 token -> Identity            (401)
    KycGuard(AuthGuard)       + user exists (404), kyc_status == approved (403)
    AdminGuard(AuthGuard)     + mobile in ADMIN_MOBILES (403)
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.errors import ForbiddenError, NotFoundError, UnauthorizedError
from app.core.settings import settings
from app.models.user import KycStatus
from app.services.token_service import (
    TokenExpiredError,
    TokenInvalidError,
    TokenKind,
    TokenService,
    get_token_service,
)
from app.services.user_service import UserService, get_user_service

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """Who is calling. `user` is filled in by guards that load the record."""
    user_id: str
    mobile: str
    user: Optional[Dict[str, Any]] = field(default=None, compare=False, repr=False)


class Guard(ABC):
    @abstractmethod
    def resolve(self, credentials: Optional[HTTPAuthorizationCredentials]) -> Identity:
        raise NotImplementedError


def extract_bearer_token(credentials: Optional[HTTPAuthorizationCredentials]) -> str:
    if credentials is None or (credentials.scheme or "").lower() != "bearer" or not credentials.credentials:
        raise UnauthorizedError("Missing or malformed Authorization header")
    return credentials.credentials


class AuthGuard(Guard):
    """Verifies an access token. No I/O."""

    def __init__(self, token_service: Optional[TokenService] = None):
        self._token_service = token_service

    @property
    def token_service(self) -> TokenService:
        return self._token_service or get_token_service()

    def resolve(self, credentials: Optional[HTTPAuthorizationCredentials]) -> Identity:
        token = extract_bearer_token(credentials)
        try:
            claims = self.token_service.verify(token, expected_kind=TokenKind.ACCESS)
        except TokenExpiredError as e:
            raise UnauthorizedError("Token has expired") from e
        except TokenInvalidError as e:
            logger.info(f"Rejected access token: {e}")
            raise UnauthorizedError("Invalid token") from e
        return Identity(user_id=claims.user_id, mobile=claims.mobile)


class KycGuard(Guard):
    """Requires an approved KYC on top of the inner guard."""

    def __init__(self, inner: Guard, user_service: Optional[UserService] = None):
        self.inner = inner
        self._user_service = user_service

    @property
    def user_service(self) -> UserService:
        return self._user_service or get_user_service()

    def resolve(self, credentials: Optional[HTTPAuthorizationCredentials]) -> Identity:
        identity = self.inner.resolve(credentials)
        user = self.user_service.get_user_by_id(identity.user_id)
        if user is None:
            raise NotFoundError("User not found")
        if user.get("kyc_status") != KycStatus.APPROVED.value:
            raise ForbiddenError("KYC verification required")
        return replace(identity, user=user)


class AdminGuard(Guard):
    """Requires the caller's mobile number to be on the admin list."""

    def __init__(self, inner: Guard, admin_mobiles: Optional[List[str]] = None):
        self.inner = inner
        self._admin_mobiles = admin_mobiles

    @property
    def admin_mobiles(self) -> List[str]:
        return self._admin_mobiles if self._admin_mobiles is not None else settings.admin_mobiles

    def resolve(self, credentials: Optional[HTTPAuthorizationCredentials]) -> Identity:
        identity = self.inner.resolve(credentials)
        if identity.mobile not in self.admin_mobiles:
            raise ForbiddenError("Admin access required")
        return identity


auth_guard = AuthGuard()
kyc_guard = KycGuard(auth_guard)
admin_guard = AdminGuard(auth_guard)


# FastAPI dependencies

def require_auth(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Identity:
    return auth_guard.resolve(credentials)


def require_kyc(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Identity:
    return kyc_guard.resolve(credentials)


def require_admin(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Identity:
    return admin_guard.resolve(credentials)
