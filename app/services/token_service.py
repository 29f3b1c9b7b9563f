"""
Token Service - mint and verify access/refresh JWTs.

Tokens are stateless HS256 JWTs signed with the single server secret
(settings.JWT_SECRET). Rotating the secret invalidates every outstanding
token. Nothing is persisted and there is no revocation list; a refresh
token stays usable until it expires.

Claims: {"sub": user_id, "mobile": ..., "kind": "access"|"refresh", "iat", "exp"}
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt

from app.core.settings import settings

logger = logging.getLogger(__name__)


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenError(Exception):
    """Base class for token verification failures."""


class TokenExpiredError(TokenError):
    pass


class TokenInvalidError(TokenError):
    pass


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    mobile: str
    kind: TokenKind
    issued_at: Optional[datetime]
    expires_at: datetime


class TokenService:
    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(minutes=60),
        refresh_ttl: timedelta = timedelta(days=30),
    ):
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self.secret = secret
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    def issue_access_token(self, user_id: str, mobile: str) -> str:
        return self._issue(user_id, mobile, TokenKind.ACCESS, self.access_ttl)

    def issue_refresh_token(self, user_id: str, mobile: str) -> str:
        return self._issue(user_id, mobile, TokenKind.REFRESH, self.refresh_ttl)

    def _issue(self, user_id: str, mobile: str, kind: TokenKind, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "mobile": mobile,
            "kind": kind.value,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str, expected_kind: Optional[TokenKind] = None) -> TokenClaims:
        """
        Verify signature, expiry and structure.

        Raises:
            TokenExpiredError: signature is good but exp is in the past
            TokenInvalidError: bad signature, malformed token, missing claims,
                or a kind other than expected_kind
        """
        if not token or not isinstance(token, str):
            raise TokenInvalidError("Token is missing")

        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except JWTError as e:
            raise TokenInvalidError(f"Invalid token: {e}") from e

        user_id = payload.get("sub")
        mobile = payload.get("mobile")
        exp = payload.get("exp")
        if not isinstance(user_id, str) or not user_id or not isinstance(mobile, str) or exp is None:
            raise TokenInvalidError("Token is missing required claims")

        try:
            kind = TokenKind(payload.get("kind"))
        except ValueError as e:
            raise TokenInvalidError("Unknown token kind") from e

        if expected_kind is not None and kind != expected_kind:
            raise TokenInvalidError(f"Expected a {expected_kind.value} token, got {kind.value}")

        iat = payload.get("iat")
        return TokenClaims(
            user_id=user_id,
            mobile=mobile,
            kind=kind,
            issued_at=datetime.fromtimestamp(iat, tz=timezone.utc) if isinstance(iat, (int, float)) else None,
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )

    def refresh(self, refresh_token: str) -> str:
        """
        Exchange a refresh token for a new access token for the same subject.

        The refresh token is not rotated or invalidated.
        """
        claims = self.verify(refresh_token, expected_kind=TokenKind.REFRESH)
        logger.info(f"Access token refreshed for user {claims.user_id}")
        return self.issue_access_token(claims.user_id, claims.mobile)


_token_service = None


def get_token_service() -> TokenService:
    global _token_service
    if _token_service is None:
        _token_service = TokenService(
            secret=settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
            access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh_ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        )
    return _token_service
