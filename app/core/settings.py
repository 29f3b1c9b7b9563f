"""
Core settings and environment variables for the Mento marketplace API.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import List, Optional

from app.utils.validators import normalize_mobile


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """

    # Application
    APP_NAME: str = "Mento Services API"
    APP_VERSION: str = "0.2.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    API_PREFIX: str = "/api/v1"

    # CORS - comma separated list of allowed origins
    CORS_ORIGINS: str = "http://localhost:8081,http://localhost:19006"

    # Firebase/Firestore
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON

    # In-memory Firestore for local development and tests
    USE_MOCK_DB: bool = False

    # Session tokens (HS256, single shared secret - rotating it logs everyone out)
    # No default: without a configured secret no token can be issued or verified
    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30

    # OTP provider: "msg91" or "mock"
    OTP_PROVIDER: str = "msg91"
    MSG91_AUTH_KEY: Optional[str] = None
    MSG91_TEMPLATE_ID: Optional[str] = None
    MSG91_BASE_URL: str = "https://control.msg91.com/api/v5"
    OTP_TIMEOUT_SECONDS: float = 5.0
    MOCK_OTP_CODE: str = "123456"

    # Razorpay payment gateway
    RAZORPAY_KEY_ID: Optional[str] = None
    RAZORPAY_KEY_SECRET: Optional[str] = None
    RAZORPAY_WEBHOOK_SECRET: Optional[str] = None

    # Comma separated mobile numbers allowed to use admin endpoints
    ADMIN_MOBILES: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def admin_mobiles(self) -> List[str]:
        return [normalize_mobile(m) for m in self.ADMIN_MOBILES.split(",") if m.strip()]


# Global settings instance
settings = Settings()
