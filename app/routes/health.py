"""
Health check endpoints.
Used for monitoring, deployment readiness checks, and basic connectivity tests.
"""

from fastapi import APIRouter
from app.config.firebase import get_db
from app.core.errors import ServiceUnavailableError
from app.core.settings import settings
from app.models.base import success_response
from app.utils.firestore_helpers import utcnow
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
def health_check():
    """
    Basic liveness check. Returns 200 if the process is serving requests.
    """
    return success_response(data={
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": utcnow().isoformat(),
    })


@router.get("/db")
def database_health():
    """
    Database connectivity check.
    Lists collections, which needs a working Firestore client but no data.
    """
    try:
        collections = list(get_db().collections())
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        raise ServiceUnavailableError(f"Database connection failed: {e}") from e

    return success_response(data={
        "status": "healthy",
        "database": "firestore",
        "connected": True,
        "collections_count": len(collections),
        "timestamp": utcnow().isoformat(),
    })
