"""
User Service - identity records in Firestore.

Collections:
- users/{auto_id}          the user record
- user_mobiles/{mobile}    uniqueness claim: {"user_id": ...}

A mobile number is claimed with Firestore create(), which fails if the
document exists, so two concurrent first logins for the same number end up
on the same user.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from google.api_core.exceptions import AlreadyExists

from app.config.firebase import get_db
from app.core.errors import ForbiddenError, InvalidInputError, NotFoundError
from app.models.user import KycStatus
from app.services.status_workflow import KycWorkflow
from app.utils.firestore_helpers import snapshot_to_dict, utcnow
from app.utils.geocoding import normalize_city_name
from app.utils.validators import validate_email

logger = logging.getLogger(__name__)

USERS = "users"
USER_MOBILES = "user_mobiles"

PROFILE_FIELDS = ("name", "email", "city", "pincode", "profile_photo")


class UserService:
    """
    Service for user management in Firestore.
    """

    @property
    def db(self):
        return get_db()

    def get_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        if not user_id:
            return None
        return snapshot_to_dict(self.db.collection(USERS).document(user_id).get())

    def get_user_by_mobile(self, mobile: str) -> Optional[Dict[str, Any]]:
        claim = self.db.collection(USER_MOBILES).document(mobile).get()
        if not claim.exists:
            return None
        return self.get_user_by_id((claim.to_dict() or {}).get("user_id"))

    def login_or_register(self, mobile: str) -> Tuple[Dict[str, Any], bool]:
        """
        Find the user for a verified mobile number, creating it on first login.

        Args:
            mobile: Normalized mobile number (already OTP-verified)

        Returns:
            (user dict, is_new_user)

        Raises:
            ForbiddenError: the account has been deactivated
        """
        claim_ref = self.db.collection(USER_MOBILES).document(mobile)
        claim = claim_ref.get()

        if not claim.exists:
            user_ref = self.db.collection(USERS).document()
            try:
                claim_ref.create({"user_id": user_ref.id, "created_at": utcnow()})
            except AlreadyExists:
                # Another request registered this number between our read and create
                logger.info(f"Mobile claim race lost for {mobile[:4]}****, logging in existing user")
                return self.login_or_register(mobile)
            return self._create_user(user_ref.id, mobile), True

        user_id = (claim.to_dict() or {}).get("user_id")
        user = self.get_user_by_id(user_id)
        if user is None:
            # Claim written but user document never landed; finish the registration
            logger.warning(f"Mobile claim without user record, recreating user {user_id}")
            return self._create_user(user_id, mobile), True

        if not user.get("is_active", True):
            raise ForbiddenError("Account is deactivated")

        now = utcnow()
        try:
            self.db.collection(USERS).document(user_id).update({"last_login_at": now})
            user["last_login_at"] = now
        except Exception as e:
            logger.warning(f"Failed to update last_login_at for user {user_id}: {e}")

        return user, False

    def _create_user(self, user_id: str, mobile: str) -> Dict[str, Any]:
        now = utcnow()
        user_data = {
            "mobile": mobile,
            "email": None,
            "name": None,
            "profile_photo": None,
            "city": None,
            "pincode": None,
            "kyc_status": KycStatus.PENDING.value,
            "is_active": True,
            "fcm_token": None,
            "last_login_at": now,
            "created_at": now,
            "updated_at": now,
        }
        self.db.collection(USERS).document(user_id).set(user_data)
        logger.info(f"User created: {user_id}")
        user_data["id"] = user_id
        return user_data

    def update_profile(self, user_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge the provided profile fields into the user record.

        Only non-None values in PROFILE_FIELDS are written. A city change is
        pushed to the owner's worker profile so city search stays consistent.
        """
        update_data = {k: v for k, v in updates.items() if k in PROFILE_FIELDS and v is not None}
        if "email" in update_data:
            update_data["email"] = validate_email(update_data["email"])

        user = self._require_user(user_id)
        if not update_data:
            return user

        update_data["updated_at"] = utcnow()
        self.db.collection(USERS).document(user_id).update(update_data)
        user.update(update_data)

        if "city" in update_data:
            from app.services.worker_service import get_worker_service
            get_worker_service().sync_owner_city(user_id, normalize_city_name(update_data["city"]))

        logger.info(f"User profile updated: {user_id} ({', '.join(sorted(update_data))})")
        return user

    def update_fcm_token(self, user_id: str, android: Optional[str], ios: Optional[str]) -> None:
        self._require_user(user_id)
        self.db.collection(USERS).document(user_id).update({
            "fcm_token": {"android": android, "ios": ios},
            "updated_at": utcnow(),
        })

    def deactivate(self, user_id: str) -> None:
        """Soft delete: users are never removed, only flagged inactive."""
        self._require_user(user_id)
        self.db.collection(USERS).document(user_id).update({"is_active": False, "updated_at": utcnow()})
        logger.info(f"User deactivated: {user_id}")

    # ------------------------------------------------------------------ KYC

    def submit_kyc(self, user_id: str, document_type: str, document_url: str) -> Dict[str, Any]:
        user = self._require_user(user_id)
        entry = self._transition_kyc(user, KycStatus.SUBMITTED, changed_by=user_id)
        update_data = {
            "kyc_status": KycStatus.SUBMITTED.value,
            "kyc_document_type": document_type,
            "kyc_document_url": document_url,
            "kyc_submitted_at": utcnow(),
            "kyc_history": (user.get("kyc_history") or []) + [entry],
            "updated_at": utcnow(),
        }
        self.db.collection(USERS).document(user_id).update(update_data)
        user.update(update_data)
        logger.info(f"KYC submitted for user {user_id}")
        return user

    def review_kyc(self, user_id: str, status: KycStatus, reviewer_id: str, note: Optional[str] = None) -> Dict[str, Any]:
        if status not in (KycStatus.APPROVED, KycStatus.REJECTED):
            raise InvalidInputError("KYC review status must be approved or rejected")

        user = self._require_user(user_id)
        entry = self._transition_kyc(user, status, changed_by=reviewer_id, note=note)
        update_data = {
            "kyc_status": status.value,
            "kyc_reviewed_at": utcnow(),
            "kyc_history": (user.get("kyc_history") or []) + [entry],
            "updated_at": utcnow(),
        }
        self.db.collection(USERS).document(user_id).update(update_data)
        user.update(update_data)
        logger.info(f"KYC {status.value} for user {user_id} by {reviewer_id}")
        return user

    def _transition_kyc(self, user: Dict[str, Any], new_status: KycStatus, changed_by: str, note: Optional[str] = None) -> Dict:
        current = user.get("kyc_status") or KycStatus.PENDING.value
        if current == new_status.value:
            raise InvalidInputError(f"KYC is already {current}")
        try:
            result = KycWorkflow.validate_and_transition(current, new_status.value, changed_by, note)
        except ValueError as e:
            raise InvalidInputError(str(e)) from e
        return result["history_entry"]

    # --------------------------------------------------------- subscriptions

    def apply_subscription_mirror(self, user_id: str, mirror: Dict[str, Any]) -> None:
        """Write the cached subscription fields (subscription_id/plan/expires_at)."""
        update_data = dict(mirror)
        update_data["updated_at"] = utcnow()
        self.db.collection(USERS).document(user_id).update(update_data)

    def _require_user(self, user_id: str) -> Dict[str, Any]:
        user = self.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user


# Global service instance (singleton pattern)
_user_service = None


def get_user_service() -> UserService:
    """
    Get or create UserService singleton instance.

    Returns:
        UserService: The global user service instance
    """
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service
