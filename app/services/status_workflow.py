"""
Status Workflow Engines - strict state machines for KYC and subscriptions.

DESIGN PRINCIPLES:
- Only listed transitions are allowed
- Same-status "transitions" are no-ops and always valid
- Every applied transition produces a history entry
- Invalid transitions are rejected with ValueError
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Type

from app.models.subscription import SubscriptionStatus
from app.models.user import KycStatus


class StatusWorkflowEngine:
    """
    Table-driven state machine. Subclasses set STATUS_ENUM and
    ALLOWED_TRANSITIONS ({from_status: [to_status, ...]}).
    """

    STATUS_ENUM: Type[Enum]
    ALLOWED_TRANSITIONS: Dict[Enum, List[Enum]] = {}

    @classmethod
    def is_valid_transition(cls, from_status: str, to_status: str) -> bool:
        try:
            from_enum = cls.STATUS_ENUM(from_status)
            to_enum = cls.STATUS_ENUM(to_status)
        except ValueError:
            return False

        if from_enum == to_enum:
            return True

        return to_enum in cls.ALLOWED_TRANSITIONS.get(from_enum, [])

    @classmethod
    def get_allowed_transitions(cls, current_status: str) -> List[str]:
        try:
            current_enum = cls.STATUS_ENUM(current_status)
        except ValueError:
            return []
        return [status.value for status in cls.ALLOWED_TRANSITIONS.get(current_enum, [])]

    @classmethod
    def create_status_history_entry(
        cls,
        from_status: str,
        to_status: str,
        changed_by: str,
        note: Optional[str] = None
    ) -> Dict:
        return {
            "from": from_status,
            "to": to_status,
            "changed_by": changed_by,
            "timestamp": datetime.now(timezone.utc),
            "note": note or ""
        }

    @classmethod
    def validate_and_transition(
        cls,
        current_status: str,
        new_status: str,
        changed_by: str,
        note: Optional[str] = None
    ) -> Dict:
        """
        Validate a transition and build its history entry.

        Raises:
            ValueError: If the transition is not allowed
        """
        if not cls.is_valid_transition(current_status, new_status):
            allowed = cls.get_allowed_transitions(current_status)
            raise ValueError(
                f"Invalid status transition: {current_status} → {new_status}. "
                f"Allowed transitions from {current_status}: {allowed}"
            )

        return {
            "valid": True,
            "from_status": current_status,
            "to_status": new_status,
            "history_entry": cls.create_status_history_entry(current_status, new_status, changed_by, note),
        }


class KycWorkflow(StatusWorkflowEngine):
    """
    pending → submitted → approved
                       ↘ rejected → submitted (resubmission)
    approved is terminal.
    """

    STATUS_ENUM = KycStatus
    ALLOWED_TRANSITIONS = {
        KycStatus.PENDING: [KycStatus.SUBMITTED],
        KycStatus.SUBMITTED: [KycStatus.APPROVED, KycStatus.REJECTED],
        KycStatus.REJECTED: [KycStatus.SUBMITTED],
        KycStatus.APPROVED: [],
    }


class SubscriptionWorkflow(StatusWorkflowEngine):
    """
    pending → active → expired | cancelled
    pending → cancelled
    cancelled and expired are terminal.
    """

    STATUS_ENUM = SubscriptionStatus
    ALLOWED_TRANSITIONS = {
        SubscriptionStatus.PENDING: [SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED],
        SubscriptionStatus.ACTIVE: [SubscriptionStatus.CANCELLED, SubscriptionStatus.EXPIRED],
        SubscriptionStatus.CANCELLED: [],
        SubscriptionStatus.EXPIRED: [],
    }
