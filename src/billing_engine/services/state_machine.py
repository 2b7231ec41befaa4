"""Pay application state machine with transition validation."""

from __future__ import annotations

from enum import Enum

from billing_engine.errors import InvalidTransitionError


class PayAppStatus(str, Enum):
    """Pay application status values."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    CERTIFIED = "certified"
    PAID = "paid"
    DISPUTED = "disputed"


class PayAppStateMachine:
    """State machine for pay application status transitions.

    Allowed transitions:
    - draft → submitted
    - submitted → under_review
    - submitted → certified
    - under_review → certified
    - certified → paid
    - draft/submitted/under_review/certified → disputed

    paid and disputed are terminal.
    """

    # Define valid transitions: {from_status: [allowed_to_statuses]}
    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayAppStatus.DRAFT: [PayAppStatus.SUBMITTED, PayAppStatus.DISPUTED],
        PayAppStatus.SUBMITTED: [
            PayAppStatus.UNDER_REVIEW,
            PayAppStatus.CERTIFIED,
            PayAppStatus.DISPUTED,
        ],
        PayAppStatus.UNDER_REVIEW: [PayAppStatus.CERTIFIED, PayAppStatus.DISPUTED],
        PayAppStatus.CERTIFIED: [PayAppStatus.PAID, PayAppStatus.DISPUTED],
        PayAppStatus.PAID: [],  # Terminal state
        PayAppStatus.DISPUTED: [],  # Terminal state, resolved out-of-band
    }

    # Target statuses only a certifier may move to
    REQUIRES_CERTIFIER = {
        PayAppStatus.CERTIFIED,
        PayAppStatus.PAID,
    }

    # Statuses where line items and header are frozen
    FROZEN = {
        PayAppStatus.PAID,
    }

    TERMINAL = {
        PayAppStatus.PAID,
        PayAppStatus.DISPUTED,
    }

    # Statuses a new application may carry forward from
    CARRY_FORWARD_SOURCES = {
        PayAppStatus.CERTIFIED,
        PayAppStatus.PAID,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def requires_certifier(cls, to_status: str) -> bool:
        return to_status in cls.REQUIRES_CERTIFIER

    @classmethod
    def is_frozen(cls, status: str) -> bool:
        """Check if line items and header are immutable in this status."""
        return status in cls.FROZEN

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return status in cls.TERMINAL

    @classmethod
    def is_carry_forward_source(cls, status: str) -> bool:
        return status in cls.CARRY_FORWARD_SOURCES

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return [s.value for s in cls.VALID_TRANSITIONS.get(current_status, [])]
