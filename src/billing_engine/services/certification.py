"""Certification workflow: status changes and their side effects."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

from billing_engine.errors import InvalidTransitionError, PermissionDeniedError, ValidationError
from billing_engine.services.state_machine import PayAppStateMachine, PayAppStatus

if TYPE_CHECKING:
    from billing_engine.models import PayApplication

logger = logging.getLogger(__name__)

NO_LIEN_WAIVER_WARNING = "No lien waivers received; proceeding anyway"


@dataclass
class TransitionResult:
    """Outcome of a status change, with advisory warnings."""

    pay_application: PayApplication
    from_status: str
    to_status: str
    warnings: list[str] = field(default_factory=list)


class CertificationWorkflow:
    """Applies a status transition to a pay application in memory.

    Side effects by target status:
    - submitted: submitted_date = today
    - certified: certified_date = today, certified_by = actor
    - paid: none beyond the status itself (line items become frozen)
    - disputed: notes = dispute notes (required)

    A missing lien waiver at certification is reported as a warning, never
    an error.
    """

    @staticmethod
    def apply(
        pay_app: PayApplication,
        to_status: str,
        *,
        can_certify: bool,
        today: date,
        actor_user_id: UUID | None = None,
        dispute_notes: str | None = None,
        lien_waiver_count: int = 0,
    ) -> TransitionResult:
        """Validate and apply a transition.

        Raises:
            InvalidTransitionError: transition not in the workflow table
            PermissionDeniedError: certifier-only target without the role
            ValidationError: dispute without notes
        """
        from_status = pay_app.status
        try:
            target = PayAppStatus(to_status)
        except ValueError:
            raise InvalidTransitionError(from_status, str(to_status), "unknown status") from None

        PayAppStateMachine.validate_transition(from_status, target.value)

        if PayAppStateMachine.requires_certifier(target) and not can_certify:
            raise PermissionDeniedError(
                f"Certifier permission is required to move to '{target.value}'",
                pay_application_id=str(pay_app.pay_application_id),
            )

        warnings: list[str] = []

        if target == PayAppStatus.SUBMITTED:
            pay_app.submitted_date = today

        elif target == PayAppStatus.CERTIFIED:
            if lien_waiver_count == 0:
                warnings.append(NO_LIEN_WAIVER_WARNING)
                logger.warning(
                    "Certifying pay application %s without lien waivers",
                    pay_app.pay_application_id,
                )
            pay_app.certified_date = today
            pay_app.certified_by = actor_user_id

        elif target == PayAppStatus.DISPUTED:
            if dispute_notes is None or not dispute_notes.strip():
                raise ValidationError("Dispute notes are required", field="dispute_notes")
            pay_app.notes = dispute_notes

        pay_app.status = target.value

        return TransitionResult(
            pay_application=pay_app,
            from_status=from_status,
            to_status=target.value,
            warnings=warnings,
        )
