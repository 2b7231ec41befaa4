"""Billing engine services."""

from billing_engine.services.certification import CertificationWorkflow, TransitionResult
from billing_engine.services.lien_waiver_service import LienWaiverService
from billing_engine.services.pay_app_service import LineItemField, PayApplicationService
from billing_engine.services.sov_service import ScheduleOfValuesService
from billing_engine.services.state_machine import PayAppStateMachine, PayAppStatus

__all__ = [
    "CertificationWorkflow",
    "TransitionResult",
    "LienWaiverService",
    "LineItemField",
    "PayApplicationService",
    "ScheduleOfValuesService",
    "PayAppStateMachine",
    "PayAppStatus",
]
