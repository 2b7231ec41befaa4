"""ORM models."""

from billing_engine.models.base import Base, TimestampMixin
from billing_engine.models.billing import (
    PAY_APP_STATUSES,
    WAIVER_TYPES,
    LienWaiver,
    PayAppAuditEvent,
    PayAppLineItem,
    PayApplication,
    SOVLineItem,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "PAY_APP_STATUSES",
    "WAIVER_TYPES",
    "LienWaiver",
    "PayAppAuditEvent",
    "PayAppLineItem",
    "PayApplication",
    "SOVLineItem",
]
