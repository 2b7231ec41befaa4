"""Schedule of Values, pay application, line item and lien waiver models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    inspect,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from billing_engine.errors import InvalidStateError
from billing_engine.models.base import Base, TimestampMixin, utcnow
from billing_engine.money import Money

PAY_APP_STATUSES = ("draft", "submitted", "under_review", "certified", "paid", "disputed")
WAIVER_TYPES = (
    "conditional_progress",
    "unconditional_progress",
    "conditional_final",
    "unconditional_final",
)


def _in_list(column: str, values: tuple[str, ...]) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


# ===== Schedule of Values =====


class SOVLineItem(Base, TimestampMixin):
    """Billable line of a project's Schedule of Values."""

    __tablename__ = "sov_line_item"

    sov_line_item_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    project_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    item_number: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(String, nullable=False)
    scheduled_value: Mapped[Money] = mapped_column(nullable=False)
    retainage_pct: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)

    __table_args__ = (
        UniqueConstraint("project_id", "item_number", name="sov_line_item_project_number_unique"),
        CheckConstraint("scheduled_value > 0", name="sov_line_item_value_positive"),
        CheckConstraint(
            "retainage_pct >= 0 AND retainage_pct <= 100",
            name="sov_line_item_retainage_range",
        ),
    )


# ===== Pay Applications =====


class PayApplication(Base, TimestampMixin):
    """One billing period's G702 header."""

    __tablename__ = "pay_application"

    pay_application_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    project_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    pay_app_number: Mapped[int] = mapped_column(Integer, nullable=False)
    period_from: Mapped[date] = mapped_column(Date, nullable=False)
    period_to: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")

    contractor_id: Mapped[UUID | None] = mapped_column(nullable=True)
    contractor_name: Mapped[str | None] = mapped_column(String, nullable=True)
    contract_number: Mapped[str | None] = mapped_column(String, nullable=True)

    # Certification metadata
    submitted_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    certified_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    certified_by: Mapped[UUID | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("project_id", "pay_app_number", name="pay_application_project_number_unique"),
        CheckConstraint("period_to >= period_from", name="pay_application_period_check"),
        CheckConstraint("pay_app_number >= 1", name="pay_application_number_positive"),
        CheckConstraint(_in_list("status", PAY_APP_STATUSES), name="pay_application_status_check"),
    )

    @property
    def label(self) -> str:
        return f"Pay Application #{self.pay_app_number}"


class PayAppLineItem(Base, TimestampMixin):
    """Per-period snapshot of one SOV line (a G703 row)."""

    __tablename__ = "pay_app_line_item"

    pay_app_line_item_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    pay_application_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_application.pay_application_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sov_line_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("sov_line_item.sov_line_item_id"),
        nullable=False,
    )
    work_completed_previous: Mapped[Money] = mapped_column(nullable=False)
    work_completed_this_period: Mapped[Money] = mapped_column(nullable=False)
    materials_stored: Mapped[Money] = mapped_column(nullable=False)
    certified_this_period: Mapped[Money | None] = mapped_column(nullable=True)
    retainage_pct_override: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "pay_application_id",
            "sov_line_item_id",
            name="pay_app_line_item_app_sov_unique",
        ),
        CheckConstraint("work_completed_previous >= 0", name="pay_app_line_item_previous_check"),
        CheckConstraint("work_completed_this_period >= 0", name="pay_app_line_item_this_period_check"),
        CheckConstraint("materials_stored >= 0", name="pay_app_line_item_materials_check"),
        CheckConstraint(
            "certified_this_period IS NULL OR certified_this_period >= 0",
            name="pay_app_line_item_certified_check",
        ),
        CheckConstraint(
            "retainage_pct_override IS NULL OR "
            "(retainage_pct_override >= 0 AND retainage_pct_override <= 100)",
            name="pay_app_line_item_retainage_override_range",
        ),
    )

    # Relationships
    sov_line_item: Mapped[SOVLineItem] = relationship()

    @validates("work_completed_previous")
    def _freeze_previous(self, key: str, value: Money) -> Money:
        """Previous-period work is a snapshot taken at creation."""
        state = inspect(self)
        if state.persistent or state.detached:
            raise InvalidStateError(
                "work_completed_previous is read-only after creation",
                line_item_id=str(self.pay_app_line_item_id),
            )
        return value


# ===== Lien Waivers =====


class LienWaiver(Base, TimestampMixin):
    """Lien waiver document recorded against a pay application."""

    __tablename__ = "lien_waiver"

    lien_waiver_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    pay_application_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_application.pay_application_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    waiver_type: Mapped[str] = mapped_column(String, nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)  # Unique per pay application, from 1
    amount: Mapped[Money | None] = mapped_column(nullable=True)
    through_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    received_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    file_url: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("pay_application_id", "sequence", name="lien_waiver_app_sequence_unique"),
        CheckConstraint(_in_list("waiver_type", WAIVER_TYPES), name="lien_waiver_type_check"),
    )


# ===== Audit =====


class PayAppAuditEvent(Base, TimestampMixin):
    """Append-only record of pay application status changes."""

    __tablename__ = "pay_app_audit_event"

    audit_event_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    pay_application_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_application.pay_application_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action: Mapped[str] = mapped_column(String, nullable=False)
    from_status: Mapped[str | None] = mapped_column(String, nullable=True)
    to_status: Mapped[str | None] = mapped_column(String, nullable=True)
    actor_user_id: Mapped[UUID | None] = mapped_column(nullable=True)
    details_json: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
