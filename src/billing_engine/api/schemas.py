"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from billing_engine.money import Money


def _unwrap_money(value: Any) -> Any:
    if isinstance(value, Money):
        return value.amount
    return value


# Money crosses the API boundary as a plain decimal
MoneyValue = Annotated[Decimal, BeforeValidator(_unwrap_money)]

WaiverType = Literal[
    "conditional_progress",
    "unconditional_progress",
    "conditional_final",
    "unconditional_final",
]


# ============================================================================
# Schedule of Values schemas
# ============================================================================


class SOVLineItemCreate(BaseModel):
    """Schema for appending an SOV line item."""

    description: str
    scheduled_value: Decimal
    retainage_pct: Decimal = Decimal("10")


class SOVLineItemResponse(BaseModel):
    """Schema for SOV line item response."""

    model_config = ConfigDict(from_attributes=True)

    sov_line_item_id: UUID
    project_id: UUID
    item_number: int
    description: str
    scheduled_value: MoneyValue
    retainage_pct: Decimal
    created_at: datetime


class SOVSummaryResponse(BaseModel):
    """Schema for SOV header figures."""

    model_config = ConfigDict(from_attributes=True)

    item_count: int
    total_scheduled_value: MoneyValue
    weighted_retainage_pct: Decimal


# ============================================================================
# Pay Application schemas
# ============================================================================


class PayApplicationCreate(BaseModel):
    """Schema for creating the next pay application."""

    period_from: date
    period_to: date
    contractor_name: str | None = None
    contract_number: str | None = None
    contractor_id: UUID | None = None


class PayApplicationUpdate(BaseModel):
    """Schema for editing header fields."""

    contractor_name: str | None = None
    contract_number: str | None = None
    notes: str | None = None


class PayApplicationResponse(BaseModel):
    """Schema for pay application response."""

    model_config = ConfigDict(from_attributes=True)

    pay_application_id: UUID
    project_id: UUID
    pay_app_number: int
    period_from: date
    period_to: date
    status: str
    contractor_id: UUID | None = None
    contractor_name: str | None = None
    contract_number: str | None = None
    submitted_date: date | None = None
    certified_date: date | None = None
    certified_by: UUID | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime


class PayAppLineItemResponse(BaseModel):
    """Schema for pay application line item response."""

    model_config = ConfigDict(from_attributes=True)

    pay_app_line_item_id: UUID
    pay_application_id: UUID
    sov_line_item_id: UUID
    work_completed_previous: MoneyValue
    work_completed_this_period: MoneyValue
    materials_stored: MoneyValue
    certified_this_period: MoneyValue | None = None
    retainage_pct_override: Decimal | None = None


class LineItemUpdate(BaseModel):
    """Schema for replacing one editable line item field."""

    field: Literal[
        "this_period",
        "materials_stored",
        "certified_this_period",
        "retainage_pct_override",
    ]
    value: Decimal | None = None


class TransitionRequest(BaseModel):
    """Schema for a workflow transition."""

    to_status: str
    dispute_notes: str | None = None


class TransitionResponse(BaseModel):
    """Schema for transition result."""

    pay_application: PayApplicationResponse
    from_status: str
    to_status: str
    warnings: list[str] = Field(default_factory=list)


# ============================================================================
# Totals schemas
# ============================================================================


class LineTotalsResponse(BaseModel):
    """Schema for one computed G703 row."""

    model_config = ConfigDict(from_attributes=True)

    line_item_id: UUID | None = None
    sov_line_item_id: UUID | None = None
    item_number: int | None = None
    description: str
    scheduled_value: MoneyValue
    work_completed_previous: MoneyValue
    work_completed_this_period: MoneyValue
    materials_stored: MoneyValue
    total: MoneyValue
    pct_complete: int
    retainage_pct: Decimal
    retainage: MoneyValue
    certified_this_period: MoneyValue
    is_over_billed: bool


class PayAppTotalsResponse(BaseModel):
    """Schema for G703 totals."""

    model_config = ConfigDict(from_attributes=True)

    scheduled_value: MoneyValue
    completed_previous: MoneyValue
    completed_this_period: MoneyValue
    materials_stored: MoneyValue
    total_earned: MoneyValue
    retainage_held: MoneyValue
    certified_this_period: MoneyValue
    pct_complete: Decimal
    pct_complete_display: int
    net_payment: MoneyValue
    lines: list[LineTotalsResponse]


class G702Request(BaseModel):
    """External inputs for the G702 contract sum figures."""

    project_budget: Decimal
    approved_change_order_amounts: list[Decimal] = Field(default_factory=list)


class G702Response(BaseModel):
    """Schema for G702 certificate figures."""

    model_config = ConfigDict(from_attributes=True)

    original_contract_sum: MoneyValue
    net_change_by_change_orders: MoneyValue
    contract_sum_to_date: MoneyValue
    total_completed_and_stored: MoneyValue
    retainage: MoneyValue
    total_earned_less_retainage: MoneyValue
    less_previous_certificates: MoneyValue
    current_payment_due: MoneyValue
    balance_to_finish_including_retainage: MoneyValue


# ============================================================================
# Lien waiver schemas
# ============================================================================


class LienWaiverCreate(BaseModel):
    """Schema for recording a lien waiver."""

    waiver_type: str
    amount: Decimal | None = None
    through_date: date | None = None
    received_date: date | None = None
    file_url: str | None = None
    notes: str | None = None


class LienWaiverResponse(BaseModel):
    """Schema for lien waiver response."""

    model_config = ConfigDict(from_attributes=True)

    lien_waiver_id: UUID
    pay_application_id: UUID
    waiver_type: WaiverType
    sequence: int
    amount: MoneyValue | None = None
    through_date: date | None = None
    received_date: date | None = None
    file_url: str | None = None
    notes: str | None = None
    created_at: datetime


# ============================================================================
# Report schemas
# ============================================================================


class StatusSummaryResponse(BaseModel):
    """Schema for per-status counts."""

    model_config = ConfigDict(from_attributes=True)

    total: int
    draft: int
    submitted: int
    under_review: int
    certified: int
    paid: int
    disputed: int
    certified_to_date: int


class PayAppStatusReportResponse(BaseModel):
    """Schema for the pay application status report."""

    apps: list[PayApplicationResponse]
    summary: StatusSummaryResponse


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
