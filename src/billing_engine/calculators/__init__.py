"""Billing calculators: totals, carry-forward and reporting."""

from billing_engine.calculators.carry_forward import CarryForwardResolver
from billing_engine.calculators.reporting import filter_by_period, summarize_statuses
from billing_engine.calculators.totals import TotalsCalculator
from billing_engine.calculators.types import (
    G702Summary,
    LineInput,
    LineTotals,
    PayAppStatusSummary,
    PayAppTotals,
    SOVSummary,
)

__all__ = [
    "CarryForwardResolver",
    "TotalsCalculator",
    "filter_by_period",
    "summarize_statuses",
    "G702Summary",
    "LineInput",
    "LineTotals",
    "PayAppStatusSummary",
    "PayAppTotals",
    "SOVSummary",
]
