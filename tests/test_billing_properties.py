"""Property-based tests for billing invariants.

These tests use hypothesis to generate random line values, billing histories
and workflow sequences, and verify that the totals identities, carry-forward
and the certification table hold for every one of them.
"""

from __future__ import annotations

import asyncio
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import given, settings, strategies as st
from hypothesis.stateful import RuleBasedStateMachine, initialize, invariant, rule
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from billing_engine.calculators.carry_forward import CarryForwardResolver
from billing_engine.calculators.totals import TotalsCalculator
from billing_engine.calculators.types import LineInput, round_percent
from billing_engine.database import make_session_factory, run_with_numbering_retry
from billing_engine.errors import (
    InvalidTransitionError,
    PermissionDeniedError,
    ValidationError,
)
from billing_engine.models import Base, PayApplication, SOVLineItem
from billing_engine.money import Money
from billing_engine.services.certification import (
    NO_LIEN_WAIVER_WARNING,
    CertificationWorkflow,
)
from billing_engine.services.pay_app_service import PayApplicationService
from billing_engine.services.sov_service import ScheduleOfValuesService

TODAY = date(2024, 4, 5)
HUNDRED = Decimal("100")

amounts = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("10000000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
scheduled_values = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("10000000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
percents = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("100"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)


@st.composite
def line_inputs(draw) -> LineInput:
    """A G703 row; previous and this-period may exceed the scheduled value."""
    return LineInput(
        scheduled_value=Money.of(draw(scheduled_values)),
        retainage_pct=draw(percents),
        work_completed_previous=Money.of(draw(amounts)),
        work_completed_this_period=Money.of(draw(amounts)),
        materials_stored=Money.of(draw(amounts)),
        certified_this_period=draw(st.none() | amounts.map(Money.of)),
        retainage_pct_override=draw(st.none() | percents),
    )


# =============================================================================
# Totals identities
# =============================================================================


class TestTotalsProperties:
    """G703/G702 identities hold for any line values."""

    @given(st.lists(line_inputs(), max_size=20))
    @settings(max_examples=200)
    def test_aggregate_identities(self, lines):
        totals = TotalsCalculator.compute(lines)

        assert totals.total_earned == (
            totals.completed_previous + totals.completed_this_period + totals.materials_stored
        )
        assert totals.net_payment == (
            totals.total_earned - totals.retainage_held - totals.completed_previous
        )
        assert totals.scheduled_value == sum(
            (line.scheduled_value for line in lines), Money.zero()
        )
        assert totals.retainage_held == sum((row.retainage for row in totals.lines), Money.zero())
        assert totals.certified_this_period == sum(
            (row.certified_this_period for row in totals.lines), Money.zero()
        )
        # Retainage never exceeds what was earned
        assert Money.zero() <= totals.retainage_held <= totals.total_earned

    @given(line_inputs())
    @settings(max_examples=200)
    def test_line_identities(self, line):
        row = TotalsCalculator.line_totals(line)

        assert row.total == (
            line.work_completed_previous + line.work_completed_this_period + line.materials_stored
        )
        expected_pct = (
            line.retainage_pct_override
            if line.retainage_pct_override is not None
            else line.retainage_pct
        )
        assert row.retainage_pct == expected_pct
        assert row.retainage == row.total * expected_pct / HUNDRED
        assert row.pct_complete == round_percent(row.total / row.scheduled_value * HUNDRED)
        assert row.is_over_billed == (row.total > row.scheduled_value)

    @given(st.lists(line_inputs(), min_size=1, max_size=10), st.lists(amounts, max_size=5))
    @settings(max_examples=100)
    def test_g702_ties_to_totals(self, lines, change_orders):
        totals = TotalsCalculator.compute(lines)
        budget = Money.of(1000000)
        summary = TotalsCalculator.g702_summary(totals, budget, [Money.of(c) for c in change_orders])

        assert summary.current_payment_due == totals.net_payment
        assert summary.contract_sum_to_date == budget + sum(
            (Money.of(c) for c in change_orders), Money.zero()
        )
        assert summary.balance_to_finish_including_retainage == (
            summary.contract_sum_to_date - summary.total_earned_less_retainage
        )


# =============================================================================
# Carry-forward
# =============================================================================


period_entries = st.tuples(amounts, amounts, st.none() | amounts)


class TestCarryForwardProperties:
    """Each period starts where the previous certified period ended."""

    @given(scheduled_values, st.lists(period_entries, min_size=1, max_size=8))
    @settings(max_examples=100)
    def test_previous_equals_prior_total(self, scheduled, periods):
        item = SOVLineItem(
            sov_line_item_id=uuid4(),
            project_id=uuid4(),
            item_number=1,
            description="Sitework",
            scheduled_value=Money.of(scheduled),
            retainage_pct=Decimal("10"),
        )
        prior_lines = None

        for this_period, materials, certified in periods:
            [line] = CarryForwardResolver.seed(uuid4(), [item], prior_lines)
            line.work_completed_this_period = Money.of(this_period)
            line.materials_stored = Money.of(materials)
            line.certified_this_period = Money.of(certified) if certified is not None else None

            row = TotalsCalculator.line_totals(LineInput.from_line_item(line))
            [next_line] = CarryForwardResolver.seed(uuid4(), [item], [line])

            if certified is None:
                assert next_line.work_completed_previous == row.total
            else:
                assert next_line.work_completed_previous == (
                    row.total - row.work_completed_this_period + Money.of(certified)
                )
            prior_lines = [line]


# =============================================================================
# Certification workflow state machine
# =============================================================================

STATUSES = ["draft", "submitted", "under_review", "certified", "paid", "disputed"]

ALLOWED_EDGES = {
    ("draft", "submitted"),
    ("submitted", "under_review"),
    ("submitted", "certified"),
    ("under_review", "certified"),
    ("certified", "paid"),
    ("draft", "disputed"),
    ("submitted", "disputed"),
    ("under_review", "disputed"),
    ("certified", "disputed"),
}


class CertificationMachine(RuleBasedStateMachine):
    """Drives random transitions; only edges of the workflow table succeed."""

    @initialize()
    def new_pay_app(self):
        self.pay_app = PayApplication(
            pay_application_id=uuid4(),
            project_id=uuid4(),
            pay_app_number=1,
            period_from=date(2024, 3, 1),
            period_to=date(2024, 3, 31),
            status="draft",
        )
        self.history = ["draft"]

    @rule()
    def start_over(self):
        self.new_pay_app()

    @rule(
        to_status=st.sampled_from(STATUSES + ["archived"]),
        can_certify=st.booleans(),
        notes=st.sampled_from([None, "", "   ", "pricing disagreement"]),
        waivers=st.integers(min_value=0, max_value=2),
    )
    def attempt(self, to_status, can_certify, notes, waivers):
        from_status = self.pay_app.status
        kwargs = dict(
            can_certify=can_certify,
            today=TODAY,
            dispute_notes=notes,
            lien_waiver_count=waivers,
        )

        if (from_status, to_status) not in ALLOWED_EDGES:
            with pytest.raises(InvalidTransitionError):
                CertificationWorkflow.apply(self.pay_app, to_status, **kwargs)
        elif to_status in ("certified", "paid") and not can_certify:
            with pytest.raises(PermissionDeniedError):
                CertificationWorkflow.apply(self.pay_app, to_status, **kwargs)
        elif to_status == "disputed" and not (notes or "").strip():
            with pytest.raises(ValidationError):
                CertificationWorkflow.apply(self.pay_app, to_status, **kwargs)
        else:
            result = CertificationWorkflow.apply(self.pay_app, to_status, **kwargs)
            assert result.from_status == from_status
            assert result.to_status == to_status
            assert (NO_LIEN_WAIVER_WARNING in result.warnings) == (
                to_status == "certified" and waivers == 0
            )
            self.history.append(to_status)

        # Rejected attempts leave the status untouched
        assert self.pay_app.status == self.history[-1]

    @invariant()
    def history_follows_table(self):
        for step in zip(self.history, self.history[1:]):
            assert step in ALLOWED_EDGES

    @invariant()
    def side_effects_match_status(self):
        status = self.pay_app.status
        if status in ("certified", "paid"):
            assert self.pay_app.certified_date == TODAY
        if "submitted" in self.history:
            assert self.pay_app.submitted_date == TODAY
        if status == "disputed":
            assert self.pay_app.notes == "pricing disagreement"


TestCertificationStateful = CertificationMachine.TestCase
TestCertificationStateful.settings = settings(max_examples=100, stateful_step_count=20)


# =============================================================================
# Numbering
# =============================================================================


async def _create_interleaved(order: list[int], lost_races: list[bool]) -> dict[int, list[int]]:
    """Create pay applications across projects in ``order``.

    Where ``lost_races`` is set, a competing writer commits the next number
    first, so the attempt collides and has to retry.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        factory = make_session_factory(engine)

        projects = [uuid4() for _ in range(3)]
        async with factory() as session:
            for project_id in projects:
                await ScheduleOfValuesService(session).add_line_item(project_id, "Sitework", "1000")
            await session.commit()

        for index, project_id in enumerate(projects[i] for i in order):
            lose_race = lost_races[index % len(lost_races)] if lost_races else False
            attempts = []

            async def create(session, project_id=project_id, lose_race=lose_race, attempts=attempts):
                attempts.append(session)
                service = PayApplicationService(session)
                if lose_race and len(attempts) == 1:
                    async with factory() as racer:
                        taken = await PayApplicationService(racer).create_pay_application(
                            project_id, date(2024, 3, 1), date(2024, 3, 31)
                        )
                        await racer.commit()

                    async def stale_number(_project_id):
                        return taken.pay_app_number

                    service._next_pay_app_number = stale_number
                return await service.create_pay_application(
                    project_id, date(2024, 3, 1), date(2024, 3, 31)
                )

            await run_with_numbering_retry(factory, create, max_attempts=3)
            assert len(attempts) == (2 if lose_race else 1)

        numbers: dict[int, list[int]] = {}
        async with factory() as session:
            for position, project_id in enumerate(projects):
                result = await session.execute(
                    select(PayApplication.pay_app_number)
                    .where(PayApplication.project_id == project_id)
                    .order_by(PayApplication.pay_app_number)
                )
                numbers[position] = list(result.scalars().all())
        return numbers
    finally:
        await engine.dispose()


class TestNumberingProperties:
    """Pay application numbers stay gapless and unique per project."""

    @given(
        st.lists(st.integers(min_value=0, max_value=2), min_size=1, max_size=10),
        st.lists(st.booleans(), max_size=10),
    )
    @settings(max_examples=25, deadline=None)
    def test_numbers_are_gapless_under_interleaving(self, order, lost_races):
        numbers = asyncio.run(_create_interleaved(order, lost_races))

        expected = {position: 0 for position in numbers}
        for index, position in enumerate(order):
            lost = lost_races[index % len(lost_races)] if lost_races else False
            # A lost race also leaves the competing writer's application behind
            expected[position] += 2 if lost else 1

        for position, assigned in numbers.items():
            assert assigned == list(range(1, expected[position] + 1))
