"""Tests for the Schedule of Values service."""

from decimal import Decimal
from uuid import uuid4

import pytest

from billing_engine.errors import ValidationError
from billing_engine.money import Money
from billing_engine.services.sov_service import ScheduleOfValuesService


class TestAddLineItem:
    """Test appending SOV items."""

    async def test_item_numbers_are_sequential_per_project(self, session, project_id):
        service = ScheduleOfValuesService(session)

        first = await service.add_line_item(project_id, "Sitework", Decimal("25000"))
        second = await service.add_line_item(project_id, "Concrete", Decimal("75000"), Decimal("5"))
        other = await service.add_line_item(uuid4(), "Framing", Decimal("1000"))

        assert first.item_number == 1
        assert second.item_number == 2
        assert other.item_number == 1

    async def test_default_retainage_is_ten_percent(self, session, project_id):
        item = await ScheduleOfValuesService(session).add_line_item(
            project_id, "Sitework", "25000"
        )
        assert item.retainage_pct == Decimal("10")
        assert item.scheduled_value == Money.of(25000)

    @pytest.mark.parametrize("value", ["0", "-100"])
    async def test_rejects_non_positive_value(self, session, project_id, value):
        with pytest.raises(ValidationError):
            await ScheduleOfValuesService(session).add_line_item(project_id, "Sitework", value)

    @pytest.mark.parametrize("pct", ["-1", "100.01"])
    async def test_rejects_retainage_out_of_range(self, session, project_id, pct):
        with pytest.raises(ValidationError):
            await ScheduleOfValuesService(session).add_line_item(
                project_id, "Sitework", "1000", pct
            )

    async def test_rejects_blank_description(self, session, project_id):
        with pytest.raises(ValidationError):
            await ScheduleOfValuesService(session).add_line_item(project_id, "  ", "1000")


class TestListAndSummarize:
    """Test reading the schedule."""

    async def test_list_in_item_order(self, session, project_id):
        service = ScheduleOfValuesService(session)
        for description in ("Sitework", "Concrete", "Roofing"):
            await service.add_line_item(project_id, description, "1000")
        await session.commit()

        items = await service.list_items(project_id)

        assert [i.item_number for i in items] == [1, 2, 3]
        assert [i.description for i in items] == ["Sitework", "Concrete", "Roofing"]

    async def test_summary(self, session, project_id):
        service = ScheduleOfValuesService(session)
        await service.add_line_item(project_id, "Sitework", "75000", "10")
        await service.add_line_item(project_id, "Concrete", "25000", "5")
        await session.commit()

        summary = await service.summarize(project_id)

        assert summary.item_count == 2
        assert summary.total_scheduled_value == Money.of(100000)
        assert summary.weighted_retainage_pct == Decimal("8.75")
