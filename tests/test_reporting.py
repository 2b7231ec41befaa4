"""Tests for pay application status reporting."""

from datetime import date
from types import SimpleNamespace

from billing_engine.calculators.reporting import filter_by_period, summarize_statuses
from billing_engine.services.state_machine import PayAppStatus


def make_app(status: str, period_from: date, period_to: date) -> SimpleNamespace:
    return SimpleNamespace(status=status, period_from=period_from, period_to=period_to)


class TestFilterByPeriod:
    """Test period range filtering."""

    def test_no_bounds_keeps_everything(self):
        apps = [make_app("draft", date(2024, 1, 1), date(2024, 1, 31))]
        assert filter_by_period(apps) == apps

    def test_period_must_lie_inside_range(self):
        jan = make_app("paid", date(2024, 1, 1), date(2024, 1, 31))
        feb = make_app("certified", date(2024, 2, 1), date(2024, 2, 29))
        straddle = make_app("draft", date(2024, 2, 15), date(2024, 3, 15))

        selected = filter_by_period(
            [jan, feb, straddle], period_start=date(2024, 2, 1), period_end=date(2024, 2, 29)
        )

        assert selected == [feb]


class TestSummarizeStatuses:
    """Test per-status counts."""

    def test_counts(self):
        apps = [
            make_app("draft", date(2024, 1, 1), date(2024, 1, 31)),
            make_app("certified", date(2024, 1, 1), date(2024, 1, 31)),
            make_app("paid", date(2024, 1, 1), date(2024, 1, 31)),
            make_app(PayAppStatus.PAID, date(2024, 1, 1), date(2024, 1, 31)),
        ]

        summary = summarize_statuses(apps)

        assert summary.total == 4
        assert summary.draft == 1
        assert summary.certified == 1
        assert summary.paid == 2
        assert summary.disputed == 0
        assert summary.certified_to_date == 3
        assert summary.unknown == []

    def test_unknown_status_is_reported(self):
        summary = summarize_statuses([make_app("archived", date(2024, 1, 1), date(2024, 1, 31))])
        assert summary.total == 1
        assert summary.unknown == ["archived"]
