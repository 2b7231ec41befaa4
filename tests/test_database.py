"""Tests for session helpers and the numbering retry loop."""

from datetime import date

import pytest
from sqlalchemy import func, select

from billing_engine.database import run_with_numbering_retry
from billing_engine.errors import NumberingConflictError
from billing_engine.models import PayApplication
from billing_engine.services.pay_app_service import PayApplicationService


class TestRunWithNumberingRetry:
    """Test retrying units of work on numbering conflicts."""

    async def test_success_commits(self, session_factory, project_id, single_item_sov):
        async def create(session):
            return await PayApplicationService(session).create_pay_application(
                project_id, date(2024, 3, 1), date(2024, 3, 31)
            )

        pay_app = await run_with_numbering_retry(session_factory, create, max_attempts=3)

        async with session_factory() as session:
            stored = await session.get(PayApplication, pay_app.pay_application_id)
            assert stored is not None
            assert stored.pay_app_number == 1

    async def test_retries_after_conflict(
        self, session_factory, project_id, draft_pay_app, monkeypatch
    ):
        """A stale number on the first attempt is recomputed on the second."""
        original = PayApplicationService._next_pay_app_number
        calls = []

        async def stale_once(self, project_id):
            calls.append(project_id)
            if len(calls) == 1:
                return 1
            return await original(self, project_id)

        monkeypatch.setattr(PayApplicationService, "_next_pay_app_number", stale_once)

        async def create(session):
            return await PayApplicationService(session).create_pay_application(
                project_id, date(2024, 4, 1), date(2024, 4, 30)
            )

        pay_app = await run_with_numbering_retry(session_factory, create, max_attempts=3)

        assert len(calls) == 2
        assert pay_app.pay_app_number == 2

    async def test_gives_up_after_max_attempts(self, session_factory, project_id):
        attempts = []

        async def always_conflicts(session):
            attempts.append(session)
            raise NumberingConflictError("taken", project_id=str(project_id))

        with pytest.raises(NumberingConflictError):
            await run_with_numbering_retry(session_factory, always_conflicts, max_attempts=3)

        assert len(attempts) == 3
        # Each attempt runs in its own session
        assert len({id(s) for s in attempts}) == 3

    async def test_other_errors_are_not_retried(self, session_factory, project_id):
        attempts = []

        async def fails(session):
            attempts.append(session)
            raise ValueError("boom")

        with pytest.raises(ValueError):
            await run_with_numbering_retry(session_factory, fails, max_attempts=3)

        assert len(attempts) == 1

        async with session_factory() as session:
            count = await session.scalar(select(func.count()).select_from(PayApplication))
            assert count == 0
