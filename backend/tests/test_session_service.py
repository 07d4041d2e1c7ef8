"""Tests for the SessionService facade."""

import pytest

from fakes import InMemorySessionStore
from focus_sessions.core.config import Settings
from focus_sessions.schemas.session import OperationStatus
from focus_sessions.services.session_service import SessionService


class TestResults:
    @pytest.mark.asyncio
    async def test_start_returns_ok_with_session(self, service, user_id):
        result = await service.start(user_id)

        assert result.status == OperationStatus.OK
        assert result.session.user_id == user_id

    @pytest.mark.asyncio
    async def test_end_without_session_is_empty_not_failed(self, service, user_id):
        result = await service.end(user_id)

        assert result.status == OperationStatus.EMPTY
        assert result.ok
        assert result.session is None

    @pytest.mark.asyncio
    async def test_discarded_session_looks_like_no_session(self, service, user_id):
        await service.start(user_id)
        discarded = await service.end(user_id)
        nothing = await service.end(user_id)

        assert discarded == nothing

    @pytest.mark.asyncio
    async def test_end_after_work_returns_session(self, service, clock, user_id):
        await service.start(user_id)
        clock.advance(120)

        result = await service.end(user_id)

        assert result.status == OperationStatus.OK
        assert result.session.duration_seconds == 120

    @pytest.mark.asyncio
    async def test_check(self, service, user_id):
        assert (await service.check(user_id)).active is False
        await service.start(user_id)
        assert (await service.check(user_id)).active is True

    @pytest.mark.asyncio
    async def test_create(self, service, user_id):
        result = await service.create(user_id, "from_zero", "draft")

        assert result.status == OperationStatus.OK
        assert result.session.start_time is None
        assert result.session.notes == "draft"

    @pytest.mark.asyncio
    async def test_heartbeat_without_session_is_empty(self, service, user_id):
        assert (await service.heartbeat(user_id)).status == OperationStatus.EMPTY


class TestFailures:
    """Store failures never escape the facade."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", ["create", "start"])
    async def test_insert_failure(self, service, store, user_id, operation):
        store.fail_on.add("insert")

        result = await getattr(service, operation)(user_id)

        assert result.status == OperationStatus.FAILED
        assert not result.ok

    @pytest.mark.asyncio
    async def test_end_failure(self, service, store, user_id):
        store.fail_on.add("select_by_user")

        assert (await service.end(user_id)).status == OperationStatus.FAILED

    @pytest.mark.asyncio
    async def test_check_failure_reads_as_inactive(self, service, store, user_id):
        store.fail_on.add("select_by_user")

        result = await service.check(user_id)

        assert result.status == OperationStatus.FAILED
        assert result.active is False

    @pytest.mark.asyncio
    async def test_heartbeat_update_failure(self, service, store, user_id):
        await service.start(user_id)
        store.fail_on.add("update_by_id")

        assert (await service.heartbeat(user_id)).status == OperationStatus.FAILED

    @pytest.mark.asyncio
    async def test_blank_user_fails(self, service):
        assert (await service.start("")).status == OperationStatus.FAILED


class TestWiring:
    @pytest.mark.asyncio
    async def test_from_settings_applies_policy(self):
        settings = Settings(
            MIN_DURATION_SECONDS=5,
            MAX_DURATION_SECONDS=50,
            RECENT_ENDED_WINDOW_SECONDS=10,
            DEFAULT_SESSION_TYPE="deep_work",
            LOG_MESSAGES=False,
        )

        service = SessionService.from_settings(InMemorySessionStore(), settings)

        assert service.engine.min_duration_seconds == 5
        assert service.engine.max_duration_seconds == 50
        assert service.engine.default_session_type == "deep_work"
        assert service.reconciler.recent_ended_window.total_seconds() == 10
        await service.aclose()

    @pytest.mark.asyncio
    async def test_aclose_drains_scheduled_cleanups(self, service, clock, user_id):
        await service.start(user_id)
        await service.start(user_id)
        clock.advance(60)
        await service.end(user_id)
        assert service.reconciler.pending == 1

        await service.aclose()

        assert service.reconciler.pending == 0

    @pytest.mark.asyncio
    async def test_cleanup_reports(self, service, user_id):
        report = await service.cleanup(user_id)
        assert report.total == 0
        assert report.failed_passes == []
