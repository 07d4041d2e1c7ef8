"""Pytest configuration."""

from datetime import datetime, timezone

import pytest

from fakes import FakeClock, InMemorySessionStore
from focus_sessions.core.logging import SessionLogger
from focus_sessions.services.lifecycle import LifecycleEngine
from focus_sessions.services.reconciler import Reconciler
from focus_sessions.services.session_service import SessionService

USER_ID = "cb095e4e-e945-42ee-bc87-b9158d3882c5"
T0 = datetime(2026, 1, 5, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def user_id() -> str:
    return USER_ID


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def session_logger() -> SessionLogger:
    return SessionLogger(enabled=True)


@pytest.fixture
def reconciler(store, session_logger, clock) -> Reconciler:
    return Reconciler(store, session_logger, recent_ended_window_seconds=30, clock=clock)


@pytest.fixture
def engine(store, reconciler, session_logger, clock) -> LifecycleEngine:
    return LifecycleEngine(
        store,
        reconciler,
        session_logger,
        min_duration_seconds=1,
        max_duration_seconds=24 * 60 * 60,
        clock=clock,
    )


@pytest.fixture
def service(engine, reconciler, session_logger) -> SessionService:
    return SessionService(engine, reconciler, session_logger)
