"""Facade the transports talk to: one method per client intent."""

from datetime import datetime
from typing import Callable, Optional

from focus_sessions.core.config import Settings
from focus_sessions.core.exceptions import SessionError
from focus_sessions.core.logging import SessionLogger
from focus_sessions.crud.sessions import SessionStore
from focus_sessions.schemas.session import CleanupReport, OperationResult, OperationStatus
from focus_sessions.services.lifecycle import LifecycleEngine, utcnow
from focus_sessions.services.reconciler import Reconciler


class SessionService:
    """
    Maps intents onto LifecycleEngine / Reconciler without adding policy.
    Every SessionError is logged with the user and the operation name and
    turned into a FAILED result; callers never see the exception.
    """

    def __init__(
        self,
        engine: LifecycleEngine,
        reconciler: Reconciler,
        logger: SessionLogger,
    ) -> None:
        self.engine = engine
        self.reconciler = reconciler
        self._log = logger

    @classmethod
    def from_settings(
        cls,
        store: SessionStore,
        settings: Settings,
        logger: Optional[SessionLogger] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> "SessionService":
        logger = logger or SessionLogger(
            enabled=settings.LOG_MESSAGES,
            print_user_id=settings.LOG_PRINT_USER_ID,
        )
        reconciler = Reconciler(
            store,
            logger,
            recent_ended_window_seconds=settings.RECENT_ENDED_WINDOW_SECONDS,
            clock=clock,
        )
        engine = LifecycleEngine(
            store,
            reconciler,
            logger,
            min_duration_seconds=settings.MIN_DURATION_SECONDS,
            max_duration_seconds=settings.MAX_DURATION_SECONDS,
            default_session_type=settings.DEFAULT_SESSION_TYPE,
            clock=clock,
        )
        return cls(engine, reconciler, logger)

    def _failed(self, operation: str, user_id: str, error: SessionError) -> OperationResult:
        self._log.error(f"{operation} | failed: {error}", user_id, operation=operation)
        return OperationResult.failed()

    async def create(
        self,
        user_id: str,
        session_type: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> OperationResult:
        try:
            record = await self.engine.create(user_id, session_type, notes)
        except SessionError as e:
            return self._failed("create", user_id, e)
        return OperationResult.of(record)

    async def start(self, user_id: str) -> OperationResult:
        try:
            record = await self.engine.start(user_id)
        except SessionError as e:
            return self._failed("start", user_id, e)
        return OperationResult.of(record)

    async def end(self, user_id: str) -> OperationResult:
        try:
            record = await self.engine.end(user_id)
        except SessionError as e:
            return self._failed("end", user_id, e)
        return OperationResult.of(record)

    async def heartbeat(self, user_id: str) -> OperationResult:
        try:
            record = await self.engine.heartbeat(user_id)
        except SessionError as e:
            return self._failed("heartbeat", user_id, e)
        return OperationResult.of(record)

    async def check(self, user_id: str) -> OperationResult:
        try:
            active = await self.engine.check_active(user_id)
        except SessionError as e:
            result = self._failed("check", user_id, e)
            result.active = False
            return result
        return OperationResult(status=OperationStatus.OK, active=active)

    async def cleanup(self, user_id: str) -> CleanupReport:
        """On-demand reconciliation; pass failures are reported, not raised."""
        return await self.reconciler.cleanup_orphans(user_id)

    async def aclose(self) -> None:
        await self.reconciler.drain()
