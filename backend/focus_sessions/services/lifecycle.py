"""Focus session lifecycle: create, start, end, heartbeat and the active check."""

import logging
import math
from datetime import datetime, timezone
from typing import Callable, List, Optional

from focus_sessions.core.exceptions import InvalidUserId, StoreFailure
from focus_sessions.core.logging import SessionLogger
from focus_sessions.crud.sessions import SessionStore, new_session_id
from focus_sessions.models.session import FocusSessionInDB
from focus_sessions.services.reconciler import Reconciler


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _strip_or_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    s = v.strip()
    return s or None


def elapsed_seconds(start_time: datetime, end_time: datetime) -> int:
    """Whole seconds between two instants, rounded down (negative if reversed)."""
    return math.floor((end_time - start_time).total_seconds())


def pick_canonical(candidates: List[FocusSessionInDB]) -> FocusSessionInDB:
    """
    Most-recent-wins tie-break among concurrently open records: the greatest
    start_time, records that never started ranking last, then newest created_at.
    """
    return max(
        candidates,
        key=lambda r: (r.start_time is not None, r.start_time or r.created_at, r.created_at),
    )


class LifecycleEngine:
    """
    State machine of a focus session record.

    PENDING -> ACTIVE -> ENDED, or deletion from any state. Nothing is cached
    between calls; every operation reads what it needs from the store.
    Store failures are raised as StoreFailure, apart from the heartbeat
    lookup which falls back to a no-op.

    Args:
        store: SessionStore (or anything with the same methods)
        reconciler: deletes suspicious records and runs follow-up cleanups
        logger: user-tagged log side channel
        min_duration_seconds / max_duration_seconds: plausible session length
        default_session_type: session_type written by start()
        clock: returns the current aware UTC time
    """

    def __init__(
        self,
        store: SessionStore,
        reconciler: Reconciler,
        logger: SessionLogger,
        min_duration_seconds: int = 1,
        max_duration_seconds: int = 60 * 60 * 24,
        default_session_type: str = "from_zero",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if min_duration_seconds > max_duration_seconds:
            raise ValueError("min_duration_seconds must not exceed max_duration_seconds")
        self._store = store
        self._reconciler = reconciler
        self._log = logger
        self.min_duration_seconds = min_duration_seconds
        self.max_duration_seconds = max_duration_seconds
        self.default_session_type = default_session_type
        self._clock = clock

    @staticmethod
    def _require_user(user_id: Optional[str]) -> str:
        cleaned = _strip_or_none(user_id) if isinstance(user_id, str) else None
        if cleaned is None:
            raise InvalidUserId(user_id)
        return cleaned

    def is_plausible(self, duration_seconds: int) -> bool:
        return self.min_duration_seconds <= duration_seconds <= self.max_duration_seconds

    # CREATE (legacy: a record that has not started yet)
    async def create(
        self,
        user_id: str,
        session_type: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> FocusSessionInDB:
        user_id = self._require_user(user_id)
        record = FocusSessionInDB(
            id=new_session_id(),
            user_id=user_id,
            session_type=_strip_or_none(session_type) or self.default_session_type,
            notes=_strip_or_none(notes),
            created_at=self._clock(),
        )
        try:
            created = await self._store.insert(record)
        except StoreFailure as e:
            self._log.error(f"createSession | {e}", user_id)
            raise
        self._log.emit(f"createSession | created session {created.id}", user_id)
        return created

    # START
    async def start(self, user_id: str) -> FocusSessionInDB:
        """
        Insert a record that is already running. No lookup of an existing
        active session happens here; duplicates are resolved by end() and the
        reconciler.
        """
        user_id = self._require_user(user_id)
        now = self._clock()
        record = FocusSessionInDB(
            id=new_session_id(),
            user_id=user_id,
            session_type=self.default_session_type,
            created_at=now,
            start_time=now,
            last_heartbeat=now,
        )
        try:
            started = await self._store.insert(record)
        except StoreFailure as e:
            self._log.error(f"startSession | {e}", user_id)
            raise
        self._log.emit(f"startSession | started session {started.id}", user_id)
        return started

    # END
    async def end(self, user_id: str) -> Optional[FocusSessionInDB]:
        """
        End the user's current session and return it.

        None covers every "nothing was recorded" outcome: no open session,
        the session was discarded for an implausible duration, or a
        concurrent end() got there first.
        """
        user_id = self._require_user(user_id)

        candidates = await self._store.select_active_by_user(user_id)
        if not candidates:
            self._log.emit("endSession | No active session to end", user_id)
            return None

        needs_reconcile = len(candidates) > 1
        if needs_reconcile:
            self._log.warning(
                f"endSession | {len(candidates)} open sessions, keeping the most recent",
                user_id,
            )

        try:
            return await self._end_canonical(user_id, pick_canonical(candidates))
        finally:
            if needs_reconcile:
                self._reconciler.schedule_cleanup(user_id)

    async def _end_canonical(
        self, user_id: str, canonical: FocusSessionInDB
    ) -> Optional[FocusSessionInDB]:
        if canonical.start_time is None:
            self._log.emit(
                f"endSession | No start time found, deleting session {canonical.id}", user_id
            )
            await self._reconciler.delete_by_id(canonical.id, user_id)
            return None

        now = self._clock()
        duration = elapsed_seconds(canonical.start_time, now)

        if not self.is_plausible(duration):
            self._log.warning(
                f"endSession | suspicious duration {duration}s, deleting session {canonical.id}",
                user_id,
                duration_seconds=duration,
            )
            await self._reconciler.delete_by_id(canonical.id, user_id)
            return None

        ended = await self._store.update_by_id(
            canonical.id,
            {"end_time": now, "duration_seconds": duration},
            require_null="end_time",
        )
        if ended is None:
            self._log.emit(f"endSession | session {canonical.id} already ended", user_id)
            return None

        self._log.emit(
            f"endSession | ended session {ended.id} after {duration}s",
            user_id,
            duration_seconds=duration,
        )
        return ended

    # HEARTBEAT
    async def heartbeat(self, user_id: str) -> Optional[FocusSessionInDB]:
        """
        Touch last_heartbeat on the newest open record. Liveness only: the
        value is never used to compute a duration.
        """
        user_id = self._require_user(user_id)

        try:
            current = await self._store.select_latest_by_user(
                user_id, end_time_null=True, order_by="created_at"
            )
        except StoreFailure as e:
            self._log.emit(
                f"heartbeat | lookup failed, skipping: {e}", user_id, level=logging.WARNING
            )
            return None

        if current is None:
            self._log.emit("heartbeat | No active session", user_id, level=logging.DEBUG)
            return None

        return await self._store.update_by_id(current.id, {"last_heartbeat": self._clock()})

    # CHECK
    async def check_active(self, user_id: str) -> bool:
        user_id = self._require_user(user_id)
        current = await self._store.select_latest_by_user(user_id, end_time_null=True)
        return current is not None
