"""Reconciliation of a user's focus session records."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional, Set

from focus_sessions.core.exceptions import StoreFailure
from focus_sessions.core.logging import SessionLogger
from focus_sessions.crud.sessions import SessionFilter, SessionStore
from focus_sessions.schemas.session import CleanupReport


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Reconciler:
    """
    Removes residue left behind by racing clients: duplicate never-started
    records, records with an end but no start, and ended records that started
    too recently to be meaningful.

    Each pass is a single filter + delete. A failing pass is logged and the
    remaining passes still run, so a cleanup is never all-or-nothing.
    """

    DEFAULT_RECENT_ENDED_WINDOW_SECONDS = 30

    def __init__(
        self,
        store: SessionStore,
        logger: SessionLogger,
        recent_ended_window_seconds: int = DEFAULT_RECENT_ENDED_WINDOW_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._log = logger
        self.recent_ended_window = timedelta(seconds=recent_ended_window_seconds)
        self._clock = clock
        self._pending: Set[asyncio.Task] = set()

    async def cleanup_orphans(self, user_id: str) -> CleanupReport:
        """
        Run the three deletion passes for one user and report what each removed.
        """
        report = CleanupReport()

        report.stale_pending = await self._run_pass(
            "stale_pending", user_id, report, lambda: self._delete_stale_pending(user_id)
        )
        report.orphans = await self._run_pass(
            "orphans",
            user_id,
            report,
            lambda: self._store.delete_where(
                SessionFilter(user_id=user_id, start_time_null=True, end_time_null=False)
            ),
        )
        report.recent_ended = await self._run_pass(
            "recent_ended",
            user_id,
            report,
            lambda: self._store.delete_where(
                SessionFilter(
                    user_id=user_id,
                    start_time_null=False,
                    end_time_null=False,
                    start_time_gte=self._clock() - self.recent_ended_window,
                )
            ),
        )

        self._log.emit(
            f"cleanupOrphans | removed {report.total} record(s)",
            user_id,
            event_type="session_cleanup",
        )
        return report

    async def _delete_stale_pending(self, user_id: str) -> int:
        # The newest never-started record may be in the middle of being
        # started, so it always survives.
        newest = await self._store.select_by_user(
            user_id,
            end_time_null=True,
            start_time_null=True,
            order_by="created_at",
            descending=True,
            limit=1,
        )
        if not newest:
            return 0
        keep = newest[0]
        return await self._store.delete_where(
            SessionFilter(
                user_id=user_id,
                start_time_null=True,
                end_time_null=True,
                created_at_lte=keep.created_at,
                exclude_ids=[keep.id],
            )
        )

    async def _run_pass(
        self,
        name: str,
        user_id: str,
        report: CleanupReport,
        run: Callable[[], Awaitable[int]],
    ) -> int:
        try:
            deleted = await run()
        except StoreFailure as e:
            report.failed_passes.append(name)
            self._log.error(f"cleanupOrphans | {name} pass failed: {e}", user_id)
            return 0

        if deleted:
            self._log.emit(f"cleanupOrphans | {name}: deleted {deleted}", user_id)
        return deleted

    async def delete_by_id(self, record_id: str, user_id: str) -> bool:
        """
        Delete one record. Deleting an id that no longer exists is not an error.
        """
        deleted = await self._store.delete_by_id(record_id)
        if deleted:
            self._log.emit(f"deleteSession | deleted session {record_id}", user_id)
        else:
            self._log.emit(f"deleteSession | session {record_id} already gone", user_id)
        return deleted

    # --------------------------------------------------------------------------
    # fire-and-forget follow-ups
    # --------------------------------------------------------------------------
    def schedule_cleanup(self, user_id: str) -> asyncio.Task:
        """
        Start cleanup_orphans for the user without waiting on it.
        The task is referenced until it finishes so it cannot be collected mid-run.
        """
        task = asyncio.create_task(self.cleanup_orphans(user_id), name=f"cleanup:{user_id}")
        self._pending.add(task)
        task.add_done_callback(lambda t: self._on_cleanup_done(t, user_id))
        return task

    def _on_cleanup_done(self, task: asyncio.Task, user_id: str) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc: Optional[BaseException] = task.exception()
        if exc is not None:
            self._log.error(f"cleanupOrphans | background cleanup crashed: {exc!r}", user_id)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every scheduled cleanup to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
