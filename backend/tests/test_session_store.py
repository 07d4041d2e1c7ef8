"""Tests for the Mongo translation layer."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import ValidationError
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import AutoReconnect, ServerSelectionTimeoutError

from focus_sessions.core.exceptions import StoreFailure
from focus_sessions.crud.sessions import SessionFilter, SessionStore
from focus_sessions.models.session import FocusSessionInDB

NOW = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


def _doc(**overrides):
    doc = {
        "_id": "abc",
        "user_id": "u1",
        "session_type": "from_zero",
        "notes": None,
        "created_at": NOW,
        "start_time": NOW,
        "end_time": None,
        "duration_seconds": None,
        "last_heartbeat": NOW,
    }
    doc.update(overrides)
    return doc


def _collection(docs=None):
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=docs or [])

    col = MagicMock()
    col.find.return_value = cursor
    col.insert_one = AsyncMock()
    col.find_one_and_update = AsyncMock()
    col.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
    col.delete_many = AsyncMock(return_value=MagicMock(deleted_count=3))
    col.create_index = AsyncMock()
    return col, cursor


class TestSessionFilter:
    def test_user_only(self):
        assert SessionFilter(user_id="u1").to_query() == {"user_id": "u1"}

    def test_null_checks(self):
        query = SessionFilter(user_id="u1", start_time_null=True, end_time_null=False).to_query()
        assert query == {"user_id": "u1", "start_time": None, "end_time": {"$ne": None}}

    def test_range_combined_with_not_null(self):
        query = SessionFilter(
            user_id="u1", start_time_null=False, end_time_null=False, start_time_gte=NOW
        ).to_query()
        assert query["start_time"] == {"$ne": None, "$gte": NOW}

    def test_exclusions_and_created_bound(self):
        query = SessionFilter(
            user_id="u1",
            start_time_null=True,
            end_time_null=True,
            created_at_lte=NOW,
            exclude_ids=["keep"],
        ).to_query()
        assert query == {
            "user_id": "u1",
            "start_time": None,
            "end_time": None,
            "created_at": {"$lte": NOW},
            "_id": {"$nin": ["keep"]},
        }

    def test_null_start_cannot_take_a_range(self):
        with pytest.raises(ValidationError):
            SessionFilter(user_id="u1", start_time_null=True, start_time_gte=NOW)


class TestSessionStore:
    @pytest.mark.asyncio
    async def test_insert_writes_aliased_document(self):
        col, _ = _collection()
        store = SessionStore(col)
        record = FocusSessionInDB(**_doc())

        result = await store.insert(record)

        assert result == record
        written = col.insert_one.await_args.args[0]
        assert written["_id"] == "abc"
        assert "id" not in written

    @pytest.mark.asyncio
    async def test_select_active_sorts_by_start_desc(self):
        col, cursor = _collection([_doc()])
        store = SessionStore(col)

        rows = await store.select_active_by_user("u1")

        col.find.assert_called_once_with({"user_id": "u1", "end_time": None})
        cursor.sort.assert_called_once_with("start_time", DESCENDING)
        cursor.limit.assert_not_called()
        assert [r.id for r in rows] == ["abc"]

    @pytest.mark.asyncio
    async def test_select_latest_limits_to_one(self):
        col, cursor = _collection([_doc()])
        store = SessionStore(col)

        latest = await store.select_latest_by_user("u1")

        cursor.sort.assert_called_once_with("created_at", DESCENDING)
        cursor.limit.assert_called_once_with(1)
        assert latest.id == "abc"

    @pytest.mark.asyncio
    async def test_select_latest_empty(self):
        col, _ = _collection([])
        assert await SessionStore(col).select_latest_by_user("u1") is None

    @pytest.mark.asyncio
    async def test_select_ascending(self):
        col, cursor = _collection([])
        await SessionStore(col).select_by_user("u1", descending=False)
        cursor.sort.assert_called_once_with("created_at", ASCENDING)

    @pytest.mark.asyncio
    async def test_select_rejects_unknown_order_field(self):
        col, _ = _collection()
        with pytest.raises(ValueError):
            await SessionStore(col).select_by_user("u1", order_by="notes")

    @pytest.mark.asyncio
    async def test_select_normalizes_naive_datetimes(self):
        naive = datetime(2026, 1, 5, 9, 0)
        col, _ = _collection([_doc(created_at=naive, start_time=naive)])

        rows = await SessionStore(col).select_by_user("u1")

        assert rows[0].start_time == NOW
        assert rows[0].start_time.tzinfo is not None

    @pytest.mark.asyncio
    async def test_conditional_update(self):
        col, _ = _collection()
        col.find_one_and_update.return_value = _doc(end_time=NOW, duration_seconds=5)
        store = SessionStore(col)

        updated = await store.update_by_id(
            "abc", {"end_time": NOW, "duration_seconds": 5}, require_null="end_time"
        )

        col.find_one_and_update.assert_awaited_once_with(
            {"_id": "abc", "end_time": None},
            {"$set": {"end_time": NOW, "duration_seconds": 5}},
            return_document=ReturnDocument.AFTER,
        )
        assert updated.duration_seconds == 5

    @pytest.mark.asyncio
    async def test_update_zero_rows_returns_none(self):
        col, _ = _collection()
        col.find_one_and_update.return_value = None

        assert await SessionStore(col).update_by_id("abc", {"last_heartbeat": NOW}) is None

    @pytest.mark.asyncio
    async def test_delete_by_id_missing(self):
        col, _ = _collection()
        col.delete_one.return_value = MagicMock(deleted_count=0)

        assert await SessionStore(col).delete_by_id("gone") is False

    @pytest.mark.asyncio
    async def test_delete_where_returns_count(self):
        col, _ = _collection()
        session_filter = SessionFilter(user_id="u1", start_time_null=True, end_time_null=False)

        assert await SessionStore(col).delete_where(session_filter) == 3
        col.delete_many.assert_awaited_once_with(session_filter.to_query())

    @pytest.mark.asyncio
    async def test_mongo_errors_become_store_failures(self):
        col, cursor = _collection()
        col.insert_one.side_effect = ServerSelectionTimeoutError("timed out")
        cursor.to_list.side_effect = AutoReconnect("connection reset")
        col.delete_many.side_effect = AutoReconnect("connection reset")
        store = SessionStore(col)

        with pytest.raises(StoreFailure) as exc_info:
            await store.insert(FocusSessionInDB(**_doc()))
        assert exc_info.value.operation == "insert"

        with pytest.raises(StoreFailure):
            await store.select_by_user("u1")
        with pytest.raises(StoreFailure):
            await store.delete_where(SessionFilter(user_id="u1"))
