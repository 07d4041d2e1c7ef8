# backend/focus_sessions/crud/sessions.py

from datetime import datetime
from typing import Any, Dict, List, Optional
import uuid

from pydantic import BaseModel, Field, model_validator
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from focus_sessions.core.config import settings
from focus_sessions.core.exceptions import StoreFailure
from focus_sessions.db.mongo import get_db
from focus_sessions.models.session import FocusSessionInDB

ORDERABLE_FIELDS = {"created_at", "start_time", "end_time"}


def get_sessions_collection():
    """
    The focus session collection from the Motor DB handle.
    connect_to_mongo() must have run first.
    """
    return get_db()[settings.MONGO_SESSIONS_COLLECTION]


def new_session_id() -> str:
    return str(uuid.uuid4())


class SessionFilter(BaseModel):
    """
    Equality / null / range filter over one user's sessions.
    None means "don't care" for every field.
    """
    user_id: str
    start_time_null: Optional[bool] = None
    end_time_null: Optional[bool] = None
    start_time_gte: Optional[datetime] = None
    created_at_lte: Optional[datetime] = None
    exclude_ids: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_start_time(self) -> "SessionFilter":
        if self.start_time_null is True and self.start_time_gte is not None:
            raise ValueError("start_time_gte cannot be combined with start_time_null=True")
        return self

    def to_query(self) -> Dict[str, Any]:
        query: Dict[str, Any] = {"user_id": self.user_id}

        start: Dict[str, Any] = {}
        if self.start_time_null is True:
            # {"field": None} matches both explicit null and a missing key
            query["start_time"] = None
        elif self.start_time_null is False:
            start["$ne"] = None
        if self.start_time_gte is not None:
            start["$gte"] = self.start_time_gte
        if start:
            query["start_time"] = start

        if self.created_at_lte is not None:
            query["created_at"] = {"$lte": self.created_at_lte}

        if self.end_time_null is True:
            query["end_time"] = None
        elif self.end_time_null is False:
            query["end_time"] = {"$ne": None}

        if self.exclude_ids:
            query["_id"] = {"$nin": list(self.exclude_ids)}
        return query


class SessionStore:
    """
    Typed access to the focus session collection. Translation only: every
    PyMongoError (timeouts included) is raised as StoreFailure, nothing is
    retried, and no session policy lives here.
    """

    def __init__(self, collection):
        self._col = collection

    # CREATE
    async def insert(self, record: FocusSessionInDB) -> FocusSessionInDB:
        try:
            await self._col.insert_one(record.to_document())
        except PyMongoError as e:
            raise StoreFailure("insert", e) from e
        return record

    # READ MANY
    async def select_by_user(
        self,
        user_id: str,
        end_time_null: Optional[bool] = None,
        start_time_null: Optional[bool] = None,
        order_by: str = "created_at",
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> List[FocusSessionInDB]:
        if order_by not in ORDERABLE_FIELDS:
            raise ValueError(f"cannot order sessions by {order_by!r}")

        query = SessionFilter(
            user_id=user_id,
            end_time_null=end_time_null,
            start_time_null=start_time_null,
        ).to_query()

        try:
            cursor = self._col.find(query).sort(order_by, DESCENDING if descending else ASCENDING)
            if limit is not None:
                cursor = cursor.limit(limit)
            docs = await cursor.to_list(length=limit)
        except PyMongoError as e:
            raise StoreFailure("select", e) from e
        return [FocusSessionInDB(**d) for d in docs]

    async def select_active_by_user(self, user_id: str) -> List[FocusSessionInDB]:
        """
        Every record of the user with end_time unset, newest start first.
        """
        return await self.select_by_user(
            user_id, end_time_null=True, order_by="start_time", descending=True
        )

    # READ ONE
    async def select_latest_by_user(
        self,
        user_id: str,
        end_time_null: Optional[bool] = True,
        order_by: str = "created_at",
    ) -> Optional[FocusSessionInDB]:
        rows = await self.select_by_user(
            user_id, end_time_null=end_time_null, order_by=order_by, descending=True, limit=1
        )
        return rows[0] if rows else None

    # UPDATE
    async def update_by_id(
        self,
        record_id: str,
        patch: Dict[str, Any],
        require_null: Optional[str] = None,
    ) -> Optional[FocusSessionInDB]:
        """
        Apply `patch` and return the updated record.
        With `require_null`, the update only applies while that field is still
        unset; None is returned when no document matched.
        """
        query: Dict[str, Any] = {"_id": record_id}
        if require_null is not None:
            query[require_null] = None

        try:
            doc = await self._col.find_one_and_update(
                query,
                {"$set": patch},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise StoreFailure("update", e) from e
        if not doc:
            return None
        return FocusSessionInDB(**doc)

    # DELETE
    async def delete_by_id(self, record_id: str) -> bool:
        try:
            result = await self._col.delete_one({"_id": record_id})
        except PyMongoError as e:
            raise StoreFailure("delete", e) from e
        return result.deleted_count > 0

    async def delete_where(self, session_filter: SessionFilter) -> int:
        try:
            result = await self._col.delete_many(session_filter.to_query())
        except PyMongoError as e:
            raise StoreFailure("delete_many", e) from e
        return result.deleted_count

    async def ensure_indexes(self) -> None:
        try:
            await self._col.create_index([("user_id", ASCENDING), ("end_time", ASCENDING)])
            await self._col.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
        except PyMongoError as e:
            raise StoreFailure("create_index", e) from e
