# backend/focus_sessions/models/session.py

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def ensure_aware_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Naive datetimes are taken as UTC; aware ones are converted to UTC.
    """
    if dt is None:
        return dt
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class SessionState(str, Enum):
    PENDING = "pending"  # created, never started
    ACTIVE = "active"
    ENDED = "ended"
    ORPHAN = "orphan"  # end without start, only reachable by outside tampering


class FocusSessionInDB(BaseModel):
    """
    A document of the 'focus_sessions' collection.

    There is no status column: the state is derived from which of
    start_time / end_time are set. duration_seconds is only written together
    with end_time.
    """
    id: str = Field(..., alias="_id")
    user_id: str
    session_type: str
    notes: Optional[str] = None

    created_at: datetime
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    last_heartbeat: Optional[datetime] = None

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
    )

    @field_validator("created_at", "start_time", "end_time", "last_heartbeat")
    @classmethod
    def _normalize_tz(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware_utc(v)

    @property
    def state(self) -> SessionState:
        if self.end_time is None:
            return SessionState.PENDING if self.start_time is None else SessionState.ACTIVE
        return SessionState.ORPHAN if self.start_time is None else SessionState.ENDED

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)
