# backend/focus_sessions/schemas/session.py

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from focus_sessions.models.session import FocusSessionInDB, SessionState

# --- Service results ---

class OperationStatus(str, Enum):
    OK = "ok"          # success with data
    EMPTY = "empty"    # success, nothing to return (no active session, discarded, ...)
    FAILED = "failed"  # store failure or invalid input


class OperationResult(BaseModel):
    """
    What SessionService hands back to the transport layer.
    Never carries an exception; `active` is only filled by check.
    """
    status: OperationStatus
    session: Optional[FocusSessionInDB] = None
    active: Optional[bool] = None

    @property
    def ok(self) -> bool:
        return self.status != OperationStatus.FAILED

    @classmethod
    def of(cls, session: Optional[FocusSessionInDB]) -> "OperationResult":
        status = OperationStatus.OK if session is not None else OperationStatus.EMPTY
        return cls(status=status, session=session)

    @classmethod
    def failed(cls) -> "OperationResult":
        return cls(status=OperationStatus.FAILED)


class CleanupReport(BaseModel):
    """
    Outcome of one reconciliation pass over a user's records.
    A pass listed in `failed_passes` deleted nothing.
    """
    stale_pending: int = 0
    orphans: int = 0
    recent_ended: int = 0
    failed_passes: list[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.stale_pending + self.orphans + self.recent_ended


# --- API request/response schemas ---

class SessionCreate(BaseModel):
    """
    [request] POST /api/v1/sessions/create, WebSocket "create-session"
    """
    session_type: Optional[str] = None
    notes: Optional[str] = None


class SessionRead(BaseModel):
    """
    [response] a session as returned to clients
    """
    id: str
    user_id: str
    session_type: str
    notes: Optional[str] = None
    created_at: datetime
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    last_heartbeat: Optional[datetime] = None
    state: SessionState

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_record(cls, record: FocusSessionInDB) -> "SessionRead":
        return cls(**record.model_dump(), state=record.state)


class SessionEndResponse(BaseModel):
    """
    [response] POST /api/v1/sessions/end
    `ended` is False both when nothing was active and when the session
    was discarded for an implausible duration.
    """
    ended: bool
    session: Optional[SessionRead] = None


class SessionCheckResponse(BaseModel):
    active: bool


class CleanupResponse(BaseModel):
    deleted: int
    stale_pending: int
    orphans: int
    recent_ended: int
    failed_passes: list[str]


# --- WebSocket messages ---

class ClientMessage(BaseModel):
    """
    Inbound WebSocket message. Unknown keys are kept so that intents can
    read their own fields (session_type, notes).
    """
    type: str
    session_type: Optional[str] = None
    notes: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class ServerMessage(BaseModel):
    type: str
    session: Optional[SessionRead] = None
    intent: Optional[str] = None
