from fastapi import APIRouter, Depends, HTTPException, status

from focus_sessions.api.deps import get_current_user_id, get_session_service
from focus_sessions.schemas.session import (
    CleanupResponse,
    OperationResult,
    OperationStatus,
    SessionCheckResponse,
    SessionCreate,
    SessionEndResponse,
    SessionRead,
)
from focus_sessions.services.session_service import SessionService

router = APIRouter()


def _raise_if_failed(result: OperationResult) -> None:
    if result.status == OperationStatus.FAILED:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session store unavailable",
        )


# --------------------------------------------------------------------------
# POST /api/v1/sessions/create
# Legacy entry point: a session that exists but has not started
# --------------------------------------------------------------------------
@router.post("/create", response_model=SessionRead, status_code=status.HTTP_201_CREATED)
async def create_session(
    payload: SessionCreate,
    user_id: str = Depends(get_current_user_id),
    service: SessionService = Depends(get_session_service),
):
    result = await service.create(user_id, payload.session_type, payload.notes)
    _raise_if_failed(result)
    return SessionRead.from_record(result.session)


# --------------------------------------------------------------------------
# POST /api/v1/sessions/start
# --------------------------------------------------------------------------
@router.post("/start", response_model=SessionRead, status_code=status.HTTP_201_CREATED)
async def start_session(
    user_id: str = Depends(get_current_user_id),
    service: SessionService = Depends(get_session_service),
):
    result = await service.start(user_id)
    _raise_if_failed(result)
    return SessionRead.from_record(result.session)


# --------------------------------------------------------------------------
# POST /api/v1/sessions/end
# ended=False: nothing was open, or the session was discarded
# --------------------------------------------------------------------------
@router.post("/end", response_model=SessionEndResponse)
async def end_session(
    user_id: str = Depends(get_current_user_id),
    service: SessionService = Depends(get_session_service),
):
    result = await service.end(user_id)
    _raise_if_failed(result)
    if result.session is None:
        return SessionEndResponse(ended=False)
    return SessionEndResponse(ended=True, session=SessionRead.from_record(result.session))


# --------------------------------------------------------------------------
# POST /api/v1/sessions/heartbeat
# --------------------------------------------------------------------------
@router.post("/heartbeat", status_code=status.HTTP_204_NO_CONTENT)
async def heartbeat(
    user_id: str = Depends(get_current_user_id),
    service: SessionService = Depends(get_session_service),
):
    result = await service.heartbeat(user_id)
    _raise_if_failed(result)
    return None


# --------------------------------------------------------------------------
# GET /api/v1/sessions/active
# --------------------------------------------------------------------------
@router.get("/active", response_model=SessionCheckResponse)
async def check_session(
    user_id: str = Depends(get_current_user_id),
    service: SessionService = Depends(get_session_service),
):
    result = await service.check(user_id)
    _raise_if_failed(result)
    return SessionCheckResponse(active=bool(result.active))


# --------------------------------------------------------------------------
# POST /api/v1/sessions/cleanup
# Runs the reconciliation passes right away for the caller
# --------------------------------------------------------------------------
@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_sessions(
    user_id: str = Depends(get_current_user_id),
    service: SessionService = Depends(get_session_service),
):
    report = await service.cleanup(user_id)
    return CleanupResponse(
        deleted=report.total,
        stale_pending=report.stale_pending,
        orphans=report.orphans,
        recent_ended=report.recent_ended,
        failed_passes=report.failed_passes,
    )
