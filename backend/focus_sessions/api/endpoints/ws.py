# backend/focus_sessions/api/endpoints/ws.py

import json
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from focus_sessions.api.deps import get_ws_session_service
from focus_sessions.core.logging import get_logger
from focus_sessions.core.security import verify_token
from focus_sessions.schemas.session import (
    ClientMessage,
    OperationResult,
    OperationStatus,
    ServerMessage,
    SessionRead,
)
from focus_sessions.services.session_service import SessionService

logger = get_logger(__name__)

router = APIRouter()

WS_UNAUTHORIZED = 4001
WS_NOT_READY = 1011

# inbound type -> outbound ack type
ACKS = {
    "create-session": "sessionCreated",
    "start-session": "sessionStarted",
    "end-session": "sessionEnded",
}


def _session_of(result: OperationResult) -> Optional[SessionRead]:
    if result.session is None:
        return None
    return SessionRead.from_record(result.session)


def _frame_text(message: dict, user_id: str) -> Optional[str]:
    """Text and binary frames carry the same JSON; undecodable bytes are dropped."""
    if message.get("text") is not None:
        return message["text"]
    data = message.get("bytes")
    if data is None:
        return None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning("Undecodable binary frame", extra={"user_id": user_id, "event_type": "ws_bad_frame"})
        return None


async def handle_message(
    service: SessionService, user_id: str, raw: str
) -> Optional[ServerMessage]:
    """
    Turn one inbound frame into an intent and build the reply, if any.
    Garbage frames and unknown intents are logged and dropped.
    """
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("Invalid JSON frame", extra={"user_id": user_id, "event_type": "ws_bad_frame"})
        return None

    if not isinstance(data, dict):
        logger.warning("Frame is not an object", extra={"user_id": user_id, "event_type": "ws_bad_frame"})
        return None

    try:
        message = ClientMessage.model_validate(data)
    except ValidationError:
        logger.warning("Invalid message type", extra={"user_id": user_id, "event_type": "ws_bad_frame"})
        return None

    intent = message.type

    if intent == "create-session":
        result = await service.create(user_id, message.session_type, message.notes)
    elif intent == "start-session":
        result = await service.start(user_id)
    elif intent == "end-session":
        result = await service.end(user_id)
    elif intent == "heartbeat":
        result = await service.heartbeat(user_id)
        if result.status == OperationStatus.FAILED:
            return ServerMessage(type="sessionError", intent=intent)
        return None
    elif intent == "session-check":
        result = await service.check(user_id)
        if result.status == OperationStatus.FAILED:
            return ServerMessage(type="sessionError", intent=intent)
        return ServerMessage(type="sessionExists" if result.active else "noSessionExists")
    else:
        logger.info(
            "Ignoring unknown intent",
            extra={"user_id": user_id, "event_type": "ws_unknown_intent", "intent": intent},
        )
        return None

    if result.status == OperationStatus.FAILED:
        return ServerMessage(type="sessionError", intent=intent)
    # end-session: the same ack whether a session was ended, absent or discarded
    return ServerMessage(type=ACKS[intent], session=_session_of(result))


@router.websocket("/ws")
async def session_socket(
    websocket: WebSocket,
    token: Optional[str] = Query(default=None),
    service: SessionService = Depends(get_ws_session_service),
):
    if service is None:
        await websocket.close(code=WS_NOT_READY, reason="Session service not ready")
        return

    user_id = verify_token(token)
    if user_id is None:
        await websocket.close(code=WS_UNAUTHORIZED, reason="Unauthorized")
        logger.warning(
            "WebSocket connection rejected: unauthorized",
            extra={"event_type": "websocket_auth_failed"},
        )
        return

    await websocket.accept()
    logger.info("WebSocket connected", extra={"user_id": user_id, "event_type": "websocket_connected"})

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
            raw = _frame_text(message, user_id)
            if raw is None:
                continue
            reply = await handle_message(service, user_id, raw)
            if reply is not None:
                await websocket.send_json(reply.model_dump(mode="json", exclude_none=True))
    except WebSocketDisconnect:
        logger.info(
            "WebSocket connection closed",
            extra={"user_id": user_id, "event_type": "websocket_disconnected"},
        )
    finally:
        # closing the socket ends whatever session the user left open
        await service.end(user_id)
