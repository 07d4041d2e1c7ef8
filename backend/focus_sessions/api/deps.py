from typing import Optional

from fastapi import Depends, HTTPException, Request, WebSocket, status
from fastapi.security import OAuth2PasswordBearer

from focus_sessions.core.security import verify_token
from focus_sessions.services.session_service import SessionService

# Only used so the docs show a bearer token input; tokens are issued elsewhere
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")


async def get_current_user_id(token: str = Depends(oauth2_scheme)) -> str:
    """
    Verify the JWT and return its user_id (sub).
    """
    user_id = verify_token(token)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id


def get_session_service(request: Request) -> SessionService:
    """
    The SessionService built in the app lifespan.
    """
    service = getattr(request.app.state, "session_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Session service not ready")
    return service


def get_ws_session_service(websocket: WebSocket) -> Optional[SessionService]:
    return getattr(websocket.app.state, "session_service", None)
