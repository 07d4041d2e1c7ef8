# backend/focus_sessions/api/endpoints/health.py

from fastapi import APIRouter, Request
from pymongo.errors import PyMongoError

from focus_sessions.core.config import settings
from focus_sessions.db.mongo import get_db

router = APIRouter(tags=["Health"])


async def _ping_mongo():
    try:
        await get_db().command("ping")
    except (PyMongoError, RuntimeError) as e:
        return False, str(e)
    return True, None


@router.get("/health")
async def health_check(request: Request):
    """
    Liveness, Mongo reachability and whether the session service is wired up.
    The process answers even when degraded; callers decide what to do with it.
    """
    mongo_ok, mongo_error = await _ping_mongo()
    service_ready = getattr(request.app.state, "session_service", None) is not None

    body = {
        "status": "ok" if (mongo_ok and service_ready) else "degraded",
        "mongo": mongo_ok,
        "session_service": service_ready,
        "collection": settings.MONGO_SESSIONS_COLLECTION,
    }
    if not settings.is_production:
        body["mongo_error"] = mongo_error
    return body
