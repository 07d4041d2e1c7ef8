# main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from focus_sessions.api.endpoints import health, ws
from focus_sessions.api.endpoints.desktop import sessions as desktop_sessions
from focus_sessions.core.config import settings
from focus_sessions.core.exceptions import StoreFailure
from focus_sessions.core.logging import get_logger, setup_logging
from focus_sessions.crud.sessions import SessionStore, get_sessions_collection
from focus_sessions.db.mongo import close_mongo_connection, connect_to_mongo
from focus_sessions.services.session_service import SessionService

setup_logging(
    level=settings.LOG_LEVEL,
    json_logs=settings.is_production,
)
logger = get_logger(__name__)


# [lifecycle] DB connection, and the session core built once per process
@asynccontextmanager
async def lifespan(app: FastAPI):
    await connect_to_mongo()

    store = SessionStore(get_sessions_collection())
    try:
        await store.ensure_indexes()
    except StoreFailure as e:
        # the service still works without indexes, only slower
        logger.warning("Could not create session indexes", extra={"error": str(e)})

    app.state.session_service = SessionService.from_settings(store, settings)
    logger.info(
        "Focus session backend started",
        extra={"event_type": "startup", "environment": settings.ENVIRONMENT},
    )
    yield

    await app.state.session_service.aclose()
    await close_mongo_connection()


app = FastAPI(title="Focus Sessions Backend", lifespan=lifespan)

# CORS: dashboard and desktop app
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def read_root():
    return {"message": "Backend is running!"}

app.include_router(health.router)

# real-time transport (desktop agent)
app.include_router(ws.router)

# same intents over HTTP
app.include_router(desktop_sessions.router, prefix="/api/v1/sessions", tags=["sessions"])


def run():
    import uvicorn

    # log_config=None keeps uvicorn on the root handler configured above
    uvicorn.run(
        "focus_sessions.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,
    )
