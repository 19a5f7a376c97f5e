"""HTTP service backing the Journey Replay browser UI.

The UI uploads a trace, reports video duration and progress, and reads back
the correlated timeline and the sequence diagram. All state lives in the
in-memory session store of ``journey_replay.api.sessions``.
"""

from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from journey_replay import __version__
from journey_replay.api.middleware import RequestContextMiddleware
from journey_replay.api.sessions import _sessions
from journey_replay.api.sessions import router as sessions_router
from journey_replay.config import LogLevel, get_settings
from journey_replay.utils.logging import configure_logging_from_settings

logger = structlog.get_logger()

app = FastAPI(
    title="Journey Replay API",
    description="Correlate recorded browser interactions with the requests they triggered",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["*"],
)
app.add_middleware(RequestContextMiddleware)

app.include_router(sessions_router)


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str = __version__
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    sessions: int = Field(0, description="Replay sessions held in memory")
    loaded_sessions: int = Field(0, description="Sessions with a trace loaded")


@app.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(
        sessions=len(_sessions),
        loaded_sessions=sum(1 for session in _sessions.values() if session.is_loaded),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Turn anything the routes did not map into a 500."""
    logger.exception("Unhandled exception", error=str(exc), path=request.url.path)
    debug = get_settings().log_level == LogLevel.DEBUG
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if debug else "An error occurred",
        },
    )


@app.on_event("startup")
async def startup():
    settings = get_settings()
    configure_logging_from_settings(settings)
    logger.info(
        "Journey Replay API starting",
        version=__version__,
        max_trace_events=settings.max_trace_events,
        filters_on_by_default=settings.apply_filters_by_default,
    )


@app.on_event("shutdown")
async def shutdown():
    logger.info("Journey Replay API shutting down", sessions=len(_sessions))
    _sessions.clear()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
