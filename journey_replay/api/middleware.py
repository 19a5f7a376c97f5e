"""Request logging middleware.

Binds the replay session id (when the path names one) into the log context
so that recompute and export logs can be traced back to the request.
"""

import re
import time

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from journey_replay.utils.logging import LogContext

logger = structlog.get_logger()

# Not worth a log line
QUIET_PATHS = [
    r"^/health$",
    r"^/docs",
    r"^/redoc",
    r"^/openapi\.json$",
]

SESSION_PATH_PATTERN = re.compile(r"^/api/v1/sessions/(?P<session_id>[^/]+)")


def session_id_from_path(path: str) -> str | None:
    match = SESSION_PATH_PATTERN.match(path)
    return match.group("session_id") if match else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Log each API request with its session id, status and duration.

    Usage:
        app.add_middleware(RequestContextMiddleware)
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        path = request.url.path
        if any(re.match(pattern, path) for pattern in QUIET_PATHS):
            return await call_next(request)

        context = {"method": request.method, "path": path}
        session_id = session_id_from_path(path)
        if session_id:
            context["session_id"] = session_id

        started = time.perf_counter()
        with LogContext(**context):
            response = await call_next(request)
            logger.debug(
                "Request handled",
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
        return response
