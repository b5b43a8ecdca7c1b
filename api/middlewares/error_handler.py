"""
Global Error Handler Middleware.

Maps exceptions escaping a handler to JSON error responses. Clients get a
short reason; the full exception goes to the log.
"""

from collections.abc import Awaitable, Callable

from aiohttp import web
from loguru import logger

from app.utils.exceptions import (
    PlanningBlocked,
    RequiredReadFailed,
    SubmissionInProgressError,
    must_log,
    must_raise,
)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def error_response(message: str, status: int, **extra) -> web.Response:
    """JSON error body used by every endpoint."""
    return web.json_response({"error": message, **extra}, status=status)


def _status_for(exc: Exception) -> int:
    if isinstance(exc, SubmissionInProgressError):
        return 409
    if isinstance(exc, (RequiredReadFailed, PlanningBlocked)) or must_log(exc):
        return 502
    return 500


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """
    Global error handler middleware.

    - aiohttp HTTP exceptions pass through
    - expected protocol errors map to 409 / 502 with their message
    - everything else is logged with traceback and answered with 500
    """
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as e:
        status = _status_for(e)
        if must_raise(e) or must_log(e):
            logger.warning(f"{request.method} {request.path} -> {status}: {e}")
            return error_response(str(e), status)

        logger.exception(f"Unhandled exception in {request.method} {request.path}: {e}")
        return error_response("Internal server error", 500)
