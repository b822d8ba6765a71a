"""
Error types raised by the service layer and the handlers that render them.

Every handled error is returned as ``{"detail": message}`` so clients see the
same shape FastAPI uses for ``HTTPException``.
"""
import logging
import uuid

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class NotesAidError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(NotesAidError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Unauthorized(NotesAidError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class Forbidden(NotesAidError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFound(NotesAidError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(NotesAidError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Already exists"


class AlreadyReviewed(BadRequest):
    default_message = "Change already reviewed"


class ServiceUnavailable(NotesAidError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Service unavailable"


async def notesaid_error_handler(request: Request, exc: NotesAidError) -> JSONResponse:
    logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log_id = uuid.uuid4().hex[:8]
    logger.error(
        "[%s] Unhandled exception on %s: %s: %s",
        log_id, request.url.path, type(exc).__name__, exc,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "log_id": log_id},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(NotesAidError, notesaid_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
