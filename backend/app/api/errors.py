"""
Translation of domain errors into HTTP responses.

Every DomainError raised below the route layer ends up here and is rendered
as {"success": false, "error": {"kind": ..., "message": ...}}.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.core.errors import DomainError, ErrorKind
from app.core.logging import get_logger

logger = get_logger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.EVENT_FULL: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_REGISTERED: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_REGISTERED: status.HTTP_404_NOT_FOUND,
    ErrorKind.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorKind.PARTICIPANT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_STATUS: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.CONCURRENCY_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.COMMENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.RATING_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.ALREADY_RATED: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_CAPACITY: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.INVALID_SCHEDULE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.INVALID_CATEGORY: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.STORAGE_UNAVAILABLE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error("domain_error", kind=exc.kind.value, message=exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": exc.to_dict()},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
