import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException


logger = logging.getLogger(__name__)


class BookineoError(Exception):
    """
    Base class for domain errors raised by the services.

    Each subclass carries the HTTP status it maps to, so services stay
    unaware of HTTP while the API still answers with the right 4xx code.
    """

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BookineoError):
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(BookineoError):
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(BookineoError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(BookineoError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(BookineoError):
    status_code = status.HTTP_409_CONFLICT


def error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"error": message}, headers=headers
    )


async def bookineo_error_handler(request: Request, exc: BookineoError):
    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}
    return error_response(exc.status_code, exc.message, headers)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(
        exc.status_code, str(exc.detail), getattr(exc, "headers", None)
    )


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
):
    """
    Render the first validation error as "<field>: <message>".

    The location prefix ("body", "query", "path") is dropped from the field
    path.
    """
    errors = exc.errors()
    if not errors:
        return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, "Invalid request")

    first = errors[0]
    location = [
        str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")
    ]
    message = first.get("msg", "Invalid value")
    if location:
        message = f"{'.'.join(location)}: {message}"
    return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, message)


async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return error_response(status.HTTP_409_CONFLICT, "Conflict with existing data")


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the handlers that turn every failure into an {"error": ...} body."""
    app.add_exception_handler(BookineoError, bookineo_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
