"""Error taxonomy and the FastAPI handlers that render it.

Every failure leaves the API as a JSON body `{"message": ...}` with the
status code of its class. Unexpected exceptions become a generic 500 so
internals never reach the caller.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("quizhub.api")


class QuizHubError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(QuizHubError):
    status_code = 400


class AuthenticationError(QuizHubError):
    status_code = 401


class AuthorizationError(QuizHubError):
    status_code = 403


class NotFoundError(QuizHubError):
    status_code = 404


class InternalError(QuizHubError):
    status_code = 500


def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


def describe_validation_errors(errors) -> str:
    """Turn pydantic error entries into one readable line.

    The `body`/`path` prefix of the location is dropped, e.g.
    `password: String should have at least 6 characters`.
    """
    parts = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "path", "query")]
        msg = err.get("msg", "invalid value")
        parts.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return "; ".join(parts) or "Invalid request"


async def quizhub_error_handler(request: Request, exc: QuizHubError):
    return _message(exc.status_code, exc.message or "Server error")


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return _message(400, describe_validation_errors(exc.errors()))


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": detail},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_exception path=%s method=%s", request.url.path, request.method)
    return _message(500, "Server error")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(QuizHubError, quizhub_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
