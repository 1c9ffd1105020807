"""Global error formatting.

Every failure of a request ends here. ``ErrorFormatter`` is configured once at
startup: in development it exposes the raw error, in production it turns known
store and token failures into operational errors and hides everything else.
"""

from __future__ import annotations

import logging
import traceback
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import jwt
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from practice_api.api.catch_async import NextFunction, catch_async
from practice_api.infra.errors import CastError, DocumentValidationError, DuplicateKeyError
from practice_api.services.errors import AppError

logger = logging.getLogger(__name__)

GENERIC_MESSAGE = "Something went very wrong!"


@dataclass(frozen=True)
class ErrorReply:
    status_code: int
    body: dict[str, Any]


def _from_cast_error(exc: CastError) -> AppError:
    return AppError(f"Invalid {exc.path}: {exc.value}", 400)


def _from_duplicate_key(exc: DuplicateKeyError) -> AppError:
    field, value = next(iter(exc.key_value.items()))
    return AppError(f"{exc.resource} with {field} '{value}' already exists. Please use another value", 400)


def _from_validation(exc: DocumentValidationError) -> AppError:
    return AppError(". ".join(exc.errors.values()), 400)


def _from_expired_token(_: jwt.ExpiredSignatureError) -> AppError:
    return AppError("Your token has expired. Please log in again", 401)


def _from_invalid_token(_: jwt.InvalidTokenError) -> AppError:
    return AppError("Invalid token. Please log in again", 401)


# Order matters: ExpiredSignatureError is an InvalidTokenError.
NORMALIZERS: tuple[tuple[type[Exception], Callable[[Any], AppError]], ...] = (
    (CastError, _from_cast_error),
    (DuplicateKeyError, _from_duplicate_key),
    (DocumentValidationError, _from_validation),
    (jwt.ExpiredSignatureError, _from_expired_token),
    (jwt.InvalidTokenError, _from_invalid_token),
)


def normalize_error(exc: Exception) -> Exception:
    for error_type, normalizer in NORMALIZERS:
        if isinstance(exc, error_type):
            return normalizer(exc)
    return exc


@dataclass(frozen=True)
class ErrorFormatter:
    development: bool = False

    def format(self, exc: Exception) -> ErrorReply:
        if self.development:
            return self._development_reply(exc)
        return self._production_reply(normalize_error(exc))

    def _development_reply(self, exc: Exception) -> ErrorReply:
        status_code = getattr(exc, "status_code", 500)
        return ErrorReply(
            status_code=status_code,
            body={
                "status": getattr(exc, "status", "error"),
                "message": str(exc),
                "stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
                "error": {
                    "name": type(exc).__name__,
                    "status_code": status_code,
                    "is_operational": getattr(exc, "is_operational", False),
                },
            },
        )

    def _production_reply(self, exc: Exception) -> ErrorReply:
        if isinstance(exc, AppError) and exc.is_operational:
            return ErrorReply(exc.status_code, {"status": exc.status, "message": exc.message})
        return ErrorReply(500, {"status": "error", "message": GENERIC_MESSAGE})

    def respond(self, exc: Exception) -> JSONResponse:
        reply = self.format(exc)
        if reply.status_code >= 500:
            logger.error("Unhandled %s", type(exc).__name__, exc_info=exc)
        else:
            logger.warning("%d %s", reply.status_code, reply.body["message"])
        return JSONResponse(status_code=reply.status_code, content=reply.body)


def _describe_validation_error(error: dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part not in {"body", "path", "query"})
    return f"{location}: {error['msg']}" if location else str(error["msg"])


async def _run_route(request: Request, call_next: Any, next_: NextFunction) -> Any:
    return await call_next(request)


def register_error_handlers(app: FastAPI, formatter: ErrorFormatter) -> None:
    """Route every failure of ``app`` through ``formatter``."""

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return formatter.respond(AppError(f"{request.url.path} was not found on this server", 404))
        return formatter.respond(AppError(str(exc.detail), exc.status_code))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(_: Request, exc: RequestValidationError) -> JSONResponse:
        message = ". ".join(_describe_validation_error(error) for error in exc.errors())
        return formatter.respond(AppError(message or "Invalid request", 400))

    dispatch = catch_async(_run_route)

    @app.middleware("http")
    async def error_pipeline(request: Request, call_next: Any) -> Any:
        return await dispatch(request, call_next, formatter.respond)
