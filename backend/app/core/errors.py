"""
Application error types and their mapping onto the response envelope.

Every handler failure ends up as ``{"success": false, "error": "..."}`` with
the status code carried by the error class. Unexpected exceptions are logged
server-side with their traceback and reported to the client as a generic
"Internal server error".
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("uvicorn.error")


class AppError(Exception):
    """Base class for errors that map to a client-visible envelope."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid input"


class Unauthenticated(AppError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(AppError):
    status_code = 403
    default_message = "Access denied"


class NotFound(AppError):
    status_code = 404
    default_message = "Resource not found"


class Conflict(AppError):
    # Duplicate unique fields are reported as a plain 400
    status_code = 400
    default_message = "Resource already exists"


class ConfigurationError(AppError):
    """Raised when required process configuration is missing."""

    default_message = "Server is not configured"


def error_envelope(message: str) -> dict:
    return {"success": False, "error": message}


def _describe_validation_error(exc: RequestValidationError) -> str:
    """
    Turn the first pydantic error into a short human-readable sentence,
    e.g. ``"title: String should have at least 5 characters"``.
    """
    errors = exc.errors()
    if not errors:
        return "Invalid input"
    first = errors[0]
    loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path")]
    msg = first.get("msg", "Invalid input")
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return f"{'.'.join(loc)}: {msg}" if loc else msg


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("[error] %s %s -> %s", request.method, request.url.path, exc.message)
            return JSONResponse(status_code=500, content=error_envelope("Internal server error"))
        return JSONResponse(status_code=exc.status_code, content=error_envelope(exc.message))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        message = _describe_validation_error(exc)
        logger.info("[validation] %s %s -> %s", request.method, request.url.path, message)
        return JSONResponse(status_code=400, content=error_envelope(message))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        # Full details stay in the server log only
        logger.exception("[error] unhandled %s on %s %s", type(exc).__name__, request.method, request.url.path)
        return JSONResponse(status_code=500, content=error_envelope("Internal server error"))
