"""Error responses, correlation ids and logging setup for the ReportPilot API.

Every failure leaving the API uses the `ErrorResponse` envelope. Its `error`
object always carries `correlation_id` and `type`; diagnostics (details,
traceback, exception type, validation errors) are added outside production
only. Report validation notices are written for the user and are always sent
as the response message.
"""

import logging
import sys
import traceback
import uuid
from contextvars import ContextVar
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from pythonjsonlogger.json import JsonFormatter
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from core.config import get_settings
from core.exceptions import DomainError, ReportValidationError, WorkspaceBusyError
from core.security_config import get_allowed_error_fields, is_sensitive_key
from schemas.api import ErrorResponse


_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

logger = logging.getLogger(__name__)

# `type` values for HTTPException status codes
HTTP_ERROR_TYPES: dict[int, str] = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    409: "conflict",
}

# Domain errors answered with their own message; first match wins
_DOMAIN_ERROR_STATUS: tuple[tuple[type[DomainError], int, str], ...] = (
    (ReportValidationError, 400, "validation_error"),
    (WorkspaceBusyError, 409, "conflict"),
)

# Loggers that are noisy below WARNING
_QUIET_LOGGERS = ("httpx", "google_genai", "openai")

REDACTED = "[REDACTED]"


def get_correlation_id() -> str:
    """Return the current request's correlation id, creating one if unset."""
    correlation_id = _correlation_id_var.get()
    if not correlation_id:
        correlation_id = str(uuid.uuid4())
        _correlation_id_var.set(correlation_id)
    return correlation_id


def set_correlation_id(correlation_id: str | None) -> None:
    _correlation_id_var.set(correlation_id)


class StructuredLogger:
    """Logger wrapper that attaches the correlation id and redacts fields.

    Keyword arguments become `structured_data` on the record; keys flagged by
    `is_sensitive_key` (provider credentials, the student's name) are
    replaced with ``[REDACTED]`` at any nesting depth.
    """

    def __init__(self, logger_name: str):
        self.logger = logging.getLogger(logger_name)

    def info(self, message: str, **fields: Any) -> None:
        self._log(logging.INFO, message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._log(logging.WARNING, message, fields)

    def exception(self, message: str, **fields: Any) -> None:
        """Log at ERROR with the active exception's traceback."""
        self._log(logging.ERROR, message, fields, exc_info=True)

    def _log(
        self,
        level: int,
        message: str,
        fields: dict[str, Any],
        exc_info: bool = False,
    ) -> None:
        correlation_id = get_correlation_id()
        structured_data = {
            "correlation_id": correlation_id,
            "message": message,
            **self._sanitize_data(fields),
        }
        # The JSON formatter renders the id from structured_data; plain text
        # output gets it as a prefix instead
        if get_settings().ENVIRONMENT != "production":
            message = f"[{correlation_id}] {message}"
        self.logger.log(
            level,
            message,
            extra={"structured_data": structured_data},
            exc_info=exc_info,
        )

    def _sanitize_data(self, data: dict[str, Any]) -> dict[str, Any]:
        return {
            key: REDACTED if is_sensitive_key(key) else self._sanitize_value(value)
            for key, value in data.items()
        }

    def _sanitize_value(self, value: Any) -> Any:
        if isinstance(value, dict):
            return self._sanitize_data(value)
        if isinstance(value, list | tuple):
            return [self._sanitize_value(item) for item in value]
        return value


structured_logger = StructuredLogger(__name__)


class ExceptionNormalizationMiddleware(BaseHTTPMiddleware):
    """Turn exceptions escaping the routers into `ErrorResponse` bodies."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:  # noqa: BLE001
            return await global_exception_handler(request, exc)


def build_error_response(
    *,
    correlation_id: str,
    error_type: str,
    message: str,
    environment: str,
    details: dict[str, Any] | None = None,
    traceback_str: str | None = None,
    exception_type: str | None = None,
    validation_errors: Any | None = None,
    status_code: int = 500,
) -> JSONResponse:
    """Build the error envelope, keeping only fields allowed in `environment`."""
    allowed_fields = get_allowed_error_fields(environment)
    optional_fields = {
        "details": details or None,
        "traceback": traceback_str or None,
        "exception_type": exception_type or None,
        "validation_errors": validation_errors,
    }

    error_body: dict[str, Any] = {"correlation_id": correlation_id, "type": error_type}
    error_body.update(
        (name, value)
        for name, value in optional_fields.items()
        if name in allowed_fields and value is not None
    )

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message, error=error_body).model_dump(
            mode="json"
        ),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map any exception to a status code and a sanitized `ErrorResponse`.

    - HTTPException keeps its status; `type` comes from `HTTP_ERROR_TYPES`
    - request/model validation is 422 `validation_error`
    - report validation is 400 and busy workspace is 409, message as raised
    - other domain errors are 500 `domain_error`
    - anything else is 500 `internal_server_error`, traceback outside production
    """
    environment = get_settings().ENVIRONMENT
    correlation_id = get_correlation_id()

    if isinstance(exc, StarletteHTTPException):
        return build_error_response(
            correlation_id=correlation_id,
            error_type=HTTP_ERROR_TYPES.get(exc.status_code, "http_error"),
            message="An HTTP error occurred",
            environment=environment,
            details={"detail": exc.detail},
            exception_type=exc.__class__.__name__,
            status_code=exc.status_code,
        )

    if isinstance(exc, ValidationError | RequestValidationError):
        validation_errors = exc.errors()
        structured_logger.warning(
            "Invalid request data", validation_errors=validation_errors
        )
        return build_error_response(
            correlation_id=correlation_id,
            error_type="validation_error",
            message="Invalid request data provided",
            environment=environment,
            validation_errors=validation_errors,
            status_code=422,
        )

    if isinstance(exc, DomainError):
        return _domain_error_response(request, exc, correlation_id, environment)

    structured_logger.exception(
        "Unhandled exception", exception_type=exc.__class__.__name__, error=str(exc)
    )
    return build_error_response(
        correlation_id=correlation_id,
        error_type="internal_server_error",
        message="An internal error occurred",
        environment=environment,
        traceback_str=(
            "".join(traceback.format_exception(exc)).strip()
            if environment != "production"
            else None
        ),
        exception_type=exc.__class__.__name__,
    )


def _domain_error_response(
    request: Request, exc: DomainError, correlation_id: str, environment: str
) -> JSONResponse:
    for error_class, status_code, error_type in _DOMAIN_ERROR_STATUS:
        if isinstance(exc, error_class):
            structured_logger.info(
                "Request rejected",
                path=request.url.path,
                error_type=exc.__class__.__name__,
            )
            return build_error_response(
                correlation_id=correlation_id,
                error_type=error_type,
                message=str(exc),
                environment=environment,
                exception_type=exc.__class__.__name__,
                status_code=status_code,
            )

    structured_logger.warning(
        "Domain error", error_type=exc.__class__.__name__, domain_message=str(exc)
    )
    return build_error_response(
        correlation_id=correlation_id,
        error_type="domain_error",
        message="Domain error",
        environment=environment,
        details={"detail": str(exc)},
    )


def setup_logging() -> None:
    """Install one stdout handler on the root logger (once per process).

    Production writes JSON lines (`timestamp`, `level`, `name`, `message` and
    any `structured_data`); other environments write plain text.
    """
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    environment = get_settings().ENVIRONMENT
    log_level = logging.DEBUG if environment == "development" else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if environment == "production":
        handler.setFormatter(
            JsonFormatter(
                "%(asctime)s %(levelname)s %(name)s %(message)s",
                rename_fields={"levelname": "level", "asctime": "timestamp"},
            )
        )
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root_logger.setLevel(log_level)
    root_logger.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if environment == "production":
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
