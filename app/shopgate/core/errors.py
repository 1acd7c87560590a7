from decimal import Decimal

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from app.shopgate.core.error_catalog import AppError, ErrorCatalog, ErrorDefinition
from app.shopgate.core.metrics import metrics

# Codes for framework-raised HTTPExceptions (unknown routes, wrong methods).
HTTP_STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}

LOCK_TIMEOUT_MARKERS = (
    "lock timeout",
    "deadlock detected",
    "database is locked",
    "could not obtain lock",
    "canceling statement due to statement timeout",
)

_LOCATION_PARTS = {"body", "query", "path", "header"}


def is_lock_timeout(exc: Exception) -> bool:
    if not isinstance(exc, OperationalError):
        return False
    message = str(exc).lower()
    return any(marker in message for marker in LOCK_TIMEOUT_MARKERS)


def to_jsonable(value):
    """Decimals travel as plain strings so prices keep their scale."""
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


def error_response(code: str, message: str, details: object, trace_id: str, status_code: int) -> JSONResponse:
    body = {"code": code, "message": message, "details": details, "trace_id": trace_id}
    return JSONResponse(status_code=status_code, content=body)


def _remember(request: Request, code: str, exc: Exception) -> None:
    # Read back by the observability middleware when it logs the request.
    request.state.error_code = code
    request.state.error_class = exc.__class__.__name__


def _catalog_response(request: Request, exc: Exception, error: ErrorDefinition, details: object) -> JSONResponse:
    _remember(request, error.code, exc)
    trace_id = getattr(request.state, "trace_id", "")
    return error_response(error.code, error.message, to_jsonable(details), trace_id, error.status_code)


def describe_validation_errors(exc: RequestValidationError) -> dict:
    errors = []
    for error in exc.errors():
        loc = list(error.get("loc", []))
        field = ".".join(str(part) for part in loc if part not in _LOCATION_PARTS)
        errors.append(
            {
                "field": field or None,
                "message": error.get("msg", "Invalid value"),
                "type": error.get("type", "validation_error"),
                "loc": loc,
                "input": to_jsonable(error.get("input")),
            }
        )
    return {"errors": errors}


def _http_exception_response(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    message, details = "HTTP error", None
    if isinstance(detail, dict):
        message = str(detail.get("message", message))
        details = {key: value for key, value in detail.items() if key != "message"} or None
    elif isinstance(detail, list):
        details = {"errors": detail}
    elif detail is not None:
        message = str(detail)
    code = HTTP_STATUS_CODES.get(exc.status_code, "HTTP_ERROR")
    _remember(request, code, exc)
    return error_response(code, message, details, getattr(request.state, "trace_id", ""), exc.status_code)


def setup_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        return _catalog_response(request, exc, exc.error, exc.details)

    @app.exception_handler(HTTPException)
    async def handle_http_exception(request: Request, exc: HTTPException):
        return _http_exception_response(request, exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return _catalog_response(request, exc, ErrorCatalog.VALIDATION_ERROR, describe_validation_errors(exc))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        error = ErrorCatalog.INTERNAL_ERROR
        if is_lock_timeout(exc):
            metrics.increment_lock_wait_timeout()
            error = ErrorCatalog.LOCK_TIMEOUT
        return _catalog_response(request, exc, error, {"type": exc.__class__.__name__})
