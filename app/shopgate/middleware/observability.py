from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.shopgate.core.logging import log_json
from app.shopgate.core.metrics import metrics
from app.shopgate.db.session import track_db_time

logger = logging.getLogger("shopgate.request")

TRACE_HEADER = "X-Trace-ID"
MAX_TRACE_ID_LENGTH = 128

# request.state attributes copied into every request log line
_STATE_FIELDS = ("shop_id", "user_id", "error_code", "error_class")


def _accepted_trace_id(raw: str | None) -> str | None:
    candidate = (raw or "").strip()
    if candidate and len(candidate) <= MAX_TRACE_ID_LENGTH:
        return candidate
    return None


class TraceIdMiddleware(BaseHTTPMiddleware):
    """Reuses a caller's X-Trace-ID when it is sane, otherwise mints one, and echoes it back."""

    async def dispatch(self, request: Request, call_next):
        trace_id = _accepted_trace_id(request.headers.get(TRACE_HEADER)) or str(uuid.uuid4())
        request.state.trace_id = trace_id
        response: Response = await call_next(request)
        response.headers[TRACE_HEADER] = trace_id
        return response


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def build_request_log_payload(
    *,
    request: Request,
    response: Response | None,
    latency_ms: float,
    db_time_ms: float | None,
) -> dict:
    payload = {
        "event": "http_request",
        "trace_id": getattr(request.state, "trace_id", ""),
        "route": _route_template(request),
        "method": request.method,
        "status_code": response.status_code if response is not None else 500,
        "latency_ms": round(latency_ms, 2),
        "db_time_ms": None if db_time_ms is None else round(db_time_ms, 2),
    }
    for field in _STATE_FIELDS:
        payload[field] = getattr(request.state, field, None)
    return payload


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response: Response | None = None
        with track_db_time() as clock:
            try:
                response = await call_next(request)
                return response
            finally:
                latency_ms = (time.perf_counter() - started) * 1000
                payload = build_request_log_payload(
                    request=request, response=response, latency_ms=latency_ms, db_time_ms=clock.elapsed_ms
                )
                level = logging.ERROR if payload["status_code"] >= 500 else logging.INFO
                log_json(logger, payload, level)
                metrics.record_http_request(
                    route=payload["route"],
                    method=payload["method"],
                    status_code=payload["status_code"],
                    latency_ms=latency_ms,
                )
