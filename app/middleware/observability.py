from __future__ import annotations

import time
import uuid
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.core.logging import get_logger, request_id_var
from app.core.metrics import normalize_path, record_request_metrics

REQUEST_ID_HEADER = "X-Request-ID"
_UNTRACKED_PATHS = frozenset({"/metrics", "/health"})


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Request id propagation, latency metrics and structured 4xx/5xx logs."""

    def __init__(self, app, *, log_4xx: bool = True, log_5xx: bool = True) -> None:
        super().__init__(app)
        self.logger = get_logger("app.requests")
        self.log_4xx = log_4xx
        self.log_5xx = log_5xx

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        tracked = request.url.path not in _UNTRACKED_PATHS

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            duration = time.perf_counter() - start
            if tracked:
                record_request_metrics(request, 500, duration)
            self._log(request, 500, duration, "Unhandled server error", "error")
            raise
        finally:
            request_id_var.reset(token)

        duration = time.perf_counter() - start
        status_code = response.status_code
        if tracked:
            record_request_metrics(request, status_code, duration)
        response.headers[REQUEST_ID_HEADER] = request_id

        if status_code >= 500 and self.log_5xx:
            self._log(request, status_code, duration, "Server error response", "error")
        elif status_code >= 400 and self.log_4xx:
            self._log(request, status_code, duration, "Client error response", "warning")

        return response

    def _log(self, request: Request, status_code: int, duration: float, message: str, level: str) -> None:
        payload: dict[str, Any] = {
            "method": request.method,
            "path": normalize_path(request),
            "status_code": status_code,
            "duration_ms": round(duration * 1000, 3),
            "client_ip": self._client_ip(request),
            "request_id": request.state.request_id,
        }
        getattr(self.logger, level, self.logger.error)(message, extra=payload)

    @staticmethod
    def _client_ip(request: Request) -> str | None:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
        client = request.client
        return client.host if client else None
