# backend/app/middleware/structured_logging.py
from __future__ import annotations

import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..config import settings

log = logging.getLogger("trustrent.request")


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    One log line per request: method, path, status_code, latency_ms.

    Request ids come from the context var set by RequestIdMiddleware, so the
    JSON formatter attaches them. Only the dev admin header is logged as a
    caller hint; cookies and tokens never are.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        t0 = time.time()
        admin_hint = request.headers.get(settings.dev_header_admin_email) if settings.auth_mode == "dev" else None

        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            log.info(
                "http_request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "latency_ms": int((time.time() - t0) * 1000),
                    "admin_email": admin_hint,
                },
            )
