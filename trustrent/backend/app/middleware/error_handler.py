# backend/app/middleware/error_handler.py
"""Maps service errors onto the JSON error envelope."""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..errors import TrustRentError, ValidationFailed

log = logging.getLogger("trustrent.errors")


def _body(request: Request, code: str, message: str, fields: dict | None = None) -> dict:
    out = {"error": code, "message": message, "path": str(request.url.path)}
    if fields:
        out["fields"] = fields
    return out


def _field_path(loc) -> str:
    parts = [str(p) for p in loc if p != "body"]
    path = ""
    for p in parts:
        path += f"[{p}]" if p.isdigit() else (f".{p}" if path else p)
    return path or "body"


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(TrustRentError)
    async def trustrent_error_handler(request: Request, exc: TrustRentError):
        level = logging.ERROR if exc.status_code >= 500 else logging.INFO
        log.log(level, "%s: %s", exc.code, exc.message, extra={"status_code": exc.status_code})
        fields = exc.fields if isinstance(exc, ValidationFailed) else None
        return JSONResponse(status_code=exc.status_code, content=_body(request, exc.code, exc.message, fields))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        fields = {_field_path(err.get("loc", ())): err.get("msg", "Invalid value") for err in exc.errors()}
        return JSONResponse(
            status_code=ValidationFailed.status_code,
            content=_body(request, ValidationFailed.code, "Validation failed", fields),
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        log.error("Unexpected error: %s", exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_body(request, "INTERNAL_SERVER_ERROR", "An unexpected error occurred"),
        )
