# backend/app/main.py
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .logging_config import configure_logging

from .middleware.error_handler import register_error_handlers
from .middleware.request_id import RequestIdMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware

from .routers.meta import router as meta_router
from .routers.admin import router as admin_router
from .routers.portfolio import router as portfolio_router
from .routers.invitations import router as invitations_router
from .routers.renters import router as renters_router

API_PREFIX = "/api"


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="TrustRent API", version=settings.app_version)

    # added last runs first: request id must wrap the request log line
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    # Core
    app.include_router(meta_router, prefix=API_PREFIX)

    # Admin: auth, portfolio editor, dashboard
    app.include_router(admin_router, prefix=API_PREFIX)
    app.include_router(portfolio_router, prefix=API_PREFIX)

    # Renter onboarding
    app.include_router(invitations_router, prefix=API_PREFIX)
    app.include_router(renters_router, prefix=API_PREFIX)

    return app


app = create_app()
