# backend/app/auth.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request, Response
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .errors import Unauthorized
from .models import AdminUser, Renter
from .services.auth_service import (
    SESSION_KIND_ADMIN,
    SESSION_KIND_RENTER,
    create_session_token,
    decode_session_token,
    get_or_provision_admin,
)


@dataclass(frozen=True)
class AdminIdentity:
    admin_id: str
    email: str


@dataclass(frozen=True)
class RenterIdentity:
    renter_id: str
    email: str


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if authorization and str(authorization).lower().startswith("bearer "):
        return str(authorization).split(" ", 1)[1].strip() or None
    return None


# -------------------------
# Cookies
# -------------------------
def set_session_cookie(response: Response, *, kind: str, subject: str) -> str:
    if kind == SESSION_KIND_ADMIN:
        name, minutes = settings.admin_cookie_name, settings.jwt_exp_minutes
    else:
        name, minutes = settings.renter_cookie_name, settings.renter_session_minutes

    token = create_session_token(subject=subject, kind=kind, minutes=minutes)
    response.set_cookie(
        name,
        token,
        httponly=True,
        secure=bool(settings.jwt_cookie_secure),
        samesite=str(settings.jwt_cookie_samesite),
        max_age=int(minutes) * 60,
        path="/",
    )
    return token


def clear_session_cookie(response: Response, *, kind: str) -> None:
    name = settings.admin_cookie_name if kind == SESSION_KIND_ADMIN else settings.renter_cookie_name
    response.delete_cookie(name, path="/")


# -------------------------
# Identities
# -------------------------
def get_admin(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> AdminIdentity:
    """
    Resolution order:
      1) admin JWT cookie, or Authorization: Bearer <token>
      2) dev header (ONLY if settings.auth_mode == "dev")
    """
    token = request.cookies.get(settings.admin_cookie_name) or _bearer(authorization)
    if token:
        claims = decode_session_token(token, kind=SESSION_KIND_ADMIN)
        admin = db.get(AdminUser, str(claims["sub"]))
        if admin is None:
            raise Unauthorized("Unknown admin")
        return AdminIdentity(admin_id=admin.id, email=admin.email)

    if settings.auth_mode == "dev":
        email = (request.headers.get(settings.dev_header_admin_email) or "").strip().lower()
        if email and settings.dev_auto_provision:
            admin = get_or_provision_admin(db, email=email)
            return AdminIdentity(admin_id=admin.id, email=admin.email)

    raise Unauthorized("Unauthorized")


def get_renter(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> RenterIdentity:
    token = request.cookies.get(settings.renter_cookie_name) or _bearer(authorization)
    if not token:
        raise Unauthorized("Not authenticated")
    claims = decode_session_token(token, kind=SESSION_KIND_RENTER)
    renter = db.get(Renter, str(claims["sub"]))
    if renter is None:
        raise Unauthorized("Unknown renter")
    return RenterIdentity(renter_id=renter.id, email=renter.email)
