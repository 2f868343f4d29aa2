# backend/app/services/auth_service.py
from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt  # PyJWT

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.portfolio_tree import looks_like_email, normalize_email
from ..errors import AccountExists, Unauthorized, ValidationFailed
from ..models import AdminUser, Renter, new_id

SESSION_KIND_ADMIN = "admin"
SESSION_KIND_RENTER = "renter"


def _now() -> datetime:
    return datetime.utcnow()


def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    iters = int(settings.password_pbkdf2_iters)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iters)
    return f"pbkdf2_sha256${iters}${base64.b64encode(salt).decode()}${base64.b64encode(dk).decode()}"


def verify_password(password: str, stored: str | None) -> bool:
    if not stored:
        return False
    try:
        algo, iters_s, salt_b64, dk_b64 = stored.split("$", 3)
        if algo != "pbkdf2_sha256":
            return False
        iters = int(iters_s)
        salt = base64.b64decode(salt_b64.encode())
        dk = base64.b64decode(dk_b64.encode())
    except ValueError:
        return False
    test = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iters)
    return hmac.compare_digest(test, dk)


def check_credentials_shape(email: str, password: str) -> str:
    """Returns the normalized email or raises ValidationFailed."""
    email_n = normalize_email(email)
    fields: dict[str, str] = {}
    if not looks_like_email(email_n):
        fields["email"] = "Valid email required"
    if len(password or "") < int(settings.password_min_length):
        fields["password"] = f"Password must be at least {settings.password_min_length} characters"
    if fields:
        raise ValidationFailed("Validation failed", fields=fields)
    return email_n


# -------------------------
# Session tokens (JWT in HttpOnly cookies)
# -------------------------
def create_session_token(*, subject: str, kind: str, minutes: int) -> str:
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(subject),
        "kind": kind,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=int(minutes))).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def decode_session_token(token: str, *, kind: str) -> dict[str, Any]:
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Session expired")
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid session")
    if claims.get("kind") != kind or not claims.get("sub"):
        raise Unauthorized("Invalid session")
    return dict(claims)


# -------------------------
# Admins
# -------------------------
def get_admin_by_email(db: Session, email: str) -> AdminUser | None:
    return db.scalar(select(AdminUser).where(AdminUser.email == normalize_email(email)))


def signup_admin(db: Session, *, email: str, password: str) -> AdminUser:
    email_n = check_credentials_shape(email, password)
    if get_admin_by_email(db, email_n):
        raise AccountExists("An admin with this email already exists.")

    admin = AdminUser(id=new_id(), email=email_n, password_hash=hash_password(password), created_at=_now())
    db.add(admin)
    db.commit()
    return admin


def login_admin(db: Session, *, email: str, password: str) -> AdminUser:
    admin = get_admin_by_email(db, email)
    if admin is None or not verify_password(password or "", admin.password_hash):
        raise Unauthorized("Invalid email or password.")
    admin.last_login_at = _now()
    db.commit()
    return admin


def get_or_provision_admin(db: Session, *, email: str) -> AdminUser:
    """Dev auth only: header-supplied email, created on first sight with an unusable password."""
    email_n = normalize_email(email)
    admin = get_admin_by_email(db, email_n)
    if admin:
        return admin
    admin = AdminUser(id=new_id(), email=email_n, password_hash="!", created_at=_now())
    db.add(admin)
    db.commit()
    return admin


# -------------------------
# Renters
# -------------------------
def get_renter_by_email(db: Session, email: str) -> Renter | None:
    return db.scalar(select(Renter).where(Renter.email == normalize_email(email)))


def login_renter(db: Session, *, email: str, password: str) -> Renter:
    renter = get_renter_by_email(db, email)
    if renter is None or not verify_password(password or "", renter.password_hash):
        raise Unauthorized("Invalid email or password.")
    return renter
