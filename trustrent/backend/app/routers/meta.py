# backend/app/routers/meta.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..domain.access_tokens import TOKEN_LENGTH

router = APIRouter(tags=["meta"])


@router.get("/health", response_model=dict)
def health(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"ok": True}


@router.get("/meta", response_model=dict)
def meta():
    return {
        "version": settings.app_version,
        "env": settings.app_env,
        "access_token": {"length": TOKEN_LENGTH, "alphabet": "0-9"},
        "retain_used_invitations": bool(settings.retain_used_invitations),
    }
