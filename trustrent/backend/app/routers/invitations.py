# backend/app/routers/invitations.py
from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..errors import TokenNotFound
from ..schemas import InvitationPreviewOut, TokenIn
from ..services.invitation_service import preview_invitation, validate_access_token

router = APIRouter(tags=["invitations"])


@router.get("/invitations/{token}", response_model=InvitationPreviewOut)
def get_invitation(token: str, db: Session = Depends(get_db)):
    preview = preview_invitation(db, token)
    if preview is None:
        raise TokenNotFound("Invitation not found")
    return InvitationPreviewOut(**asdict(preview))


@router.post("/validate-token", response_model=InvitationPreviewOut)
def validate_token(payload: TokenIn, db: Session = Depends(get_db)):
    preview = validate_access_token(db, payload.token)
    return InvitationPreviewOut(**asdict(preview))
