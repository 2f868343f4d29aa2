# backend/app/routers/renters.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..auth import RenterIdentity, clear_session_cookie, get_renter, set_session_cookie
from ..db import get_db
from ..errors import NotFound
from ..models import Renter
from ..schemas import (
    CredentialsIn,
    RedeemIn,
    RedeemOut,
    RenterDraftIn,
    RenterDraftOut,
    RenterOut,
    SubmissionIn,
    SubmissionOut,
)
from ..services.auth_service import SESSION_KIND_RENTER, login_renter
from ..services.draft_service import get_renter_draft, save_renter_draft
from ..services.invitation_service import redeem_invitation
from ..services.submission_service import upsert_submission

router = APIRouter(tags=["renters"])


@router.post("/renters/register", response_model=RedeemOut, status_code=201)
def register(payload: RedeemIn, response: Response, db: Session = Depends(get_db)):
    result = redeem_invitation(
        db,
        token=payload.token,
        email=payload.email,
        full_name=payload.full_name,
        password=payload.password,
        phone=payload.phone,
    )
    set_session_cookie(response, kind=SESSION_KIND_RENTER, subject=result.renter_id)
    return RedeemOut(renter_id=result.renter_id)


@router.post("/renters/login", response_model=RenterOut)
def login(payload: CredentialsIn, response: Response, db: Session = Depends(get_db)):
    renter = login_renter(db, email=payload.email, password=payload.password)
    set_session_cookie(response, kind=SESSION_KIND_RENTER, subject=renter.id)
    return RenterOut.model_validate(renter)


@router.post("/renters/logout")
def logout(response: Response):
    clear_session_cookie(response, kind=SESSION_KIND_RENTER)
    return {"ok": True}


@router.get("/renters/me", response_model=RenterOut)
def me(db: Session = Depends(get_db), renter: RenterIdentity = Depends(get_renter)):
    row = db.get(Renter, renter.renter_id)
    if row is None:
        raise NotFound("Renter not found")
    return RenterOut.model_validate(row)


@router.get("/renters/draft", response_model=RenterDraftOut)
def get_draft(db: Session = Depends(get_db), renter: RenterIdentity = Depends(get_renter)):
    draft = get_renter_draft(db, renter_id=renter.renter_id)
    return RenterDraftOut(draft=RenterDraftIn.model_validate(draft) if draft is not None else None)


@router.put("/renters/draft")
def put_draft(payload: RenterDraftIn, db: Session = Depends(get_db), renter: RenterIdentity = Depends(get_renter)):
    save_renter_draft(db, renter_id=renter.renter_id, snapshot=payload.model_dump())
    return {"ok": True}

@router.post("/renter-submissions", response_model=SubmissionOut)
def submit_report(payload: SubmissionIn, db: Session = Depends(get_db), renter: RenterIdentity = Depends(get_renter)):
    sub = upsert_submission(
        db,
        renter_id=renter.renter_id,
        file_name=payload.file_name,
        mime_type=payload.mime_type,
        pdf_base64=payload.pdf_base64,
        move_in_date=payload.move_in_date,
        move_out_date=payload.move_out_date,
    )
    return SubmissionOut(submission_id=sub.id, pdf_size=sub.pdf_size or 0, submitted_at=sub.submitted_at)
