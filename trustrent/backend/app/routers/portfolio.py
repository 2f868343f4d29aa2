# backend/app/routers/portfolio.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import AdminIdentity, get_admin
from ..config import settings
from ..db import get_db
from ..schemas import (
    PortfolioIn,
    PortfolioOut,
    SavePortfolioOut,
    SendInvitesIn,
    SendInvitesOut,
    WithdrawInviteIn,
)
from ..services.invitation_service import withdraw_invitation
from ..services.notification_service import send_invitations, send_invites_for_unit
from ..services.portfolio_service import get_company_for_admin, load_portfolio, reconcile_portfolio

router = APIRouter(prefix="/portfolio", tags=["portfolio"])


@router.post("/save", response_model=SavePortfolioOut)
def save_portfolio(payload: PortfolioIn, db: Session = Depends(get_db), admin: AdminIdentity = Depends(get_admin)):
    result = reconcile_portfolio(db, admin_id=admin.admin_id, payload=payload)

    out = SavePortfolioOut(
        company_id=result.company_id,
        created_invitations=len(result.created_invitation_ids),
        deleted_invitations=len(result.deleted_invitation_ids),
    )

    # after commit: delivery failures never undo the save
    if settings.auto_send_invites and result.created_invitation_ids:
        company = get_company_for_admin(db, admin_id=admin.admin_id)
        summary = send_invitations(
            db,
            invitation_ids=result.created_invitation_ids,
            company_name=company.name if company else "",
        )
        out.emails_sent = summary.sent
        out.emails_failed = summary.failed

    return out


@router.get("/load", response_model=PortfolioOut)
def get_portfolio(db: Session = Depends(get_db), admin: AdminIdentity = Depends(get_admin)):
    return load_portfolio(db, admin_id=admin.admin_id)


@router.post("/send-invites", response_model=SendInvitesOut)
def send_invites(payload: SendInvitesIn, db: Session = Depends(get_db), admin: AdminIdentity = Depends(get_admin)):
    summary = send_invites_for_unit(db, admin_id=admin.admin_id, unit_id=payload.unit_id)
    return SendInvitesOut(sent=summary.sent, failed=summary.failed)


@router.post("/withdraw-invite")
def withdraw_invite(payload: WithdrawInviteIn, db: Session = Depends(get_db), admin: AdminIdentity = Depends(get_admin)):
    withdraw_invitation(db, invitation_id=payload.invitation_id, admin_id=admin.admin_id)
    return {"ok": True}
