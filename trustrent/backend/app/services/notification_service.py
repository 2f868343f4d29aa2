# backend/app/services/notification_service.py
from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..clients.sendgrid import SendGridClient
from ..config import settings
from ..errors import Forbidden, NotFound
from ..models import INVITATION_PENDING, ApartmentBuilding, RentalUnit, RenterInvitation
from .portfolio_service import get_company_for_admin

log = logging.getLogger("trustrent.email")

# (renter_name, renter_email, company_name, building_name, unit_number, token) -> delivered?
InvitationSender = Callable[..., bool]


@dataclass(frozen=True)
class SendSummary:
    sent: int
    failed: int


def render_invitation_email(
    *,
    renter_name: str,
    company_name: str,
    building_name: str,
    unit_number: str,
    token: str,
) -> tuple[str, str]:
    """Returns (subject, html body)."""
    e = html.escape
    access_url = f"{settings.app_base_url.rstrip('/')}/access"
    subject = f"Your TrustRent Access Token: {token}"
    body = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2>Welcome to TrustRent</h2>
      <p>Hi {e(renter_name)},</p>
      <p>{e(company_name)} has invited you to document your move-in inspection for
      <strong>{e(building_name)} - Unit {e(unit_number)}</strong>.</p>
      <p>Your access token:</p>
      <p style="font-size: 32px; font-weight: bold; letter-spacing: 8px;">{e(token)}</p>
      <ol>
        <li>Go to <strong>{e(access_url)}</strong></li>
        <li>Enter your token: <strong>{e(token)}</strong></li>
        <li>Create your account and document your unit condition</li>
      </ol>
      <p>This token is unique to your unit and stays valid until you complete your registration.</p>
    </div>
    """
    return subject, body


def send_invitation_email(
    *,
    renter_name: str,
    renter_email: str,
    company_name: str,
    building_name: str,
    unit_number: str,
    token: str,
    client: Optional[SendGridClient] = None,
) -> bool:
    subject, body = render_invitation_email(
        renter_name=renter_name,
        company_name=company_name,
        building_name=building_name,
        unit_number=unit_number,
        token=token,
    )
    res = (client or SendGridClient()).send(to_email=renter_email, subject=subject, html=body)
    return res.ok


def _pending_rows(db: Session, where) -> list:
    q = (
        select(RenterInvitation, RentalUnit.unit_number, ApartmentBuilding.name)
        .join(RentalUnit, RenterInvitation.unit_id == RentalUnit.id)
        .join(ApartmentBuilding, RentalUnit.building_id == ApartmentBuilding.id)
        .where(RenterInvitation.status == INVITATION_PENDING, where)
        .order_by(RenterInvitation.created_at)
    )
    return list(db.execute(q).all())


def _deliver(rows: list, *, company_name: str, sender: Optional[InvitationSender]) -> SendSummary:
    send = sender or send_invitation_email
    sent = 0
    failed = 0
    for inv, unit_number, building_name in rows:
        try:
            ok = bool(
                send(
                    renter_name=inv.renter_name,
                    renter_email=inv.renter_email,
                    company_name=company_name,
                    building_name=building_name,
                    unit_number=unit_number,
                    token=inv.access_token,
                )
            )
        except Exception:
            # delivery is best-effort; the invitation exists regardless
            log.exception("invitation email failed", extra={"invitation_id": inv.id})
            ok = False
        if ok:
            sent += 1
        else:
            failed += 1
    return SendSummary(sent=sent, failed=failed)


def send_invitations(
    db: Session,
    *,
    invitation_ids: Iterable[str],
    company_name: str,
    sender: Optional[InvitationSender] = None,
) -> SendSummary:
    ids = list(invitation_ids)
    if not ids:
        return SendSummary(0, 0)
    rows = _pending_rows(db, RenterInvitation.id.in_(ids))
    summary = _deliver(rows, company_name=company_name, sender=sender)
    log.info("invitation emails sent", extra={"sent": summary.sent, "failed": summary.failed})
    return summary


def send_invites_for_unit(
    db: Session,
    *,
    admin_id: str,
    unit_id: str,
    sender: Optional[InvitationSender] = None,
) -> SendSummary:
    """Emails every still-pending invitation of one unit owned by `admin_id`."""
    company = get_company_for_admin(db, admin_id=admin_id)
    if company is None:
        raise NotFound("No company found for this admin")

    owner = db.scalar(
        select(ApartmentBuilding.company_id)
        .join(RentalUnit, RentalUnit.building_id == ApartmentBuilding.id)
        .where(RentalUnit.id == unit_id)
    )
    if owner is None or owner != company.id:
        raise Forbidden("Unit not found or access denied")

    rows = _pending_rows(db, RenterInvitation.unit_id == unit_id)
    summary = _deliver(rows, company_name=company.name, sender=sender)
    log.info(
        "unit invitations sent",
        extra={"company_id": company.id, "unit_id": unit_id, "sent": summary.sent, "failed": summary.failed},
    )
    return summary
