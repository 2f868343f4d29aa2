# backend/app/services/dashboard_service.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import asc, desc, select
from sqlalchemy.orm import Session

from ..models import (
    INVITATION_PENDING,
    INVITATION_USED,
    ApartmentBuilding,
    RentalUnit,
    Renter,
    RenterInvitation,
    Submission,
)
from ..schemas import (
    ActiveRenterOut,
    ApartmentDashboardOut,
    DashboardOut,
    InvitationRowOut,
    SubmissionMetaOut,
)
from .portfolio_service import get_company_for_admin


def submission_download_path(submission_id: str) -> str:
    return f"/api/renter-submissions/{submission_id}/file"


def latest_submission(db: Session, renter_id: str) -> Optional[SubmissionMetaOut]:
    sub = db.scalar(
        select(Submission)
        .where(Submission.renter_id == renter_id)
        .order_by(desc(Submission.submitted_at), desc(Submission.id))
        .limit(1)
    )
    if sub is None:
        return None
    return SubmissionMetaOut(
        submission_id=sub.id,
        file_name=sub.file_name or "inspection-report.pdf",
        submitted_at=sub.submitted_at,
        pdf_size=sub.pdf_size,
        download_path=submission_download_path(sub.id),
    )


def _invitations(db: Session, building_id: str, status: str) -> list[InvitationRowOut]:
    rows = db.execute(
        select(RenterInvitation, RentalUnit.unit_number)
        .join(RentalUnit, RenterInvitation.unit_id == RentalUnit.id)
        .where(RentalUnit.building_id == building_id, RenterInvitation.status == status)
        .order_by(desc(RenterInvitation.created_at), asc(RenterInvitation.renter_name))
    ).all()
    return [
        InvitationRowOut(
            invitation_id=inv.id,
            renter_name=inv.renter_name,
            renter_email=inv.renter_email,
            unit_number=unit_number,
            access_token=inv.access_token,
            status=inv.status,
            created_at=inv.created_at,
        )
        for inv, unit_number in rows
    ]


def _active_renters(db: Session, company_id: str, building_name: str) -> list[ActiveRenterOut]:
    renters = db.scalars(
        select(Renter)
        .where(Renter.company_id == company_id, Renter.apartment_name == building_name)
        .order_by(desc(Renter.unit_number), asc(Renter.full_name))
    ).all()
    return [
        ActiveRenterOut(
            renter_id=r.id,
            full_name=r.full_name,
            email=r.email,
            phone=r.phone,
            unit_number=r.unit_number,
            move_in_date=r.move_in_date,
            move_out_date=r.move_out_date,
            submission=latest_submission(db, r.id),
        )
        for r in renters
    ]


def get_admin_dashboard(db: Session, *, admin_id: str) -> DashboardOut:
    """
    Per building of the admin's company: pending invitations (token shown),
    used invitations (token kept for reference) and the renters who registered
    there with their latest submission.

    Renters carry denormalized building/unit names, so they are matched by
    company and building name rather than by foreign key; they stay listed
    after their invitation row is gone.
    """
    company = get_company_for_admin(db, admin_id=admin_id)
    if company is None:
        return DashboardOut(company_name=None, apartments=[])

    buildings = db.scalars(
        select(ApartmentBuilding)
        .where(ApartmentBuilding.company_id == company.id)
        .order_by(asc(ApartmentBuilding.name), asc(ApartmentBuilding.id))
    ).all()

    apartments = [
        ApartmentDashboardOut(
            apartment_id=b.id,
            apartment_name=b.name,
            postal_code=b.postal_code,
            pending_invitations=_invitations(db, b.id, INVITATION_PENDING),
            past_invitations=_invitations(db, b.id, INVITATION_USED),
            active_renters=_active_renters(db, company.id, b.name),
        )
        for b in buildings
    ]
    return DashboardOut(company_name=company.name, apartments=apartments)
