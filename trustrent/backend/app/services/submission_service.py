# backend/app/services/submission_service.py
from __future__ import annotations

import base64
import binascii
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import asc, select
from sqlalchemy.orm import Session

from ..errors import Forbidden, NotFound, ValidationFailed
from ..models import RentalCompany, Renter, Submission, new_id
from ..schemas import RenterRowOut
from .dashboard_service import latest_submission
from .portfolio_service import get_company_for_admin

log = logging.getLogger("trustrent.submissions")

MAX_PDF_BYTES = 15 * 1024 * 1024


def _decode_pdf(pdf_base64: str) -> bytes:
    try:
        data = base64.b64decode((pdf_base64 or "").encode(), validate=True)
    except (binascii.Error, ValueError):
        raise ValidationFailed("Validation failed", fields={"pdf_base64": "Not valid base64"})
    if not data:
        raise ValidationFailed("Validation failed", fields={"pdf_base64": "File is empty"})
    if len(data) > MAX_PDF_BYTES:
        raise ValidationFailed("Validation failed", fields={"pdf_base64": "File is too large"})
    return data


def upsert_submission(
    db: Session,
    *,
    renter_id: str,
    file_name: str,
    mime_type: str,
    pdf_base64: str,
    move_in_date: Optional[str] = None,
    move_out_date: Optional[str] = None,
) -> Submission:
    """One submission per renter; resubmitting replaces the stored PDF."""
    renter = db.get(Renter, renter_id)
    if renter is None:
        raise NotFound("Renter not found")

    data = _decode_pdf(pdf_base64)
    now = datetime.utcnow()
    encoded = base64.b64encode(data).decode()

    row = db.scalar(select(Submission).where(Submission.renter_id == renter_id))
    if row is None:
        row = Submission(id=new_id(), renter_id=renter_id)
        db.add(row)

    row.file_name = (file_name or "").strip() or "inspection-report.pdf"
    row.mime_type = (mime_type or "").strip() or "application/pdf"
    row.pdf_data = encoded
    row.pdf_size = len(data)
    row.submitted_at = now
    row.move_in_date = move_in_date
    row.move_out_date = move_out_date

    if move_in_date is not None:
        renter.move_in_date = move_in_date
    if move_out_date is not None:
        renter.move_out_date = move_out_date
    renter.updated_at = now

    db.commit()
    log.info("submission stored", extra={"renter_id": renter_id, "submission_id": row.id, "pdf_size": row.pdf_size})
    return row


def get_submission_file_for_admin(db: Session, *, submission_id: str, admin_id: str) -> tuple[Submission, bytes]:
    row = db.execute(
        select(Submission, Renter.company_id)
        .join(Renter, Submission.renter_id == Renter.id)
        .where(Submission.id == submission_id)
    ).first()
    if row is None:
        raise NotFound("Submission not found")

    sub, company_id = row
    owner = db.scalar(select(RentalCompany.admin_id).where(RentalCompany.id == company_id)) if company_id else None
    if owner != admin_id:
        raise Forbidden("Submission not found or access denied")

    return sub, base64.b64decode(sub.pdf_data.encode())


def list_renter_rows(db: Session, *, admin_id: str) -> list[RenterRowOut]:
    """Every renter registered under the admin's company, with their latest submission."""
    company = get_company_for_admin(db, admin_id=admin_id)
    if company is None:
        return []

    renters = db.scalars(
        select(Renter)
        .where(Renter.company_id == company.id)
        .order_by(asc(Renter.apartment_name), asc(Renter.unit_number), asc(Renter.full_name))
    ).all()
    return [
        RenterRowOut(
            renter_id=r.id,
            full_name=r.full_name,
            email=r.email,
            phone=r.phone,
            apartment_name=r.apartment_name,
            unit_number=r.unit_number,
            move_in_date=r.move_in_date,
            move_out_date=r.move_out_date,
            submission=latest_submission(db, r.id),
        )
        for r in renters
    ]
