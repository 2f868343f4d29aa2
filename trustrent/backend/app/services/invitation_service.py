# backend/app/services/invitation_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.access_tokens import TOKEN_LENGTH, is_valid_token_format
from ..domain.audit import admin_actor, audit_write, renter_actor
from ..domain.portfolio_tree import looks_like_email, normalize_email
from ..errors import (
    AccountExists,
    AlreadyUsed,
    EmailMismatch,
    Forbidden,
    NotFound,
    TokenNotFound,
    ValidationFailed,
)
from ..models import (
    INVITATION_PENDING,
    INVITATION_USED,
    ApartmentBuilding,
    RentalCompany,
    RentalUnit,
    Renter,
    RenterInvitation,
    new_id,
)
from .auth_service import get_renter_by_email, hash_password

# Invitation lifecycle:
#
#   (created by reconciliation)          redeem_invitation
#            pending  ------------------------------------->  used   (terminal)
#               |
#               | withdraw_invitation / dropped from a later save
#               v
#            (row deleted)
#
# There is no stored expired/revoked state. A used row is never mutated.

log = logging.getLogger("trustrent.invitations")


@dataclass(frozen=True)
class InvitationPreview:
    invitation_id: str
    renter_name: str
    renter_email: str
    apartment_name: str
    postal_code: str
    unit_number: str
    company_name: str
    company_id: str
    status: str


@dataclass(frozen=True)
class RedeemResult:
    renter_id: str
    renter_email: str
    invitation_id: str


def _preview_query():
    return (
        select(
            RenterInvitation.id,
            RenterInvitation.renter_name,
            RenterInvitation.renter_email,
            ApartmentBuilding.name,
            ApartmentBuilding.postal_code,
            RentalUnit.unit_number,
            RentalCompany.name,
            RentalCompany.id,
            RenterInvitation.status,
        )
        .join(RentalUnit, RenterInvitation.unit_id == RentalUnit.id)
        .join(ApartmentBuilding, RentalUnit.building_id == ApartmentBuilding.id)
        .join(RentalCompany, ApartmentBuilding.company_id == RentalCompany.id)
    )


def preview_invitation(db: Session, token: str) -> Optional[InvitationPreview]:
    """What a renter sees before registering. None when the token matches nothing."""
    token = (token or "").strip()
    if not is_valid_token_format(token):
        return None
    row = db.execute(_preview_query().where(RenterInvitation.access_token == token).limit(1)).first()
    if row is None:
        return None
    return InvitationPreview(*row)


def validate_access_token(db: Session, token: str) -> InvitationPreview:
    token = (token or "").strip()
    if not is_valid_token_format(token):
        raise ValidationFailed(
            "Invalid token format",
            fields={"token": f"Token must be {TOKEN_LENGTH} digits"},
        )
    preview = preview_invitation(db, token)
    if preview is None:
        raise TokenNotFound("Invalid token. Please check your email and try again.")
    if preview.status == INVITATION_USED:
        raise AlreadyUsed("This token has already been used. Please sign in with your account.")
    return preview


def _check_registration_input(full_name: str, email: str, password: str) -> None:
    fields: dict[str, str] = {}
    if len((full_name or "").strip()) < 2:
        fields["full_name"] = "Enter your full name"
    if not looks_like_email(normalize_email(email)):
        fields["email"] = "Valid email required"
    if len(password or "") < int(settings.password_min_length):
        fields["password"] = f"Password must be at least {settings.password_min_length} characters"
    if fields:
        raise ValidationFailed("Validation failed", fields=fields)


def redeem_invitation(
    db: Session,
    *,
    token: str,
    email: str,
    full_name: str,
    password: str,
    phone: Optional[str] = None,
) -> RedeemResult:
    """
    Exchanges a pending token for a renter account.

    Only the invited address may redeem. The Renter insert and the
    pending -> used transition commit together; the transition is a guarded
    UPDATE, so of two concurrent redeems exactly one wins and the other gets
    AlreadyUsed with nothing written.
    """
    _check_registration_input(full_name, email, password)
    preview = validate_access_token(db, token)

    email_n = normalize_email(email)
    if email_n != normalize_email(preview.renter_email):
        raise EmailMismatch("Please use the same email address that received your TrustRent invite.")

    if get_renter_by_email(db, email_n) is not None:
        raise AccountExists("A renter with this email already exists. Please sign in.")

    now = datetime.utcnow()
    renter = Renter(
        id=new_id(),
        full_name=full_name.strip(),
        email=email_n,
        password_hash=hash_password(password),
        phone=(phone or "").strip() or None,
        apartment_name=preview.apartment_name,
        unit_number=preview.unit_number,
        company_id=preview.company_id,
        access_token=token.strip(),
        created_at=now,
        updated_at=now,
    )

    try:
        db.add(renter)
        db.flush()

        res = db.execute(
            update(RenterInvitation)
            .where(RenterInvitation.id == preview.invitation_id, RenterInvitation.status == INVITATION_PENDING)
            .values(status=INVITATION_USED, activated_at=now)
        )
        if res.rowcount != 1:
            raise AlreadyUsed("This token has already been used. Please sign in with your account.")

        audit_write(
            db,
            company_id=preview.company_id,
            actor=renter_actor(renter.id),
            action="invitation.redeem",
            entity_type="RenterInvitation",
            entity_id=preview.invitation_id,
            before={"status": INVITATION_PENDING},
            after={"status": INVITATION_USED, "renter_id": renter.id, "activated_at": now},
        )
        db.commit()
    except AlreadyUsed:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        # lost a race with another registration for the same email
        raise AccountExists("A renter with this email already exists. Please sign in.") from e

    log.info(
        "invitation redeemed",
        extra={"invitation_id": preview.invitation_id, "renter_id": renter.id, "company_id": preview.company_id},
    )
    return RedeemResult(renter_id=renter.id, renter_email=renter.email, invitation_id=preview.invitation_id)


def withdraw_invitation(db: Session, *, invitation_id: str, admin_id: str) -> None:
    """Deletes a pending invitation of the admin's own company. Used ones cannot be withdrawn."""
    row = db.execute(
        select(RenterInvitation, ApartmentBuilding.company_id)
        .join(RentalUnit, RenterInvitation.unit_id == RentalUnit.id)
        .join(ApartmentBuilding, RentalUnit.building_id == ApartmentBuilding.id)
        .where(RenterInvitation.id == invitation_id)
        .limit(1)
    ).first()
    if row is None:
        raise NotFound("Invitation not found")

    inv, company_id = row
    owner_admin = db.scalar(select(RentalCompany.admin_id).where(RentalCompany.id == company_id))
    if owner_admin != admin_id:
        raise Forbidden("Invitation not found or access denied")

    if inv.status == INVITATION_USED:
        raise AlreadyUsed("Cannot withdraw an invitation that has already been used")

    before = inv.model_dump()
    res = db.execute(
        delete(RenterInvitation).where(
            RenterInvitation.id == inv.id, RenterInvitation.status == INVITATION_PENDING
        )
    )
    if res.rowcount != 1:
        db.rollback()
        raise AlreadyUsed("Cannot withdraw an invitation that has already been used")

    audit_write(
        db,
        company_id=company_id,
        actor=admin_actor(admin_id),
        action="invitation.withdraw",
        entity_type="RenterInvitation",
        entity_id=inv.id,
        before=before,
    )
    db.commit()
    log.info("invitation withdrawn", extra={"invitation_id": inv.id, "company_id": company_id, "admin_id": admin_id})
