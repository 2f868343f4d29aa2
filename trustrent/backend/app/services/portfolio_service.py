# backend/app/services/portfolio_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Sequence, Type

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.access_tokens import RandBelow, allocate_access_token
from ..domain.audit import admin_actor, audit_write
from ..domain.portfolio_tree import (
    DesiredBuilding,
    DesiredRenter,
    DesiredUnit,
    PortfolioTree,
    normalize_email,
    normalize_portfolio,
)
from ..errors import ReconciliationFailed
from ..models import (
    INVITATION_PENDING,
    INVITATION_USED,
    ApartmentBuilding,
    RentalCompany,
    RentalUnit,
    RenterInvitation,
    new_id,
)
from ..schemas import PortfolioApartmentOut, PortfolioOut, PortfolioRenterOut, PortfolioUnitOut

log = logging.getLogger("trustrent.portfolio")

_MAX_ID_LEN = 64


@dataclass(frozen=True)
class ReconcileResult:
    company_id: str
    created_invitation_ids: tuple[str, ...] = ()
    deleted_invitation_ids: tuple[str, ...] = ()


@dataclass
class _Run:
    """Mutable bookkeeping for one reconcile call."""

    company_id: str
    actor: str
    now: datetime
    randbelow: Optional[RandBelow] = None
    created: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)


def get_company_for_admin(db: Session, *, admin_id: str) -> Optional[RentalCompany]:
    """Zero-or-one: rental_companies.admin_id is unique, one company per admin."""
    return db.scalars(select(RentalCompany).where(RentalCompany.admin_id == admin_id)).one_or_none()


def reconcile_portfolio(
    db: Session,
    *,
    admin_id: str,
    payload: Any,
    randbelow: Optional[RandBelow] = None,
) -> ReconcileResult:
    """
    Brings the admin's stored portfolio in line with `payload`, all or nothing.

    `payload` is a PortfolioIn, a dict of the same shape, or an already
    normalized PortfolioTree. Validation runs before any write and raises
    ValidationFailed. Everything after that happens in the session's single
    transaction: on any failure it is rolled back and ReconciliationFailed
    (or its retryable subtype AllocationExhausted) is raised.

    Re-saving an unchanged payload keeps every id, token and status.
    """
    tree = payload if isinstance(payload, PortfolioTree) else normalize_portfolio(payload)

    try:
        result = _apply(db, admin_id=admin_id, tree=tree, randbelow=randbelow)
        db.commit()
    except ReconciliationFailed:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        log.exception("portfolio reconcile failed", extra={"admin_id": admin_id})
        raise ReconciliationFailed("Failed to save changes. Please try again.") from e

    log.info(
        "portfolio reconciled",
        extra={
            "admin_id": admin_id,
            "company_id": result.company_id,
            "created_invitations": len(result.created_invitation_ids),
            "deleted_invitations": len(result.deleted_invitation_ids),
        },
    )
    return result


def _apply(db: Session, *, admin_id: str, tree: PortfolioTree, randbelow: Optional[RandBelow]) -> ReconcileResult:
    now = datetime.utcnow()
    company = _upsert_company(db, admin_id=admin_id, tree=tree, now=now)
    run = _Run(company_id=company.id, actor=admin_actor(admin_id), now=now, randbelow=randbelow)

    existing = {
        b.id: b
        for b in db.scalars(select(ApartmentBuilding).where(ApartmentBuilding.company_id == company.id)).all()
    }
    keep = {b.client_id for b in tree.buildings if b.client_id in existing}

    for building_id, building in existing.items():
        if building_id not in keep:
            _delete_building(db, run, building)
    db.flush()

    for desired in tree.buildings:
        building = existing.get(desired.client_id) if desired.client_id else None
        if building is None:
            building = _insert_building(db, run, desired)
        else:
            _update_building(db, run, building, desired)
        _reconcile_units(db, run, building, desired.units)

    return ReconcileResult(
        company_id=company.id,
        created_invitation_ids=tuple(run.created),
        deleted_invitation_ids=tuple(run.deleted),
    )


# -----------------------------
# Company
# -----------------------------
def _upsert_company(db: Session, *, admin_id: str, tree: PortfolioTree, now: datetime) -> RentalCompany:
    company = get_company_for_admin(db, admin_id=admin_id)
    actor = admin_actor(admin_id)

    if company is None:
        company = RentalCompany(
            id=new_id(),
            admin_id=admin_id,
            name=tree.company_name,
            contact_email=tree.contact_email,
            created_at=now,
            updated_at=now,
        )
        db.add(company)
        db.flush()
        audit_write(
            db,
            company_id=company.id,
            actor=actor,
            action="company.create",
            entity_type="RentalCompany",
            entity_id=company.id,
            after={"name": company.name, "contact_email": company.contact_email},
        )
        return company

    if company.name != tree.company_name or company.contact_email != tree.contact_email:
        before = {"name": company.name, "contact_email": company.contact_email}
        company.name = tree.company_name
        company.contact_email = tree.contact_email
        company.updated_at = now
        audit_write(
            db,
            company_id=company.id,
            actor=actor,
            action="company.update",
            entity_type="RentalCompany",
            entity_id=company.id,
            before=before,
            after={"name": company.name, "contact_email": company.contact_email},
        )
    return company


def _claim_id(db: Session, model: Type[Any], client_id: Optional[str]) -> str:
    """
    Client ids are only match keys. A new row keeps the client's id when it is
    free; an id already owned by some other row (another company's, another
    building's) is never re-parented, the row gets a fresh id instead.
    """
    if client_id and len(client_id) <= _MAX_ID_LEN and db.get(model, client_id) is None:
        return client_id
    return new_id()


# -----------------------------
# Buildings
# -----------------------------
def _insert_building(db: Session, run: _Run, desired: DesiredBuilding) -> ApartmentBuilding:
    row = ApartmentBuilding(
        id=_claim_id(db, ApartmentBuilding, desired.client_id),
        company_id=run.company_id,
        name=desired.name,
        postal_code=desired.postal_code,
        created_at=run.now,
    )
    db.add(row)
    db.flush()
    audit_write(
        db,
        company_id=run.company_id,
        actor=run.actor,
        action="building.create",
        entity_type="ApartmentBuilding",
        entity_id=row.id,
        after={"name": row.name, "postal_code": row.postal_code},
    )
    return row


def _update_building(db: Session, run: _Run, row: ApartmentBuilding, desired: DesiredBuilding) -> None:
    if row.name == desired.name and row.postal_code == desired.postal_code:
        return
    before = {"name": row.name, "postal_code": row.postal_code}
    row.name = desired.name
    row.postal_code = desired.postal_code
    audit_write(
        db,
        company_id=run.company_id,
        actor=run.actor,
        action="building.update",
        entity_type="ApartmentBuilding",
        entity_id=row.id,
        before=before,
        after={"name": row.name, "postal_code": row.postal_code},
    )


def _delete_building(db: Session, run: _Run, row: ApartmentBuilding) -> None:
    invitation_ids = list(
        db.scalars(
            select(RenterInvitation.id)
            .join(RentalUnit, RenterInvitation.unit_id == RentalUnit.id)
            .where(RentalUnit.building_id == row.id)
        ).all()
    )
    audit_write(
        db,
        company_id=run.company_id,
        actor=run.actor,
        action="building.delete",
        entity_type="ApartmentBuilding",
        entity_id=row.id,
        before={"name": row.name, "postal_code": row.postal_code, "invitation_ids": invitation_ids},
    )
    run.deleted.extend(invitation_ids)
    # ORM cascade removes units and invitations; renters are not in the tree.
    db.delete(row)


# -----------------------------
# Units
# -----------------------------
def _reconcile_units(db: Session, run: _Run, building: ApartmentBuilding, desired_units: Sequence[DesiredUnit]) -> None:
    existing = {
        u.id: u for u in db.scalars(select(RentalUnit).where(RentalUnit.building_id == building.id)).all()
    }
    keep = {u.client_id for u in desired_units if u.client_id in existing}

    for unit_id, unit in existing.items():
        if unit_id not in keep:
            _delete_unit(db, run, unit)
    db.flush()

    for desired in desired_units:
        unit = existing.get(desired.client_id) if desired.client_id else None
        if unit is None:
            unit = RentalUnit(
                id=_claim_id(db, RentalUnit, desired.client_id),
                building_id=building.id,
                unit_number=desired.unit_number,
                created_at=run.now,
            )
            db.add(unit)
            db.flush()
            audit_write(
                db,
                company_id=run.company_id,
                actor=run.actor,
                action="unit.create",
                entity_type="RentalUnit",
                entity_id=unit.id,
                after={"building_id": building.id, "unit_number": unit.unit_number},
            )
        elif unit.unit_number != desired.unit_number:
            before = {"unit_number": unit.unit_number}
            unit.unit_number = desired.unit_number
            audit_write(
                db,
                company_id=run.company_id,
                actor=run.actor,
                action="unit.update",
                entity_type="RentalUnit",
                entity_id=unit.id,
                before=before,
                after={"unit_number": unit.unit_number},
            )

        _reconcile_invitations(db, run, unit, desired.renters)


def _delete_unit(db: Session, run: _Run, row: RentalUnit) -> None:
    invitation_ids = list(db.scalars(select(RenterInvitation.id).where(RenterInvitation.unit_id == row.id)).all())
    audit_write(
        db,
        company_id=run.company_id,
        actor=run.actor,
        action="unit.delete",
        entity_type="RentalUnit",
        entity_id=row.id,
        before={"building_id": row.building_id, "unit_number": row.unit_number, "invitation_ids": invitation_ids},
    )
    run.deleted.extend(invitation_ids)
    db.delete(row)


# -----------------------------
# Invitations
# -----------------------------
def _reconcile_invitations(db: Session, run: _Run, unit: RentalUnit, desired: Sequence[DesiredRenter]) -> None:
    existing = db.scalars(select(RenterInvitation).where(RenterInvitation.unit_id == unit.id)).all()
    by_email = {normalize_email(inv.renter_email): inv for inv in existing}
    wanted = {r.email for r in desired}

    # removals first: frees their tokens before any allocation below
    for email, inv in by_email.items():
        if email in wanted:
            continue
        if inv.status == INVITATION_USED and settings.retain_used_invitations:
            continue
        audit_write(
            db,
            company_id=run.company_id,
            actor=run.actor,
            action="invitation.delete",
            entity_type="RenterInvitation",
            entity_id=inv.id,
            before=inv.model_dump(),
        )
        run.deleted.append(inv.id)
        db.delete(inv)
    db.flush()

    for renter in desired:
        inv = by_email.get(renter.email)
        if inv is not None:
            # token and status are never touched; used rows are frozen entirely
            if inv.status == INVITATION_PENDING and inv.renter_name != renter.full_name:
                inv.renter_name = renter.full_name
            continue

        token = allocate_access_token(db, randbelow=run.randbelow)
        inv = RenterInvitation(
            id=new_id(),
            unit_id=unit.id,
            renter_name=renter.full_name,
            renter_email=renter.email,
            access_token=token,
            status=INVITATION_PENDING,
            created_at=run.now,
        )
        db.add(inv)
        # the next allocation must see this token
        db.flush()
        audit_write(
            db,
            company_id=run.company_id,
            actor=run.actor,
            action="invitation.create",
            entity_type="RenterInvitation",
            entity_id=inv.id,
            after={"unit_id": unit.id, "renter_name": inv.renter_name, "renter_email": inv.renter_email},
        )
        run.created.append(inv.id)


# -----------------------------
# Editor read model
# -----------------------------
def load_portfolio(db: Session, *, admin_id: str) -> PortfolioOut:
    """The editable tree, ids included, so the admin UI can send them back on the next save."""
    company = get_company_for_admin(db, admin_id=admin_id)
    if company is None:
        return PortfolioOut(company_name="", contact_email=None, apartments=[])

    buildings = db.scalars(
        select(ApartmentBuilding)
        .where(ApartmentBuilding.company_id == company.id)
        .order_by(ApartmentBuilding.name, ApartmentBuilding.id)
    ).all()

    apartments: list[PortfolioApartmentOut] = []
    for b in buildings:
        units = db.scalars(
            select(RentalUnit).where(RentalUnit.building_id == b.id).order_by(RentalUnit.unit_number, RentalUnit.id)
        ).all()
        unit_out: list[PortfolioUnitOut] = []
        for u in units:
            invitations = db.scalars(
                select(RenterInvitation)
                .where(RenterInvitation.unit_id == u.id)
                .order_by(RenterInvitation.created_at, RenterInvitation.renter_name)
            ).all()
            unit_out.append(
                PortfolioUnitOut(
                    id=u.id,
                    unit_number=u.unit_number,
                    renters=[
                        PortfolioRenterOut(
                            id=inv.id,
                            full_name=inv.renter_name,
                            email=inv.renter_email,
                            invite_status=inv.status or INVITATION_PENDING,
                            access_token=inv.access_token,
                        )
                        for inv in invitations
                    ],
                )
            )
        apartments.append(PortfolioApartmentOut(id=b.id, name=b.name, postal_code=b.postal_code, units=unit_out))

    return PortfolioOut(company_name=company.name, contact_email=company.contact_email, apartments=apartments)
