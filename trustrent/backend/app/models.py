# backend/app/models.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


INVITATION_PENDING = "pending"
INVITATION_USED = "used"
INVITATION_STATUSES = (INVITATION_PENDING, INVITATION_USED)


def new_id() -> str:
    return str(uuid.uuid4())


# -----------------------------
# Admin identities
# -----------------------------
class AdminUser(Base):
    __tablename__ = "admin_users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # no FK: audit rows outlive the company tree they describe
    company_id: Mapped[Optional[str]] = mapped_column(String(64), index=True, nullable=True)
    actor: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)  # admin:<id> | renter:<id>

    action: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(80), nullable=False)

    before_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    after_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Portfolio tree: company -> buildings -> units -> invitations
# -----------------------------
class RentalCompany(Base):
    __tablename__ = "rental_companies"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    contact_email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    # one company per admin
    admin_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("admin_users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    buildings: Mapped[List["ApartmentBuilding"]] = relationship(
        back_populates="company", cascade="all, delete-orphan"
    )


class ApartmentBuilding(Base):
    __tablename__ = "apartment_buildings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    company_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("rental_companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    postal_code: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    company: Mapped["RentalCompany"] = relationship(back_populates="buildings")
    units: Mapped[List["RentalUnit"]] = relationship(
        back_populates="building", cascade="all, delete-orphan"
    )


class RentalUnit(Base):
    __tablename__ = "rental_units"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    building_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("apartment_buildings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    unit_number: Mapped[str] = mapped_column(String(40), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    building: Mapped["ApartmentBuilding"] = relationship(back_populates="units")
    invitations: Mapped[List["RenterInvitation"]] = relationship(
        back_populates="unit", cascade="all, delete-orphan"
    )


class RenterInvitation(Base):
    __tablename__ = "renter_invitations"
    __table_args__ = (
        UniqueConstraint("unit_id", "renter_email", name="uq_renter_invitations_unit_email"),
        Index("ix_renter_invitations_unit_status", "unit_id", "status"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    unit_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("rental_units.id", ondelete="CASCADE"), nullable=False, index=True
    )
    renter_name: Mapped[str] = mapped_column(String(200), nullable=False)
    renter_email: Mapped[str] = mapped_column(String(200), nullable=False)  # stored lowercased
    access_token: Mapped[str] = mapped_column(String(6), nullable=False, unique=True, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=INVITATION_PENDING)  # pending|used
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    activated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    unit: Mapped["RentalUnit"] = relationship(back_populates="invitations")

    def model_dump(self) -> dict:
        return {
            "id": self.id,
            "unit_id": self.unit_id,
            "renter_name": self.renter_name,
            "renter_email": self.renter_email,
            "access_token": self.access_token,
            "status": self.status,
            "created_at": self.created_at,
            "activated_at": self.activated_at,
        }


# -----------------------------
# Renters + submissions (independent of the portfolio tree)
# -----------------------------
class Renter(Base):
    __tablename__ = "renters"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    # denormalized copies taken at redemption time; no FK into the tree
    apartment_name: Mapped[str] = mapped_column(String(200), nullable=False)
    unit_number: Mapped[str] = mapped_column(String(40), nullable=False)
    company_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    access_token: Mapped[Optional[str]] = mapped_column(String(6), nullable=True)

    move_in_date: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    move_out_date: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    submissions: Mapped[List["Submission"]] = relationship(
        back_populates="renter", cascade="all, delete-orphan"
    )
    draft: Mapped[Optional["RenterDraft"]] = relationship(
        back_populates="renter", cascade="all, delete-orphan", uselist=False
    )


class Submission(Base):
    __tablename__ = "submissions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    renter_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("renters.id", ondelete="CASCADE"), nullable=False, index=True
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    pdf_data: Mapped[str] = mapped_column(Text, nullable=False)  # base64
    pdf_size: Mapped[int] = mapped_column(Integer, nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    move_in_date: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    move_out_date: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    renter: Mapped["Renter"] = relationship(back_populates="submissions")


class RenterDraft(Base):
    """In-progress checklist a renter can resume; one per renter."""

    __tablename__ = "renter_drafts"

    renter_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("renters.id", ondelete="CASCADE"), primary_key=True
    )
    draft_json: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    renter: Mapped["Renter"] = relationship(back_populates="draft")
