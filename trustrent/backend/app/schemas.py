# backend/app/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, List

from pydantic import BaseModel, Field, ConfigDict


# -------------------- Portfolio (admin editor) --------------------

class RenterIn(BaseModel):
    id: Optional[str] = None
    full_name: str = ""
    email: str = ""


class UnitIn(BaseModel):
    id: Optional[str] = None
    unit_number: str = ""
    renters: List[RenterIn] = Field(default_factory=list)


class ApartmentIn(BaseModel):
    id: Optional[str] = None
    name: str = ""
    postal_code: str = ""
    units: List[UnitIn] = Field(default_factory=list)


class PortfolioIn(BaseModel):
    company_name: str
    contact_email: Optional[str] = None
    apartments: List[ApartmentIn] = Field(default_factory=list)


class SavePortfolioOut(BaseModel):
    ok: bool = True
    company_id: str
    created_invitations: int = 0
    deleted_invitations: int = 0
    emails_sent: Optional[int] = None
    emails_failed: Optional[int] = None


class PortfolioRenterOut(BaseModel):
    id: str
    full_name: str
    email: str
    invite_status: str
    access_token: str


class PortfolioUnitOut(BaseModel):
    id: str
    unit_number: str
    renters: List[PortfolioRenterOut] = Field(default_factory=list)


class PortfolioApartmentOut(BaseModel):
    id: str
    name: str
    postal_code: str
    units: List[PortfolioUnitOut] = Field(default_factory=list)


class PortfolioOut(BaseModel):
    company_name: str = ""
    contact_email: Optional[str] = None
    apartments: List[PortfolioApartmentOut] = Field(default_factory=list)


class SendInvitesIn(BaseModel):
    unit_id: str = Field(min_length=1)


class SendInvitesOut(BaseModel):
    ok: bool = True
    sent: int
    failed: int


class WithdrawInviteIn(BaseModel):
    invitation_id: str = Field(min_length=1)


# -------------------- Dashboard --------------------

class InvitationRowOut(BaseModel):
    invitation_id: str
    renter_name: str
    renter_email: str
    unit_number: str
    access_token: str
    status: str
    created_at: datetime


class SubmissionMetaOut(BaseModel):
    submission_id: str
    file_name: str
    submitted_at: datetime
    pdf_size: Optional[int] = None
    download_path: str


class ActiveRenterOut(BaseModel):
    renter_id: str
    full_name: str
    email: str
    phone: Optional[str] = None
    unit_number: str
    move_in_date: Optional[str] = None
    move_out_date: Optional[str] = None
    submission: Optional[SubmissionMetaOut] = None


class ApartmentDashboardOut(BaseModel):
    apartment_id: str
    apartment_name: str
    postal_code: str
    pending_invitations: List[InvitationRowOut] = Field(default_factory=list)
    past_invitations: List[InvitationRowOut] = Field(default_factory=list)
    active_renters: List[ActiveRenterOut] = Field(default_factory=list)


class DashboardOut(BaseModel):
    company_name: Optional[str] = None
    apartments: List[ApartmentDashboardOut] = Field(default_factory=list)


# -------------------- Invitations / redemption --------------------

class TokenIn(BaseModel):
    token: str


class InvitationPreviewOut(BaseModel):
    invitation_id: str
    renter_name: str
    renter_email: str
    apartment_name: str
    postal_code: str
    unit_number: str
    company_name: str
    company_id: str
    status: str

    model_config = ConfigDict(from_attributes=True)


class RedeemIn(BaseModel):
    token: str
    full_name: str
    email: str
    password: str
    phone: Optional[str] = None


class RedeemOut(BaseModel):
    ok: bool = True
    message: str = "Account created successfully"
    renter_id: str


# -------------------- Auth --------------------

class CredentialsIn(BaseModel):
    email: str
    password: str


class AdminOut(BaseModel):
    id: str
    email: str
    model_config = ConfigDict(from_attributes=True)


class RenterOut(BaseModel):
    id: str
    email: str
    full_name: str
    apartment_name: str
    unit_number: str
    move_in_date: Optional[str] = None
    move_out_date: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


# -------------------- Submissions --------------------

class SubmissionIn(BaseModel):
    file_name: str = "inspection-report.pdf"
    mime_type: str = "application/pdf"
    pdf_base64: str
    move_in_date: Optional[str] = None
    move_out_date: Optional[str] = None


class SubmissionOut(BaseModel):
    ok: bool = True
    submission_id: str
    pdf_size: int
    submitted_at: datetime


class RenterRowOut(BaseModel):
    renter_id: str
    full_name: str
    email: str
    phone: Optional[str] = None
    apartment_name: str
    unit_number: str
    move_in_date: Optional[str] = None
    move_out_date: Optional[str] = None
    submission: Optional[SubmissionMetaOut] = None


# -------------------- Renter drafts --------------------

class RenterDraftIn(BaseModel):
    state: Any = None
    checklist_image_preview: Optional[str] = None
    lease_file_name: Optional[str] = None
    lease_analysis: Optional[Any] = None


class RenterDraftOut(BaseModel):
    draft: Optional[RenterDraftIn] = None
