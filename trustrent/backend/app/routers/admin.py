# backend/app/routers/admin.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..auth import AdminIdentity, clear_session_cookie, get_admin, set_session_cookie
from ..db import get_db
from ..schemas import AdminOut, CredentialsIn, DashboardOut, RenterRowOut
from ..services.auth_service import SESSION_KIND_ADMIN, login_admin, signup_admin
from ..services.dashboard_service import get_admin_dashboard
from ..services.submission_service import get_submission_file_for_admin, list_renter_rows

router = APIRouter(tags=["admin"])


@router.post("/admin/signup", response_model=AdminOut, status_code=201)
def signup(payload: CredentialsIn, response: Response, db: Session = Depends(get_db)):
    admin = signup_admin(db, email=payload.email, password=payload.password)
    set_session_cookie(response, kind=SESSION_KIND_ADMIN, subject=admin.id)
    return AdminOut(id=admin.id, email=admin.email)


@router.post("/admin/login", response_model=AdminOut)
def login(payload: CredentialsIn, response: Response, db: Session = Depends(get_db)):
    admin = login_admin(db, email=payload.email, password=payload.password)
    set_session_cookie(response, kind=SESSION_KIND_ADMIN, subject=admin.id)
    return AdminOut(id=admin.id, email=admin.email)


@router.post("/admin/logout")
def logout(response: Response):
    clear_session_cookie(response, kind=SESSION_KIND_ADMIN)
    return {"ok": True}


@router.get("/admin/me", response_model=AdminOut)
def me(admin: AdminIdentity = Depends(get_admin)):
    return AdminOut(id=admin.admin_id, email=admin.email)


@router.get("/admin/dashboard", response_model=DashboardOut)
def dashboard(db: Session = Depends(get_db), admin: AdminIdentity = Depends(get_admin)):
    return get_admin_dashboard(db, admin_id=admin.admin_id)


@router.get("/admin/renters", response_model=list[RenterRowOut])
def renters(db: Session = Depends(get_db), admin: AdminIdentity = Depends(get_admin)):
    return list_renter_rows(db, admin_id=admin.admin_id)


@router.get("/renter-submissions/{submission_id}/file")
def download_submission(submission_id: str, db: Session = Depends(get_db), admin: AdminIdentity = Depends(get_admin)):
    sub, data = get_submission_file_for_admin(db, submission_id=submission_id, admin_id=admin.admin_id)
    filename = (sub.file_name or "inspection-report.pdf").replace('"', "")
    return Response(
        content=data,
        media_type=sub.mime_type or "application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )
