# backend/app/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.db import SessionLocal
from app.models import AdminUser
from app.services.auth_service import get_admin_by_email, signup_admin
from app.services.portfolio_service import load_portfolio, reconcile_portfolio


@dataclass(frozen=True)
class SeedResult:
    admin_email: str
    company_id: str
    tokens: dict[str, str]


def demo_portfolio(company_name: str, contact_email: str) -> dict:
    return {
        "company_name": company_name,
        "contact_email": contact_email,
        "apartments": [
            {
                "name": "Maple Apts",
                "postal_code": "10001",
                "units": [
                    {"unit_number": "1A", "renters": [{"full_name": "Ann Lee", "email": "ann@example.com"}]},
                    {"unit_number": "1B", "renters": [{"full_name": "Bo Park", "email": "bo@example.com"}]},
                ],
            },
            {
                "name": "Oak Court",
                "postal_code": "10002",
                "units": [
                    {"unit_number": "201", "renters": [{"full_name": "Cy Diaz", "email": "cy@example.com"}]},
                ],
            },
        ],
    }


def _get_or_create_admin(db: Session, email: str, password: str) -> AdminUser:
    row = get_admin_by_email(db, email)
    if row:
        return row
    return signup_admin(db, email=email, password=password)


def seed_demo(
    *,
    admin_email: str = "admin@demo.local",
    admin_password: str = "demo-pass",
    company_name: str = "Demo Rentals",
    db: Optional[Session] = None,
) -> SeedResult:
    """Idempotent: re-seeding an unchanged portfolio keeps every token."""
    own = db is None
    db = db or SessionLocal()
    try:
        admin = _get_or_create_admin(db, admin_email, admin_password)

        # keep the ids already stored so a re-seed converges instead of recreating
        current = load_portfolio(db, admin_id=admin.id)
        payload = demo_portfolio(company_name, admin.email)
        if current.apartments:
            payload = current.model_dump()
            payload["company_name"] = company_name

        result = reconcile_portfolio(db, admin_id=admin.id, payload=payload)

        saved = load_portfolio(db, admin_id=admin.id)
        tokens = {
            r.email: r.access_token for b in saved.apartments for u in b.units for r in u.renters
        }
        return SeedResult(admin_email=admin.email, company_id=result.company_id, tokens=tokens)
    finally:
        if own:
            db.close()
