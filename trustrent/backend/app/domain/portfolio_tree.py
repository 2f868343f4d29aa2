# backend/app/domain/portfolio_tree.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Optional

from ..errors import ValidationFailed

# Deliberately loose: one "@", no whitespace, a dot in the domain.
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def looks_like_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value or ""))


def normalize_email(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def _clean(value: Any) -> str:
    return str(value if value is not None else "").strip()


def _clean_id(value: Any) -> Optional[str]:
    s = _clean(value)
    return s or None


@dataclass(frozen=True)
class DesiredRenter:
    full_name: str
    email: str  # lowercased
    client_id: Optional[str] = None


@dataclass(frozen=True)
class DesiredUnit:
    unit_number: str
    client_id: Optional[str] = None
    renters: tuple[DesiredRenter, ...] = ()


@dataclass(frozen=True)
class DesiredBuilding:
    name: str
    postal_code: str
    client_id: Optional[str] = None
    units: tuple[DesiredUnit, ...] = ()


@dataclass(frozen=True)
class PortfolioTree:
    """An admin's complete desired portfolio, already trimmed and de-duplicated."""

    company_name: str
    contact_email: Optional[str] = None
    buildings: tuple[DesiredBuilding, ...] = field(default_factory=tuple)

    def triples(self) -> set[tuple[str, str, str]]:
        """(building name, unit number, renter email) for every desired invitation."""
        out: set[tuple[str, str, str]] = set()
        for b in self.buildings:
            for u in b.units:
                for r in u.renters:
                    out.add((b.name, u.unit_number, r.email))
        return out


def _as_dict(obj: Any) -> dict[str, Any]:
    if isinstance(obj, dict):
        return obj
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    raise TypeError(f"unsupported portfolio node: {type(obj)!r}")


def normalize_portfolio(payload: Any) -> PortfolioTree:
    """
    Turns a submitted payload (PortfolioIn or plain dict) into a PortfolioTree.

    Raises ValidationFailed (with per-field messages) when the company name is
    blank or a non-blank email is malformed. Rows whose required text is blank
    after trimming are skipped, not rejected: the editor lets admins add an
    empty slot and abandon it. Duplicate client ids lose their id (the row is
    treated as new) and duplicate emails inside one unit keep the first entry.
    """
    data = _as_dict(payload)
    errors: dict[str, str] = {}

    company_name = _clean(data.get("company_name"))
    if not company_name:
        errors["company_name"] = "Company name is required"

    contact_email = normalize_email(data.get("contact_email")) or None
    if contact_email and not looks_like_email(contact_email):
        errors["contact_email"] = "Valid email required"

    seen_building_ids: set[str] = set()
    seen_unit_ids: set[str] = set()
    buildings: list[DesiredBuilding] = []

    for bi, raw_b in enumerate(data.get("apartments") or []):
        b = _as_dict(raw_b)
        name = _clean(b.get("name"))
        postal = _clean(b.get("postal_code"))
        if not name or not postal:
            continue

        b_id = _clean_id(b.get("id"))
        if b_id in seen_building_ids:
            b_id = None
        if b_id:
            seen_building_ids.add(b_id)

        units: list[DesiredUnit] = []
        for ui, raw_u in enumerate(b.get("units") or []):
            u = _as_dict(raw_u)
            unit_number = _clean(u.get("unit_number"))
            if not unit_number:
                continue

            u_id = _clean_id(u.get("id"))
            if u_id in seen_unit_ids:
                u_id = None
            if u_id:
                seen_unit_ids.add(u_id)

            renters: list[DesiredRenter] = []
            seen_emails: set[str] = set()
            for ri, raw_r in enumerate(u.get("renters") or []):
                r = _as_dict(raw_r)
                full_name = _clean(r.get("full_name"))
                email = normalize_email(r.get("email"))
                if not full_name or not email:
                    continue
                if not looks_like_email(email):
                    errors[f"apartments[{bi}].units[{ui}].renters[{ri}].email"] = "Valid email required"
                    continue
                if email in seen_emails:
                    continue
                seen_emails.add(email)
                renters.append(DesiredRenter(full_name=full_name, email=email, client_id=_clean_id(r.get("id"))))

            units.append(DesiredUnit(unit_number=unit_number, client_id=u_id, renters=tuple(renters)))

        buildings.append(DesiredBuilding(name=name, postal_code=postal, client_id=b_id, units=tuple(units)))

    if errors:
        raise ValidationFailed("Validation failed", fields=errors)

    return PortfolioTree(company_name=company_name, contact_email=contact_email, buildings=tuple(buildings))
