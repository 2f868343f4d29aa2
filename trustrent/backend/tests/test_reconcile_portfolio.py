# backend/tests/test_reconcile_portfolio.py
from __future__ import annotations

import json
import logging

import pytest
from sqlalchemy import func, select

from app.config import settings
from app.logging_config import JsonFormatter, configure_logging
from app.errors import AllocationExhausted, ReconciliationFailed, ValidationFailed
from app.models import (
    INVITATION_PENDING,
    INVITATION_USED,
    ApartmentBuilding,
    AuditEvent,
    RentalCompany,
    RentalUnit,
    Renter,
    RenterInvitation,
)
from app.services import portfolio_service
from app.services.invitation_service import redeem_invitation
from app.services.portfolio_service import load_portfolio, reconcile_portfolio


def _tree(*renters, unit="4B", building="Maple Apts", postal="10001"):
    return {
        "company_name": "Maple Holdings",
        "contact_email": "office@maple.test",
        "apartments": [
            {
                "name": building,
                "postal_code": postal,
                "units": [
                    {
                        "unit_number": unit,
                        "renters": [{"full_name": n, "email": e} for n, e in renters],
                    }
                ],
            }
        ],
    }


def _count(db, model) -> int:
    return db.scalar(select(func.count()).select_from(model))


def _invitations(db) -> dict[str, RenterInvitation]:
    db.expire_all()
    return {inv.renter_email: inv for inv in db.scalars(select(RenterInvitation)).all()}


def _triples(db) -> set[tuple[str, str, str]]:
    rows = db.execute(
        select(ApartmentBuilding.name, RentalUnit.unit_number, RenterInvitation.renter_email)
        .join(RentalUnit, RentalUnit.building_id == ApartmentBuilding.id)
        .join(RenterInvitation, RenterInvitation.unit_id == RentalUnit.id)
    ).all()
    return {tuple(r) for r in rows}


def test_first_save_creates_the_whole_tree(db_session, make_admin):
    admin = make_admin()
    result = reconcile_portfolio(db_session, admin_id=admin.id, payload=_tree(("Jane Doe", "Jane@X.com")))

    company = db_session.get(RentalCompany, result.company_id)
    assert company.admin_id == admin.id
    assert company.contact_email == "office@maple.test"

    invs = _invitations(db_session)
    assert list(invs) == ["jane@x.com"]
    inv = invs["jane@x.com"]
    assert inv.status == INVITATION_PENDING
    assert len(inv.access_token) == 6 and inv.access_token.isdigit()
    assert result.created_invitation_ids == (inv.id,)
    assert result.deleted_invitation_ids == ()


def test_resaving_the_loaded_tree_changes_nothing(db_session, make_admin):
    admin = make_admin()
    reconcile_portfolio(
        db_session,
        admin_id=admin.id,
        payload=_tree(("Jane Doe", "jane@x.com"), ("Sam Roe", "sam@x.com")),
    )
    before = load_portfolio(db_session, admin_id=admin.id)
    audits_before = _count(db_session, AuditEvent)

    result = reconcile_portfolio(db_session, admin_id=admin.id, payload=before.model_dump())

    after = load_portfolio(db_session, admin_id=admin.id)
    assert after == before
    assert result.created_invitation_ids == ()
    assert result.deleted_invitation_ids == ()
    assert _count(db_session, AuditEvent) == audits_before


def test_second_save_converges_on_the_submitted_set(db_session, make_admin):
    admin = make_admin()
    reconcile_portfolio(
        db_session,
        admin_id=admin.id,
        payload=_tree(("Jane Doe", "jane@x.com"), ("Sam Roe", "sam@x.com")),
    )
    first = _invitations(db_session)

    loaded = load_portfolio(db_session, admin_id=admin.id).model_dump()
    unit = loaded["apartments"][0]["units"][0]
    unit["renters"] = [r for r in unit["renters"] if r["email"] != "sam@x.com"]
    unit["renters"].append({"full_name": "Ada Poe", "email": "ada@x.com"})
    unit["renters"][0]["full_name"] = "Jane Q. Doe"

    result = reconcile_portfolio(db_session, admin_id=admin.id, payload=loaded)

    second = _invitations(db_session)
    assert set(second) == {"jane@x.com", "ada@x.com"}
    assert _triples(db_session) == {("Maple Apts", "4B", "jane@x.com"), ("Maple Apts", "4B", "ada@x.com")}
    assert result.deleted_invitation_ids == (first["sam@x.com"].id,)
    assert result.created_invitation_ids == (second["ada@x.com"].id,)

    # a kept email keeps its row and token; only the display name follows the edit
    assert second["jane@x.com"].id == first["jane@x.com"].id
    assert second["jane@x.com"].access_token == first["jane@x.com"].access_token
    assert second["jane@x.com"].renter_name == "Jane Q. Doe"


def test_tokens_are_unique_across_a_large_save(db_session, make_admin):
    admin = make_admin()
    payload = {
        "company_name": "Big Co",
        "apartments": [
            {
                "name": f"Building {b}",
                "postal_code": "1000{b}",
                "units": [
                    {
                        "unit_number": str(u),
                        "renters": [
                            {"full_name": f"Renter {b}-{u}-{r}", "email": f"r{b}{u}{r}@x.com"} for r in range(3)
                        ],
                    }
                    for u in range(5)
                ],
            }
            for b in range(3)
        ],
    }
    reconcile_portfolio(db_session, admin_id=admin.id, payload=payload)

    tokens = [inv.access_token for inv in _invitations(db_session).values()]
    assert len(tokens) == 45
    assert len(set(tokens)) == 45


def test_colliding_draws_still_produce_distinct_tokens(db_session, make_admin):
    admin = make_admin()
    draws = iter([5, 5, 5, 6])
    reconcile_portfolio(
        db_session,
        admin_id=admin.id,
        payload=_tree(("Jane Doe", "jane@x.com"), ("Sam Roe", "sam@x.com")),
        randbelow=lambda n: next(draws),
    )
    assert sorted(inv.access_token for inv in _invitations(db_session).values()) == ["000005", "000006"]


def test_removed_building_takes_units_and_invitations_with_it(db_session, make_admin):
    admin = make_admin()
    reconcile_portfolio(db_session, admin_id=admin.id, payload=_tree(("Jane Doe", "jane@x.com")))
    inv = next(iter(_invitations(db_session).values()))

    result = reconcile_portfolio(db_session, admin_id=admin.id, payload={"company_name": "Maple Holdings"})

    assert _count(db_session, ApartmentBuilding) == 0
    assert _count(db_session, RentalUnit) == 0
    assert _count(db_session, RenterInvitation) == 0
    assert result.deleted_invitation_ids == (inv.id,)

    deleted = db_session.scalars(select(AuditEvent).where(AuditEvent.action == "building.delete")).one()
    assert inv.id in deleted.before_json


def test_blank_rows_are_skipped_and_drop_their_stored_counterparts(db_session, make_admin):
    admin = make_admin()
    reconcile_portfolio(db_session, admin_id=admin.id, payload=_tree(("Jane Doe", "jane@x.com")))

    loaded = load_portfolio(db_session, admin_id=admin.id).model_dump()
    loaded["apartments"][0]["units"][0]["renters"][0]["full_name"] = "   "
    loaded["apartments"].append({"name": "", "postal_code": "10002", "units": []})
    loaded["apartments"][0]["units"].append({"unit_number": "  ", "renters": []})

    reconcile_portfolio(db_session, admin_id=admin.id, payload=loaded)

    assert _count(db_session, ApartmentBuilding) == 1
    assert _count(db_session, RentalUnit) == 1
    assert _count(db_session, RenterInvitation) == 0


def test_invalid_email_rejects_the_save_before_writing(db_session, make_admin):
    admin = make_admin()
    with pytest.raises(ValidationFailed) as exc:
        reconcile_portfolio(db_session, admin_id=admin.id, payload=_tree(("Jane Doe", "not-an-email")))

    assert "apartments[0].units[0].renters[0].email" in exc.value.fields
    assert _count(db_session, RentalCompany) == 0


def test_blank_company_name_is_rejected(db_session, make_admin):
    admin = make_admin()
    with pytest.raises(ValidationFailed) as exc:
        reconcile_portfolio(db_session, admin_id=admin.id, payload={"company_name": "  ", "apartments": []})
    assert "company_name" in exc.value.fields


def test_failure_mid_save_leaves_no_trace(db_session, make_admin, monkeypatch):
    admin = make_admin()

    calls = {"n": 0}
    real = portfolio_service.allocate_access_token

    def flaky(db, **kw):
        calls["n"] += 1
        if calls["n"] == 2:
            raise RuntimeError("injected fault")
        return real(db, **kw)

    monkeypatch.setattr(portfolio_service, "allocate_access_token", flaky)

    with pytest.raises(ReconciliationFailed) as exc:
        reconcile_portfolio(
            db_session,
            admin_id=admin.id,
            payload=_tree(("Jane Doe", "jane@x.com"), ("Sam Roe", "sam@x.com")),
        )

    assert not isinstance(exc.value, AllocationExhausted)
    for model in (RentalCompany, ApartmentBuilding, RentalUnit, RenterInvitation, AuditEvent):
        assert _count(db_session, model) == 0


def test_exhausted_allocation_rolls_back_an_existing_portfolio_edit(db_session, make_admin, monkeypatch):
    admin = make_admin()
    reconcile_portfolio(db_session, admin_id=admin.id, payload=_tree(("Jane Doe", "jane@x.com")))
    before = load_portfolio(db_session, admin_id=admin.id)

    def exhausted(db, **kw):
        raise AllocationExhausted("Unable to allocate a unique access token. Please try again.")

    monkeypatch.setattr(portfolio_service, "allocate_access_token", exhausted)

    edited = before.model_dump()
    edited["company_name"] = "Renamed Holdings"
    edited["apartments"][0]["units"][0]["renters"] = [{"full_name": "Sam Roe", "email": "sam@x.com"}]

    with pytest.raises(AllocationExhausted):
        reconcile_portfolio(db_session, admin_id=admin.id, payload=edited)

    db_session.expire_all()
    assert load_portfolio(db_session, admin_id=admin.id) == before


def test_foreign_ids_are_never_adopted(db_session, make_admin):
    alice = make_admin("alice@a.test")
    mallory = make_admin("mallory@m.test")
    reconcile_portfolio(db_session, admin_id=alice.id, payload=_tree(("Jane Doe", "jane@x.com")))
    victim = load_portfolio(db_session, admin_id=alice.id)

    spoof = victim.model_dump()
    spoof["company_name"] = "Mallory Co"
    spoof["apartments"][0]["name"] = "Stolen Apts"
    spoof["apartments"][0]["units"][0]["renters"] = []

    reconcile_portfolio(db_session, admin_id=mallory.id, payload=spoof)

    db_session.expire_all()
    assert load_portfolio(db_session, admin_id=alice.id) == victim

    mine = load_portfolio(db_session, admin_id=mallory.id)
    assert mine.apartments[0].name == "Stolen Apts"
    assert mine.apartments[0].id != victim.apartments[0].id
    assert mine.apartments[0].units[0].id != victim.apartments[0].units[0].id


def test_duplicate_emails_in_one_unit_keep_the_first(db_session, make_admin):
    admin = make_admin()
    reconcile_portfolio(
        db_session,
        admin_id=admin.id,
        payload=_tree(("Jane Doe", "jane@x.com"), ("Other Jane", "JANE@x.com")),
    )
    invs = _invitations(db_session)
    assert len(invs) == 1
    assert invs["jane@x.com"].renter_name == "Jane Doe"


def _redeem(db, inv, email="jane@x.com"):
    return redeem_invitation(db, token=inv.access_token, email=email, full_name="Jane Doe", password="pw123456")


def test_dropping_a_used_invitation_deletes_it_but_keeps_the_renter(db_session, make_admin):
    admin = make_admin()
    reconcile_portfolio(db_session, admin_id=admin.id, payload=_tree(("Jane Doe", "jane@x.com")))
    inv = _invitations(db_session)["jane@x.com"]
    res = _redeem(db_session, inv)

    loaded = load_portfolio(db_session, admin_id=admin.id).model_dump()
    loaded["apartments"][0]["units"][0]["renters"] = []
    reconcile_portfolio(db_session, admin_id=admin.id, payload=loaded)

    assert _count(db_session, RenterInvitation) == 0
    assert db_session.get(Renter, res.renter_id) is not None

    audit = db_session.scalars(
        select(AuditEvent).where(AuditEvent.action == "invitation.delete", AuditEvent.entity_id == inv.id)
    ).one()
    assert INVITATION_USED in audit.before_json


def test_retained_used_invitations_survive_being_dropped(db_session, make_admin, monkeypatch):
    monkeypatch.setattr(settings, "retain_used_invitations", True)
    admin = make_admin()
    reconcile_portfolio(
        db_session,
        admin_id=admin.id,
        payload=_tree(("Jane Doe", "jane@x.com"), ("Sam Roe", "sam@x.com")),
    )
    _redeem(db_session, _invitations(db_session)["jane@x.com"])

    loaded = load_portfolio(db_session, admin_id=admin.id).model_dump()
    loaded["apartments"][0]["units"][0]["renters"] = []
    reconcile_portfolio(db_session, admin_id=admin.id, payload=loaded)

    invs = _invitations(db_session)
    assert set(invs) == {"jane@x.com"}
    assert invs["jane@x.com"].status == INVITATION_USED


def test_used_invitation_is_frozen_on_resave(db_session, make_admin):
    admin = make_admin()
    reconcile_portfolio(db_session, admin_id=admin.id, payload=_tree(("Jane Doe", "jane@x.com")))
    inv = _invitations(db_session)["jane@x.com"]
    _redeem(db_session, inv)

    loaded = load_portfolio(db_session, admin_id=admin.id).model_dump()
    loaded["apartments"][0]["units"][0]["renters"][0]["full_name"] = "Someone Else"
    reconcile_portfolio(db_session, admin_id=admin.id, payload=loaded)

    after = _invitations(db_session)["jane@x.com"]
    assert after.renter_name == "Jane Doe"
    assert after.status == INVITATION_USED
    assert after.access_token == inv.access_token


def test_load_without_company_is_empty(db_session, make_admin):
    admin = make_admin()
    out = load_portfolio(db_session, admin_id=admin.id)
    assert out.company_name == ""
    assert out.apartments == []


class _Collect(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def test_save_succeeds_with_app_logging_enabled(db_session, make_admin):
    configure_logging("INFO")
    handler = _Collect()
    logger = logging.getLogger("trustrent.portfolio")
    logger.addHandler(handler)
    try:
        admin = make_admin()
        result = reconcile_portfolio(db_session, admin_id=admin.id, payload=_tree(("Jane Doe", "jane@x.com")))
    finally:
        logger.removeHandler(handler)

    assert result.company_id
    assert len(result.created_invitation_ids) == 1

    line = next(r for r in handler.records if r.getMessage() == "portfolio reconciled")
    payload = json.loads(JsonFormatter().format(line))
    assert payload["created_invitations"] == 1
    assert payload["deleted_invitations"] == 0
    assert payload["company_id"] == result.company_id


def test_same_payload_with_client_ids_saved_twice_is_stable(db_session, make_admin):
    admin = make_admin()
    payload = {
        "company_name": "Maple Holdings",
        "apartments": [
            {
                "id": "apt-1700000000000",
                "name": "Maple Apts",
                "postal_code": "10001",
                "units": [
                    {
                        "id": "unit-1700000000001",
                        "unit_number": "4B",
                        "renters": [
                            {"id": "renter-1700000000002", "full_name": "Jane Doe", "email": "jane@x.com"},
                            {"id": "renter-1700000000003", "full_name": "Sam Roe", "email": "sam@x.com"},
                        ],
                    }
                ],
            }
        ],
    }

    reconcile_portfolio(db_session, admin_id=admin.id, payload=payload)
    first = load_portfolio(db_session, admin_id=admin.id)
    assert first.apartments[0].id == "apt-1700000000000"
    assert first.apartments[0].units[0].id == "unit-1700000000001"

    result = reconcile_portfolio(db_session, admin_id=admin.id, payload=payload)
    second = load_portfolio(db_session, admin_id=admin.id)

    assert result.created_invitation_ids == ()
    assert result.deleted_invitation_ids == ()
    assert second == first
    assert {r.email: (r.id, r.access_token) for r in second.apartments[0].units[0].renters} == {
        r.email: (r.id, r.access_token) for r in first.apartments[0].units[0].renters
    }
