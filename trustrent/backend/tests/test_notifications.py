# backend/tests/test_notifications.py
from __future__ import annotations

import json

import httpx
import pytest
from sqlalchemy import select

from app.clients.sendgrid import SendGridClient
from app.config import settings
from app.errors import Forbidden, NotFound
from app.models import RenterInvitation
from app.services.notification_service import (
    render_invitation_email,
    send_invitation_email,
    send_invitations,
    send_invites_for_unit,
)
from app.services.portfolio_service import load_portfolio, reconcile_portfolio


def _seed(db, admin):
    result = reconcile_portfolio(
        db,
        admin_id=admin.id,
        payload={
            "company_name": "Maple Holdings",
            "apartments": [
                {
                    "name": "Maple Apts",
                    "postal_code": "10001",
                    "units": [
                        {
                            "unit_number": "4B",
                            "renters": [
                                {"full_name": "Jane Doe", "email": "jane@x.com"},
                                {"full_name": "Sam Roe", "email": "sam@x.com"},
                            ],
                        }
                    ],
                }
            ],
        },
    )
    unit_id = load_portfolio(db, admin_id=admin.id).apartments[0].units[0].id
    return result, unit_id


def test_email_body_escapes_user_text():
    subject, body = render_invitation_email(
        renter_name="<script>",
        company_name="A & B",
        building_name="Maple Apts",
        unit_number="4B",
        token="042017",
    )
    assert "042017" in subject
    assert "&lt;script&gt;" in body
    assert "A &amp; B" in body
    assert "<script>" not in body


def test_send_invitations_counts_failures_without_raising(db_session, make_admin):
    result, _ = _seed(db_session, make_admin())
    seen = []

    def sender(**kw):
        seen.append(kw)
        if kw["renter_email"] == "sam@x.com":
            raise RuntimeError("smtp down")
        return True

    summary = send_invitations(
        db_session, invitation_ids=result.created_invitation_ids, company_name="Maple Holdings", sender=sender
    )

    assert (summary.sent, summary.failed) == (1, 1)
    jane = next(kw for kw in seen if kw["renter_email"] == "jane@x.com")
    assert jane["building_name"] == "Maple Apts"
    assert jane["unit_number"] == "4B"
    tokens = {inv.access_token for inv in db_session.scalars(select(RenterInvitation)).all()}
    assert jane["token"] in tokens


def test_send_invites_for_unit_checks_ownership(db_session, make_admin):
    owner = make_admin("owner@a.test")
    stranger = make_admin("stranger@b.test")
    _, unit_id = _seed(db_session, owner)

    summary = send_invites_for_unit(db_session, admin_id=owner.id, unit_id=unit_id, sender=lambda **kw: False)
    assert (summary.sent, summary.failed) == (0, 2)

    with pytest.raises(NotFound):
        send_invites_for_unit(db_session, admin_id=stranger.id, unit_id=unit_id, sender=lambda **kw: True)

    reconcile_portfolio(db_session, admin_id=stranger.id, payload={"company_name": "Other Co"})
    with pytest.raises(Forbidden):
        send_invites_for_unit(db_session, admin_id=stranger.id, unit_id=unit_id, sender=lambda **kw: True)


def test_sendgrid_client_posts_v3_mail_send(monkeypatch):
    monkeypatch.setattr(settings, "sendgrid_api_key", "SG.test")
    monkeypatch.setattr(settings, "sendgrid_from_email", "noreply@trustrent.test")
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(202)

    client = SendGridClient(transport=httpx.MockTransport(handler))
    ok = send_invitation_email(
        renter_name="Jane Doe",
        renter_email="jane@x.com",
        company_name="Maple Holdings",
        building_name="Maple Apts",
        unit_number="4B",
        token="042017",
        client=client,
    )

    assert ok is True
    assert captured["url"] == "https://api.sendgrid.com/v3/mail/send"
    assert captured["auth"] == "Bearer SG.test"
    assert captured["body"]["personalizations"][0]["to"][0]["email"] == "jane@x.com"
    assert captured["body"]["from"]["email"] == "noreply@trustrent.test"


def test_sendgrid_rejection_is_reported_not_raised(monkeypatch):
    monkeypatch.setattr(settings, "sendgrid_api_key", "SG.test")
    monkeypatch.setattr(settings, "sendgrid_from_email", "noreply@trustrent.test")

    client = SendGridClient(transport=httpx.MockTransport(lambda r: httpx.Response(401, text="bad key")))
    res = client.send(to_email="jane@x.com", subject="s", html="<p>x</p>")

    assert res.ok is False
    assert res.status_code == 401


def test_unconfigured_sendgrid_skips_delivery(monkeypatch):
    monkeypatch.setattr(settings, "sendgrid_api_key", None)

    def boom(request):
        raise AssertionError("no request expected")

    res = SendGridClient(transport=httpx.MockTransport(boom)).send(to_email="jane@x.com", subject="s", html="x")
    assert res.ok is False
