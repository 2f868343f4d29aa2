# backend/tests/test_portfolio_tree.py
from __future__ import annotations

import pytest

from app.domain.portfolio_tree import looks_like_email, normalize_portfolio
from app.errors import ValidationFailed
from app.schemas import PortfolioIn


def test_trims_lowercases_and_accepts_pydantic_input():
    tree = normalize_portfolio(
        PortfolioIn(
            company_name="  Maple Holdings ",
            contact_email=" Office@Maple.TEST ",
            apartments=[
                {
                    "name": " Maple Apts ",
                    "postal_code": " 10001",
                    "units": [{"unit_number": " 4B ", "renters": [{"full_name": " Jane ", "email": " JANE@X.COM "}]}],
                }
            ],
        )
    )
    assert tree.company_name == "Maple Holdings"
    assert tree.contact_email == "office@maple.test"
    assert tree.triples() == {("Maple Apts", "4B", "jane@x.com")}
    assert tree.buildings[0].units[0].renters[0].full_name == "Jane"


def test_duplicate_client_ids_are_treated_as_new():
    tree = normalize_portfolio(
        {
            "company_name": "Co",
            "apartments": [
                {"id": "b1", "name": "A", "postal_code": "1", "units": [{"id": "u1", "unit_number": "1"}]},
                {"id": "b1", "name": "B", "postal_code": "2", "units": [{"id": "u1", "unit_number": "2"}]},
            ],
        }
    )
    assert [b.client_id for b in tree.buildings] == ["b1", None]
    assert [b.units[0].client_id for b in tree.buildings] == ["u1", None]


def test_collects_every_field_error():
    with pytest.raises(ValidationFailed) as exc:
        normalize_portfolio(
            {
                "company_name": "",
                "contact_email": "nope",
                "apartments": [
                    {
                        "name": "A",
                        "postal_code": "1",
                        "units": [
                            {
                                "unit_number": "1",
                                "renters": [
                                    {"full_name": "Ok", "email": "ok@x.com"},
                                    {"full_name": "Bad", "email": "bad@"},
                                ],
                            }
                        ],
                    }
                ],
            }
        )
    assert set(exc.value.fields) == {
        "company_name",
        "contact_email",
        "apartments[0].units[0].renters[1].email",
    }


@pytest.mark.parametrize(
    "value,ok",
    [("a@b.co", True), ("a.b+c@d.e.f", True), ("a@b", False), ("a b@c.d", False), ("@b.c", False), ("", False)],
)
def test_email_shape(value, ok):
    assert looks_like_email(value) is ok
