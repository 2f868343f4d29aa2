# backend/tests/test_seed_demo.py
from __future__ import annotations

from app.cli.seed_demo import seed_demo


def test_seed_is_repeatable(db_session):
    first = seed_demo(db=db_session)
    assert first.admin_email == "admin@demo.local"
    assert len(first.tokens) == 3

    second = seed_demo(db=db_session)
    assert second.company_id == first.company_id
    assert second.tokens == first.tokens
