# backend/tests/test_auth_service.py
from __future__ import annotations

import pytest

from app.errors import AccountExists, Unauthorized, ValidationFailed
from app.services.auth_service import (
    SESSION_KIND_ADMIN,
    SESSION_KIND_RENTER,
    create_session_token,
    decode_session_token,
    hash_password,
    login_admin,
    signup_admin,
    verify_password,
)


def test_password_hash_round_trip():
    stored = hash_password("correct horse")
    assert stored.startswith("pbkdf2_sha256$")
    assert verify_password("correct horse", stored)
    assert not verify_password("wrong", stored)
    assert not verify_password("x", "!")
    assert not verify_password("x", None)


def test_session_token_is_bound_to_its_kind():
    token = create_session_token(subject="abc", kind=SESSION_KIND_ADMIN, minutes=5)
    assert decode_session_token(token, kind=SESSION_KIND_ADMIN)["sub"] == "abc"
    with pytest.raises(Unauthorized):
        decode_session_token(token, kind=SESSION_KIND_RENTER)
    with pytest.raises(Unauthorized):
        decode_session_token(token + "x", kind=SESSION_KIND_ADMIN)


def test_expired_session_is_rejected():
    token = create_session_token(subject="abc", kind=SESSION_KIND_ADMIN, minutes=-1)
    with pytest.raises(Unauthorized):
        decode_session_token(token, kind=SESSION_KIND_ADMIN)


def test_signup_and_login(db_session):
    admin = signup_admin(db_session, email=" Owner@Maple.test ", password="secret123")
    assert admin.email == "owner@maple.test"

    with pytest.raises(AccountExists):
        signup_admin(db_session, email="owner@maple.test", password="secret123")
    with pytest.raises(ValidationFailed):
        signup_admin(db_session, email="not-an-email", password="1")

    assert login_admin(db_session, email="OWNER@maple.test", password="secret123").id == admin.id
    with pytest.raises(Unauthorized):
        login_admin(db_session, email="owner@maple.test", password="nope")
