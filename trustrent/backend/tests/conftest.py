# backend/tests/conftest.py
from __future__ import annotations

import os
import tempfile

# must run before anything imports app.config
_DB_DIR = tempfile.mkdtemp(prefix="trustrent-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/test.db"
os.environ["APP_ENV"] = "test"
os.environ["AUTH_MODE"] = "jwt"
os.environ["PASSWORD_PBKDF2_ITERS"] = "1000"
os.environ.pop("SENDGRID_API_KEY", None)

import pytest
from fastapi.testclient import TestClient

import app.models  # noqa: F401
from app.db import Base, SessionLocal, engine
from app.models import AdminUser, new_id


@pytest.fixture(scope="session", autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_tables():
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    from app.main import create_app

    with TestClient(create_app()) as c:
        yield c


@pytest.fixture
def make_admin(db_session):
    def _make(email: str = "owner@maple.test") -> AdminUser:
        admin = AdminUser(id=new_id(), email=email, password_hash="!")
        db_session.add(admin)
        db_session.commit()
        return admin

    return _make
