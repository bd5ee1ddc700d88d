from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest


BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("OTP_REQUIRED", "false")

from fastapi.testclient import TestClient  # noqa: E402

from powercrm.core.security import create_user_token  # noqa: E402
from powercrm.db.base import Base  # noqa: E402
from powercrm.db.session import SessionLocal, engine  # noqa: E402
from powercrm.main import app  # noqa: E402
from powercrm.models.enums import UserRole  # noqa: E402
from powercrm.models.user import User  # noqa: E402


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db):  # noqa: ARG001
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    def _make(role: UserRole = UserRole.client, *, name: str | None = None, phone: str | None = None, **fields) -> User:
        counter["n"] += 1
        user = User(
            phone=phone or f"0912{counter['n']:07d}",
            name=name or f"{role.value.lower()}-{counter['n']}",
            role=role,
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_user_token(user)}"}

    return _headers
