# tests/conftest.py

import itertools
import os

# Must be set before taskflow reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""
os.environ["REMINDER_SWEEP_SECRET"] = "test-sweep-secret"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient

from taskflow.core.security import create_access_token, get_password_hash
from taskflow.db.base import Base, SessionLocal, engine
from taskflow.main import app
from taskflow.models import User, UserRole

PASSWORD = "password123"
# Hash once; argon2 is deliberately slow
PASSWORD_HASH = get_password_hash(PASSWORD)


@pytest.fixture()
def db():
    """
    Fresh in-memory schema per test.

    The engine uses a StaticPool, so this session and the sessions opened by
    request handlers see the same database.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db):
    return TestClient(app)


@pytest.fixture()
def make_user(db):
    counter = itertools.count(1)

    def _make(role=UserRole.WORKER, name=None, email=None):
        n = next(counter)
        user = User(
            email=email or f"user{n}@company.com",
            name=name or f"User {n}",
            password_hash=PASSWORD_HASH,
            role=UserRole(role),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def worker(make_user):
    return make_user(UserRole.WORKER, name="Walter Worker")


@pytest.fixture()
def manager(make_user):
    return make_user(UserRole.MANAGER, name="Mona Manager")


@pytest.fixture()
def supervisor(make_user):
    return make_user(UserRole.SUPERVISOR, name="Sam Supervisor")


@pytest.fixture()
def admin(make_user):
    return make_user(UserRole.ADMIN, name="Ada Admin")


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}
