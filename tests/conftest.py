import os

# Antes de importar la app: que nunca toque ./brainshift.db
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("STREAK_TIMEZONE", "UTC")

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from auth import create_access_token
from database import get_db, init_db
from main import app
from models import User

# Un lunes cualquiera a media mañana (UTC)
T0 = datetime(2025, 3, 10, 9, 0, 0)


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def _make_user(db, email: str, name: str) -> User:
    user = User(email=email, full_name=name)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def user(db) -> User:
    return _make_user(db, "ana@example.com", "Ana")


@pytest.fixture
def other_user(db) -> User:
    return _make_user(db, "luis@example.com", "Luis")


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}


@pytest.fixture
def auth_headers(user) -> dict:
    return headers_for(user)
