"""Pytest fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from furlink.core.config import settings
from furlink.core.deps import get_clock
from furlink.core.security import create_access_token
from furlink.db.base import Base
from furlink.db.session import get_db
from furlink.main import app
from furlink.models import AlertAttachment, AlertResponse, EmergencyAlert, Pet, User  # noqa: F401 - register for create_all
from furlink.services.alert_store import AlertStore

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock injected wherever the code asks for "now"."""

    def __init__(self, now: datetime):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FakeClock(T0)


@pytest.fixture
def store(db, clock):
    return AlertStore(db, clock=clock)


def make_user(db, email: str, full_name: str = "Test User", is_active: bool = True) -> User:
    user = User(email=email, full_name=full_name, is_active=is_active)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_pet(db, owner: User, name: str = "Buddy", species: str = "dog") -> Pet:
    pet = Pet(owner_id=owner.id, name=name, species=species, breed="Golden Retriever")
    db.add(pet)
    db.commit()
    db.refresh(pet)
    return pet


@pytest.fixture
def owner(db):
    return make_user(db, "owner@test.com", "Pet Owner")


@pytest.fixture
def neighbour(db):
    return make_user(db, "neighbour@test.com", "Neighbour")


@pytest.fixture
def pet(db, owner):
    return make_pet(db, owner)


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


def alert_payload(pet_id: int, **overrides) -> dict:
    """Lost golden retriever near Tiananmen; override any field."""
    payload = {
        "alert_type": "lost_pet",
        "pet_id": pet_id,
        "title": "Lost Golden Retriever",
        "description": "3yo, red collar",
        "location": {"latitude": 39.9042, "longitude": 116.4074, "address": "Dongcheng, Beijing"},
        "incident_time": (T0 - timedelta(minutes=30)).isoformat(),
        "urgency_level": "high",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def client(session_factory, clock):
    """Test client with overridden DB and clock."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def platform_headers(monkeypatch):
    """Credential the notification service and scheduler send."""
    monkeypatch.setattr(settings, "platform_api_key", "test-platform-key")
    return {"X-Platform-Key": "test-platform-key"}
