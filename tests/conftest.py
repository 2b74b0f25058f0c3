"""Pytest fixtures: in-memory database, users, temp blob root, API client."""

import io
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from apps.api.deps import get_db, get_settings
from apps.api.main import app
from core.config import Settings
from core.security import create_access_token
from domain.models import utcnow
from services.documents.store import IncomingFile
from services.persistence.blobs import FilesystemBlobStore
from services.persistence.tables import Base, User
from services.workflow.applications import ApplicationManager

VALID_APPLICATION = {
    "application_type": "new_application",
    "number_of_workers": 12,
    "number_of_certified_workers": 4,
    "owner_name": "Dana Whitfield",
    "owner_email": "dana@abatement.example",
    "owner_phone": "604-555-0142",
    "owner_business_address": "12 Harbour Rd, Victoria",
    "services_description": "Asbestos removal for residential renovations",
}


@pytest.fixture
def cfg(tmp_path):
    return Settings(
        SECRET_KEY="test-secret",
        DATABASE_URL="sqlite://",
        STORAGE_ROOT=str(tmp_path / "blobs"),
        MAX_UPLOAD_MB=1,
    )


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    s = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    yield s
    s.close()


def _add_user(session, user_id: str, role: str, email: str) -> User:
    user = User(id=user_id, role=role, email=email, first_name=user_id.title())
    session.add(user)
    session.commit()
    return user


@pytest.fixture
def employer(session):
    return _add_user(session, "employer-1", "employer", "owner@abatement.example")


@pytest.fixture
def other_employer(session):
    return _add_user(session, "employer-2", "employer", "other@demolition.example")


@pytest.fixture
def admin(session):
    return _add_user(session, "admin-1", "administrator", "reviewer@licensing.example")


@pytest.fixture
def blobs(cfg):
    return FilesystemBlobStore(cfg.STORAGE_ROOT)


@pytest.fixture
def make_application(session, cfg):
    manager = ApplicationManager(session, cfg)

    def _make(owner, age_days: float = 0, **overrides):
        application = manager.create({**VALID_APPLICATION, **overrides}, owner)
        if age_days:
            application.created_at = utcnow() - timedelta(days=age_days)
            session.commit()
        return application

    return _make


@pytest.fixture
def incoming():
    def _incoming(name: str = "insurance.pdf", body: bytes = b"%PDF-1.4 test", content_type="application/pdf", size=None):
        return IncomingFile(filename=name, content_type=content_type, stream=io.BytesIO(body), size=size)

    return _incoming


@pytest.fixture
def client(session, cfg):
    def _db():
        yield session

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_settings] = lambda: cfg
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(cfg):
    def _headers(user) -> dict:
        token = create_access_token(user.id, claims={"email": user.email}, cfg=cfg)
        return {"Authorization": f"Bearer {token}"}

    return _headers
