import os

# Settings are read at import time, so the environment comes first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_ENABLED"] = "false"
os.environ["RATE_LIMIT_PER_MINUTE"] = "10000"
os.environ["RATE_LIMIT_PER_HOUR"] = "100000"
os.environ.pop("GEMINI_API_KEY", None)

import pytest
from fastapi.testclient import TestClient

from quizgenius import models  # noqa: F401
from quizgenius.database import Base, SessionLocal, engine
from quizgenius.main import app
from quizgenius.models import UserProfile
from quizgenius.schemas.profile import ProfileCreate
from quizgenius.services.profile_service import profile_service
from quizgenius.utils.rate_limiter import rate_limiter


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    rate_limiter.reset()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def profile(db):
    return profile_service.create_profile(
        db, ProfileCreate(uid="user-1", username="Alice", email="alice@example.com")
    )


@pytest.fixture
def insert_document():
    """Store a raw (possibly legacy) document, bypassing the service"""
    def _insert(uid, document, username=None):
        session = SessionLocal()
        try:
            session.add(UserProfile(uid=uid, username=username or uid, document=document, version=1))
            session.commit()
        finally:
            session.close()
    return _insert


@pytest.fixture
def stored_document():
    """Read the stored document through a fresh session"""
    def _read(uid):
        session = SessionLocal()
        try:
            row = session.query(UserProfile).filter(UserProfile.uid == uid).first()
            return (row.document, row.version) if row else (None, None)
        finally:
            session.close()
    return _read
