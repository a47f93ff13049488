import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("AI_MODE", "mock")

from pantryplan.main import app
from pantryplan.db import Base
from pantryplan.deps import get_ai_client, get_db, get_notifier, get_recipe_link_validator
from pantryplan.core.ai_client import AIClient
from pantryplan.rate_limit import limiter
from pantryplan.services.notifications import Notifier
from pantryplan.services.recipe_links import RecipeLinkValidator

# --- Test Database Setup ---

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

# StaticPool keeps one connection so every session sees the same in-memory db
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

limiter.enabled = False


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def offline_validator():
    return RecipeLinkValidator(network_enabled=False)


@pytest.fixture
def client(offline_validator):
    """Test client with DB, link validator, notifier and AI overrides."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_recipe_link_validator] = lambda: offline_validator
    app.dependency_overrides[get_notifier] = lambda: Notifier()
    app.dependency_overrides[get_ai_client] = lambda: AIClient(mode="mock")
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    """Direct database session for setup."""
    session = TestingSessionLocal()
    yield session
    session.close()


import fakeredis
import fakeredis.aioredis
from pantryplan.infra import redis_client


@pytest.fixture(autouse=True)
def mock_redis():
    server = fakeredis.FakeServer()
    redis_client._redis_async = fakeredis.aioredis.FakeRedis(server=server, decode_responses=True)
    yield
    redis_client._redis_async = None
