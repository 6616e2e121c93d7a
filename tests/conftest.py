"""
Shared pytest fixtures for all test modules.

Uses an in-memory SQLite database (StaticPool) so every test
function gets a clean, isolated database with no disk I/O.
"""
import os
import tempfile

# Must be set before anything under app/ is imported: config is read at import time.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ["API_KEY_HASH_ROUNDS"] = "4"
os.environ["ADMIN_JWT_SECRET"] = "test-secret"
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="onionpay-uploads-")

import pytest
from datetime import datetime
from typing import Optional
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app import models
from app.dependencies.auth import create_access_token
from app.services import api_keys, catalog, orders
from app.services.notifier import ConnectionRegistry, get_notifier


# ---------------------------------------------------------------------------
# In-memory database engine shared across all fixtures in a test session.
# StaticPool forces all SQLAlchemy connections to reuse the same underlying
# sqlite3 connection, which is required for in-memory SQLite.
# ---------------------------------------------------------------------------
TEST_ENGINE = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=TEST_ENGINE)

ADMIN_CLAIMS = {"sub": "admin-1", "email": "admin@example.com"}


class RecordingNotifier(ConnectionRegistry):
    """Registry that records every broadcast instead of needing live sockets."""

    def __init__(self):
        super().__init__()
        self.events = []

    async def broadcast(self, event_type, data):
        self.events.append((event_type, data))
        return await super().broadcast(event_type, data)

    @property
    def event_types(self):
        return [event_type for event_type, _ in self.events]


@pytest.fixture(autouse=True)
def reset_db():
    """Drop and recreate all tables before each test for full isolation."""
    Base.metadata.drop_all(bind=TEST_ENGINE)
    Base.metadata.create_all(bind=TEST_ENGINE)
    yield
    Base.metadata.drop_all(bind=TEST_ENGINE)


@pytest.fixture
def db(reset_db):
    """Yield a SQLAlchemy session backed by the in-memory test database."""
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(db, notifier):
    """
    FastAPI TestClient with the real DB dependency overridden to use
    the in-memory test session.  The TestClient is NOT used as a context
    manager so the lifespan hook (which creates on-disk tables) is skipped.
    """
    from app.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_token():
    return create_access_token(ADMIN_CLAIMS)


@pytest.fixture
def admin_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def admin_user(db):
    user = models.User(id=ADMIN_CLAIMS["sub"], email=ADMIN_CLAIMS["email"])
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def qr_code(db):
    return catalog.activate_qr_code("merchant@upi", db, image_url="/uploads/qr-test.png")


@pytest.fixture
def publishable_key(db, admin_user):
    return api_keys.issue_key(admin_user.id, "Widget", db, tier=api_keys.PUBLISHABLE)


@pytest.fixture
def secret_key(db, admin_user):
    return api_keys.issue_key(admin_user.id, "Backend", db, tier=api_keys.SECRET)


def key_headers(issued) -> dict:
    return {"Authorization": f"Bearer {issued.key}"}


# ---------------------------------------------------------------------------
# Plain helper, not a fixture, so test modules can import it directly.
# ---------------------------------------------------------------------------
def make_order(
    db,
    qr_code: models.QrCode,
    amount: int = 10000,
    created_at: Optional[datetime] = None,   # defaults to now (inside the window)
    utr: Optional[str] = None,
    callback_url: Optional[str] = None,
    description: str = "Widget",
) -> models.Order:
    order = orders.create_order(
        amount=amount,
        qr_code_id=qr_code.id,
        db=db,
        description=description,
        callback_url=callback_url,
        now=created_at,
    )
    if utr is not None:
        order.utr = utr
        db.commit()
        db.refresh(order)
    return order
