"""
Shared fixtures
===============

Every test gets a fresh in-memory SQLite database wired into the app through
``app.dependency_overrides``. Sessions are minted with the same signer the
app uses, so ``login_as`` behaves exactly like a real sign-in.
"""

import itertools
import os

# Must be set before the app modules are imported
os.environ["CSRF_ENABLED"] = "false"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.pop("REDIS_URL", None)
os.environ.pop("LAWPAY_CLIENT_ID", None)
os.environ.pop("LAWPAY_CLIENT_SECRET", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from ytp_portal.auth import hash_password, session_serializer, session_user_payload  # noqa: E402
from ytp_portal.config import SESSION_COOKIE_NAME  # noqa: E402
from ytp_portal.database import Base, get_db  # noqa: E402
from ytp_portal.main import app  # noqa: E402
from ytp_portal.models import Matter, User, UserRole, UserStatus  # noqa: E402
from ytp_portal.models_journey import Journey, JourneyStep  # noqa: E402

TEST_PASSWORD = "correct-horse-battery"


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
def db_engine():
    """One in-memory database per test, shared by every session through StaticPool"""
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
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db_session(session_factory):
    """Session for seeding and assertions; call expire_all() before re-reading rows"""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    """Test client bound to the per-test database"""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


# =============================================================================
# Users and sessions
# =============================================================================

@pytest.fixture
def make_user(db_session):
    """Factory for committed users; only hashes a password when asked for one"""
    counter = itertools.count(1)

    def _make(role=UserRole.CLIENT, status=UserStatus.ACTIVE, admin_level=0, password=None, **fields):
        n = next(counter)
        user = User(
            email=fields.pop("email", f"user{n}@example.com"),
            password=hash_password(password) if password else None,
            role=role.value if isinstance(role, UserRole) else role,
            status=status.value if isinstance(status, UserStatus) else status,
            admin_level=admin_level,
            first_name=fields.pop("first_name", f"First{n}"),
            last_name=fields.pop("last_name", f"Last{n}"),
            **fields,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(role=UserRole.ADMIN, email="admin@ytp.law")


@pytest.fixture
def lawyer(make_user):
    return make_user(role=UserRole.LAWYER, email="lawyer@ytp.law")


@pytest.fixture
def staff(make_user):
    return make_user(role=UserRole.STAFF, email="staff@ytp.law")


@pytest.fixture
def client_user(make_user):
    return make_user(role=UserRole.CLIENT, email="client@example.com")


@pytest.fixture
def other_client(make_user):
    return make_user(role=UserRole.CLIENT, email="other@example.com")


def session_cookie(user, **extra):
    return session_serializer.dumps({"user": session_user_payload(user), **extra})


def login_as(client, user, **extra):
    """Put a signed session for ``user`` on the client's cookie jar"""
    client.cookies.set(SESSION_COOKIE_NAME, session_cookie(user, **extra), domain="testserver.local")
    return client


# =============================================================================
# Domain data
# =============================================================================

@pytest.fixture
def matter(db_session, client_user):
    matter = Matter(client_id=client_user.id, title="Estate Plan", matter_number="YTP-001")
    db_session.add(matter)
    db_session.commit()
    db_session.refresh(matter)
    return matter


@pytest.fixture
def journey(db_session):
    """Active journey with three ordered steps"""
    journey = Journey(name="Estate Planning Engagement", journey_type="ENGAGEMENT")
    db_session.add(journey)
    db_session.flush()
    for order, (name, step_type) in enumerate(
        [("Intake", "MILESTONE"), ("Design Meeting", "BRIDGE"), ("Signing", "MILESTONE")], start=1
    ):
        db_session.add(JourneyStep(journey_id=journey.id, name=name, step_type=step_type, step_order=order))
    db_session.commit()
    db_session.refresh(journey)
    return journey
