"""
Pytest configuration and fixtures for testing
"""
import itertools

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

import database_models  # noqa: F401
from auth_utils import create_jwt
from config import settings
from crud.institution import InstitutionRepository
from crud.user import UserRepository
from database import Base, get_db
from services import settings_service
from services.email_service import EmailDeliveryError, get_email_service
from services.firebase_service import FirebaseTokenError, get_firebase_service

# In-memory SQLite shared by every session of a test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

SUPER_ADMIN_EMAIL = "root@inavora.com"

_client_ips = itertools.count(1)


class FakeFirebaseUser:

    def __init__(self, display_name=None, photo_url=None):
        self.display_name = display_name
        self.photo_url = photo_url


class FakeFirebaseService:
    """Stands in for Firebase Admin: tokens are registered up front."""

    def __init__(self):
        self.tokens = {}
        self.users = {}

    def add_token(self, token, uid, display_name=None, **claims):
        self.tokens[token] = {"uid": uid, **claims}
        self.users[uid] = FakeFirebaseUser(display_name=display_name)

    def verify_id_token(self, token):
        if token not in self.tokens:
            raise FirebaseTokenError("Token not recognized")
        return dict(self.tokens[token])

    def get_user(self, uid):
        return self.users.get(uid, FakeFirebaseUser())


class FakeEmailService:
    """Records outgoing email; recipients in fail_for raise EmailDeliveryError."""

    def __init__(self):
        self.sent = []
        self.fail_for = set()

    async def send_email(self, to, subject, html_content, reply_to=None):
        if to in self.fail_for:
            raise EmailDeliveryError(f"Email delivery to {to} failed")
        self.sent.append({"to": to, "subject": subject, "html": html_content, "reply_to": reply_to})
        return {"status": "sent", "id": f"email-{len(self.sent)}", "to": to}


@pytest.fixture(autouse=True)
def auth_settings(monkeypatch):
    """JWT signing key and super admin list used by every test."""
    monkeypatch.setattr(settings, "jwt_secret_key", "test-secret")
    monkeypatch.setattr(settings, "super_admin_emails", SUPER_ADMIN_EMAIL)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    settings_service.clear_cache()
    yield
    settings_service.clear_cache()


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest.fixture
async def test_db(session_factory):
    """
    Fixture that provides an isolated, in-memory SQLite database session for each test.
    Tables are created before the test and dropped afterwards.
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@pytest.fixture
def fake_firebase():
    return FakeFirebaseService()


@pytest.fixture
def fake_email():
    return FakeEmailService()


@pytest.fixture
async def async_client(session_factory, fake_firebase, fake_email, monkeypatch):
    """httpx client bound to the app, with the test database and fake external services."""
    from main import app
    import utils.maintenance_mode

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    monkeypatch.setattr(utils.maintenance_mode, "AsyncSessionLocal", session_factory)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_firebase_service] = lambda: fake_firebase
    app.dependency_overrides[get_email_service] = lambda: fake_email

    # Fresh client address per test so rate limit buckets never carry over
    n = next(_client_ips)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"x-forwarded-for": f"10.0.{n // 256}.{n % 256}"},
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(test_db):
    async def _make_user(email="user@example.com", display_name="Test User", **fields):
        return await UserRepository(test_db).create_user({
            "email": email,
            "display_name": display_name,
            **fields,
        })
    return _make_user


@pytest.fixture
def make_institution(test_db):
    async def _make_institution(name="Acme University", **fields):
        return await InstitutionRepository(test_db).create({"name": name, **fields})
    return _make_institution


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        return {"Authorization": f"Bearer {create_jwt(str(user.id))}"}
    return _auth_headers


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {create_jwt('0', super_admin=True)}"}
