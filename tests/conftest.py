"""
Pytest fixtures for CoachDesk tests.

Every test gets its own SQLite file so app and fixtures share one database
without leaking rows between tests.
"""

import os
import tempfile
from typing import AsyncGenerator, Callable, Iterable, List

# Must be set before any coachdesk import reads the settings
_tmp_dir = tempfile.mkdtemp(prefix="coachdesk-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_tmp_dir, 'app.db')}"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SMTP_HOST"] = ""
os.environ["ADMIN_NOTIFICATION_EMAIL"] = "coach@example.com"
os.environ["ENVIRONMENT"] = "test"

from coachdesk.config import get_settings

get_settings.cache_clear()

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from coachdesk.database import get_db
from coachdesk.kernel.identity.jwt import JWTManager
from coachdesk.kernel.identity.password import PasswordHasher
from coachdesk.kernel.models import Base, Profile, User, UserRole
from coachdesk.mailer import Mailer, get_mailer

TEST_PASSWORD = "Password123"


class RecordingMailer(Mailer):
    """Mailer that keeps sent messages in memory and can fail on demand."""

    def __init__(self, fail_for: Iterable[str] = ()):
        super().__init__()
        self.sent: List[dict] = []
        self.fail_for = set(fail_for)

    async def send_email(self, to: str, subject: str, html: str) -> bool:
        if to in self.fail_for:
            return False
        self.sent.append({"to": to, "subject": subject, "html": html})
        return True

    def sent_to(self, address: str) -> List[dict]:
        return [m for m in self.sent if m["to"] == address]


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """Create a test database engine on a fresh SQLite file."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=NullPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _foreign_keys(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def jwt_manager() -> JWTManager:
    """Create a JWT manager for tests."""
    return JWTManager(
        secret_key="test-secret-key-for-testing-only-0123456789",
        refresh_secret_key="test-refresh-secret-for-testing-only-0123",
        algorithm="HS256",
        access_token_expire_minutes=30,
        refresh_token_expire_days=7,
    )


@pytest.fixture
def make_user(db_session: AsyncSession, hasher: PasswordHasher) -> Callable:
    """Factory creating committed users with a profile."""

    async def _make_user(
        email: str,
        role: UserRole = UserRole.USER,
        password: str = TEST_PASSWORD,
        last_name: str = "Martin",
        first_name: str = "Alex",
    ) -> User:
        user = User(
            email=email,
            password_hash=hasher.hash(password),
            last_name=last_name,
            first_name=first_name,
            role=role.value,
        )
        db_session.add(user)
        await db_session.flush()
        db_session.add(Profile(user_id=user.id))
        await db_session.commit()
        return user

    return _make_user


@pytest_asyncio.fixture
async def test_admin(make_user) -> User:
    """Create the canonical admin."""
    return await make_user("admin@example.com", role=UserRole.ADMIN, last_name="Coach", first_name="Camille")


@pytest_asyncio.fixture
async def test_user(make_user) -> User:
    """Create a regular user."""
    return await make_user("user@example.com")


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest_asyncio.fixture
async def client(session_factory, mailer: RecordingMailer) -> AsyncGenerator[AsyncClient, None]:
    """Async client running the app against the test database."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    from coachdesk.main import app

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.pop(get_db, None)
        app.dependency_overrides.pop(get_mailer, None)


@pytest.fixture
def login(client: AsyncClient) -> Callable:
    """Log in and return bearer headers; the cookie jar is cleared so the header is used."""

    async def _login(email: str, password: str = TEST_PASSWORD) -> dict:
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": email, "password": password},
        )
        assert response.status_code == 200, response.text
        client.cookies.clear()
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login


@pytest.fixture
def mailer_factory() -> Callable[..., RecordingMailer]:
    return RecordingMailer
