"""
OSC Portal - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator

import httpx
import pytest
from faker import Faker
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Set testing environment before the app reads its settings
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-for-testing"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["CACHE_URL"] = "memory://"
os.environ["MODULE_M01"] = "true"
os.environ["MODULE_M02"] = "true"
os.environ["AV_SCAN_ENABLED"] = "false"

from osc_portal.core.cache import MemoryCache
from osc_portal.core.security import create_access_token, get_password_hash
from osc_portal.core.storage import LocalStorage, get_storage
from osc_portal.db.base import Base, build_engine, get_db
from osc_portal.domain import AccessToken, Company, CompanyStatus, User, UserRole
from osc_portal.main import app
from osc_portal.services.catalog import (
    Module4Client,
    fallback_jenis_lesen,
    fallback_keperluan_dokumen,
    get_module4_client,
)
from osc_portal.services.events import get_dispatcher

fake = Faker()

PASSWORD = "password123"


class RecordingDispatcher:
    """Collects dispatched events instead of queueing Celery tasks."""

    def __init__(self):
        self.events = []

    def dispatch(self, event) -> None:
        self.events.append(event)

    def of_type(self, event_type) -> list:
        return [e for e in self.events if isinstance(e, event_type)]


def catalog_handler(request: httpx.Request) -> httpx.Response:
    """Module 4 stand-in serving the sample catalog."""
    parts = request.url.path.rstrip("/").split("/")
    if parts[-1] == "jenis-lesen":
        return httpx.Response(200, json={"data": fallback_jenis_lesen()})
    if parts[-1] == "keperluan-dokumen":
        return httpx.Response(200, json={"data": fallback_keperluan_dokumen(int(parts[-2]))})
    return httpx.Response(404, json={"message": "not found"})


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh in-memory database per test"""
    engine = build_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def storage(tmp_path) -> LocalStorage:
    return LocalStorage(tmp_path / "storage")


@pytest.fixture
async def catalog() -> AsyncGenerator[Module4Client, None]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(catalog_handler)) as http:
        yield Module4Client(MemoryCache(), http_client=http, base_url="http://module4.test/api")


@pytest.fixture
async def client(session_factory, dispatcher, storage, catalog) -> AsyncGenerator[AsyncClient, None]:
    """API client; every request gets its own session, like production"""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_module4_client] = lambda: catalog

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Users and companies
# ---------------------------------------------------------------------------

async def make_user(
    session: AsyncSession,
    *,
    verified: bool = False,
    role: UserRole = UserRole.PEMOHON,
) -> User:
    user = User(
        name=fake.name(),
        email=fake.unique.email(),
        password_hash=get_password_hash(PASSWORD),
        ic_no=fake.unique.numerify("############"),
        role=role.value,
        status_verified_person=verified,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def make_company(
    session: AsyncSession,
    owner: User | None = None,
    status: CompanyStatus = CompanyStatus.ACTIVE,
) -> Company:
    company = Company(
        ssm_no=f"SSM-{fake.unique.numerify('######')}",
        name=fake.company(),
        status=status.value,
        owner_user_id=owner.id if owner else None,
    )
    session.add(company)
    await session.commit()
    await session.refresh(company)
    return company


async def bearer_for(session: AsyncSession, user: User) -> dict:
    token, jti, expires_at = create_access_token(user.id)
    session.add(AccessToken(jti=jti, user_id=user.id, name="test", expires_at=expires_at))
    await session.commit()
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def applicant(db_session) -> User:
    """Verified applicant"""
    return await make_user(db_session, verified=True)


@pytest.fixture
async def unverified_user(db_session) -> User:
    return await make_user(db_session, verified=False)


@pytest.fixture
async def admin_user(db_session) -> User:
    return await make_user(db_session, verified=True, role=UserRole.PENTADBIR_SYS)


@pytest.fixture
async def company(db_session, applicant) -> Company:
    return await make_company(db_session, owner=applicant)


@pytest.fixture
async def auth_headers(db_session, applicant) -> dict:
    return await bearer_for(db_session, applicant)


@pytest.fixture
async def admin_auth_headers(db_session, admin_user) -> dict:
    return await bearer_for(db_session, admin_user)


@pytest.fixture
def butiran_operasi() -> dict:
    return {
        "alamat_premis": {
            "alamat_1": fake.street_address(),
            "bandar": "Kuala Lumpur",
            "poskod": "50450",
            "negeri": "Wilayah Persekutuan",
        },
        "nama_perniagaan": fake.company(),
    }
