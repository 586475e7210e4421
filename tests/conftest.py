"""
Shared fixtures for the API tests

Each test gets its own sqlite database with the default roles,
permissions and admin seeded, plus a manager, a viewer and an
inactive user. The challan pipeline is replaced by a stub.
"""

import asyncio
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("BULK_UPLOAD_DELAY_SECONDS", "0")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from challan_dashboard.core.pipeline_client import PipelineError
from challan_dashboard.core.security import create_access_token, get_password_hash
from challan_dashboard.database import Base, get_db
from challan_dashboard.main import app
from challan_dashboard.models.user import Role, User, UserStatus
from challan_dashboard.scripts.seed_data import seed_defaults
from challan_dashboard.api.v1.challan import get_pipeline_client


TEST_PASSWORD = "secret123"


# ============================================
# Database
# ============================================

@pytest.fixture
def engine(tmp_path):
    """Fresh sqlite database per test"""
    return create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
def users(engine, session_factory):
    """Seed defaults and extra users, returns their ids by role name"""

    async def setup():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        async with session_factory() as db:
            await seed_defaults(db)
            result = await db.execute(select(Role))
            roles = {role.name: role for role in result.scalars().all()}

            extra = [
                User(email="manager@fitstok.com", name="Manager", role_id=roles["manager"].id,
                     password_hash=get_password_hash(TEST_PASSWORD), status=UserStatus.ACTIVE),
                User(email="viewer@fitstok.com", name="Viewer", role_id=roles["viewer"].id,
                     password_hash=get_password_hash(TEST_PASSWORD), status=UserStatus.ACTIVE),
                User(email="inactive@fitstok.com", name="Inactive", role_id=roles["viewer"].id,
                     password_hash=get_password_hash(TEST_PASSWORD), status=UserStatus.INACTIVE),
            ]
            db.add_all(extra)
            await db.commit()

            result = await db.execute(select(User))
            return {user.email.split("@")[0]: user.id for user in result.scalars().all()}

    return asyncio.run(setup())


# ============================================
# Client
# ============================================

class StubPipelineClient:
    """Stands in for the external challan pipeline"""

    def __init__(self):
        self.records = []
        self.fetch_error = None
        self.search_error = None
        self.searches = []

    async def fetch_database(self):
        if self.fetch_error:
            raise self.fetch_error
        return self.records

    async def trigger_search(self, search):
        self.searches.append(search)
        if self.search_error:
            raise self.search_error
        return {"success": True, "regNumber": search.regNumber}


@pytest.fixture
def pipeline():
    return StubPipelineClient()


@pytest.fixture
def client(session_factory, users, pipeline):
    """TestClient bound to the per-test database and the stub pipeline"""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_pipeline_client] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user_id):
    return {"Authorization": f"Bearer {create_access_token(data={'sub': str(user_id)})}"}


@pytest.fixture
def admin_headers(users):
    return auth_headers(users["admin"])


@pytest.fixture
def manager_headers(users):
    return auth_headers(users["manager"])


@pytest.fixture
def viewer_headers(users):
    return auth_headers(users["viewer"])


@pytest.fixture
def pipeline_down():
    return PipelineError("Failed to fetch bike challan database", status_code=500)


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def password():
    return TEST_PASSWORD
