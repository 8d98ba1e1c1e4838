import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from repairdesk.database.core import Base
from repairdesk.database import models  # noqa: F401
from repairdesk.database.documents import DocumentStore
from repairdesk.services.notification_service import NotificationService
from repairdesk.services.paths import TenantPaths


@pytest_asyncio.fixture
async def session_factory():
    # In-memory SQLite shared by every session of the test
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def store(session_factory):
    return DocumentStore(session_factory)


@pytest.fixture
def paths():
    return TenantPaths("test-app", "1001")


@pytest.fixture
def notifier():
    return NotificationService()
