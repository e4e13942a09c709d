"""Shared fixtures for Beautify Web tests."""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from beautify_web import config
from beautify_web.schemas import Base
from beautify_web.services.job_service import JobService
from beautify_web.services.processor import JobProcessor
from beautify_web.services.supervisor import JobSupervisor
from beautify_web.services.task_runner import TaskRunner

from .helpers import FakeGateway


@pytest.fixture
def temp_storage(tmp_path, monkeypatch):
    """Create temporary storage directory."""
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    (storage_dir / "results").mkdir()
    monkeypatch.setattr(config.settings, "storage_dir", storage_dir)
    return storage_dir


@pytest_asyncio.fixture
async def session_factory(temp_storage):
    """Session factory bound to a fresh test database."""
    db_path = temp_storage / "test.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def test_db(session_factory):
    """Create test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(test_db):
    return JobService(test_db)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def supervisor():
    return JobSupervisor()


@pytest_asyncio.fixture
async def processor(session_factory, supervisor, gateway):
    processor = JobProcessor(
        session_factory,
        supervisor,
        TaskRunner(gateway),
        task_delay=0,
    )
    yield processor
    await processor.shutdown()
