"""
Pytest fixtures for Workspace Files testing infrastructure.

This module provides:
1. Database fixtures (SQLite via aiosqlite by default, PostgreSQL if configured)
2. App and client fixtures over httpx.ASGITransport
3. Entity seed fixtures
"""

import os

# Set environment variables BEFORE any imports that might load settings
os.environ.setdefault("WORKSPACE_ENVIRONMENT", "testing")
os.environ.setdefault("WORKSPACE_API_KEYS", "")
os.environ.setdefault("WORKSPACE_AGENT_NAME", "test-agent")

from collections.abc import AsyncGenerator
from datetime import timedelta
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from workspace_files.config import clear_settings_cache
from workspace_files.core.auth import Caller
from workspace_files.core.database import get_db, reset_db_state
from workspace_files.core.expiry import utcnow
from workspace_files.models.orm import (
    Base,
    Bug,
    Feature,
    Milestone,
    Project,
    Roadmap,
    SupportTicket,
    TestCase,
    WorkspaceFile,
)
from workspace_files.services.file_ingestion import digest

# ==================== CONFIGURATION ====================

TEST_DATABASE_URL = os.getenv("WORKSPACE_TEST_DATABASE_URL")


# ==================== SESSION FIXTURES ====================


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Make every test see fresh settings and database globals."""
    clear_settings_cache()
    reset_db_state()

    yield

    clear_settings_cache()
    reset_db_state()


# ==================== DATABASE FIXTURES ====================


@pytest_asyncio.fixture
async def async_engine(tmp_path: Path):
    """
    Create an async engine with all tables for one test.

    Uses a throwaway SQLite file unless WORKSPACE_TEST_DATABASE_URL is set.
    NullPool avoids sharing connections across pytest-asyncio event loops.
    """
    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'workspace.db'}"
    engine = create_async_engine(url, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def async_session_factory(async_engine):
    """Create async session factory."""
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(async_session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for each test."""
    async with async_session_factory() as session:
        yield session
        await session.rollback()


# ==================== APP FIXTURES ====================


@pytest.fixture
def app(async_session_factory):
    """FastAPI app whose requests use the test database."""
    from workspace_files.main import create_app

    application = create_app()

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with async_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def caller() -> Caller:
    """The acting agent used by tests."""
    return Caller(agent_name="test-agent")


@pytest_asyncio.fixture
async def client(app, caller: Caller) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Raw HTTP client talking to the app in-process."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://test",
        headers=caller.headers(),
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def workspace_client(app):
    """WorkspaceClient talking to the app in-process."""
    from workspace_files.client import WorkspaceClient

    async with WorkspaceClient(
        "http://test", transport=httpx.ASGITransport(app=app)
    ) as wc:
        yield wc


# ==================== TEST DATA FIXTURES ====================


@pytest_asyncio.fixture
async def project(db_session: AsyncSession) -> Project:
    """Create a committed project."""
    project = Project(name="Workspace")
    db_session.add(project)
    await db_session.commit()
    return project


@pytest_asyncio.fixture
async def bug(db_session: AsyncSession, project: Project) -> Bug:
    """Create a committed bug."""
    bug = Bug(title="Login button does nothing", project_id=project.id)
    db_session.add(bug)
    await db_session.commit()
    return bug


@pytest_asyncio.fixture
async def entities(db_session: AsyncSession, project: Project) -> dict:
    """One committed entity of every kind, keyed by entity type value."""
    records = {
        "bug": Bug(title="Crash on save", project_id=project.id),
        "feature": Feature(title="Dark mode", project_id=project.id),
        "test_case": TestCase(title="Save survives reload", project_id=project.id),
        "support_ticket": SupportTicket(subject="Cannot log in"),
        "milestone": Milestone(title="Beta", project_id=project.id),
        "roadmap": Roadmap(name="2026 H2"),
    }
    db_session.add_all(records.values())
    await db_session.commit()
    return records


@pytest.fixture
def make_file(db_session: AsyncSession):
    """Factory inserting a text file directly, optionally already expired."""

    async def _make(path: str, content: str = "hello", minutes: int = 60, **kwargs):
        raw = content.encode("utf-8")
        checksum, size = digest(raw)
        file = WorkspaceFile(
            path=path,
            filename=path.rsplit("/", 1)[-1],
            content=content,
            base64_encoded=False,
            content_type="text/plain",
            size=size,
            checksum=checksum,
            tags=kwargs.pop("tags", []),
            created_by=kwargs.pop("created_by", "seed-agent"),
            expire_at=utcnow() + timedelta(minutes=minutes),
            **kwargs,
        )
        db_session.add(file)
        await db_session.commit()
        return file

    return _make


# ==================== MARKERS ====================


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, mocked dependencies)")
    config.addinivalue_line(
        "markers", "integration: Integration tests (real database)"
    )
