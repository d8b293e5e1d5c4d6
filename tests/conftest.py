"""
Scriptly Backend — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Services are tested against a real (in-memory SQLite) database so
       relationship loading, flush ordering and bulk statements are
       exercised for real rather than mocked.
How:   Every test gets a fresh schema on a private in-memory database.
       pytest auto-discovers conftest.py and makes fixtures available to
       all tests.

Fixture Hierarchy (all function-scoped):
    db_engine ─── session_factory ─┬── db_session ─── make_user, make_chapter,
                                   │                  make_category
                                   └── api_client (get_db_session overridden)
                                       seed_user (commits, returns user + token)
"""

import os

# Override settings for testing BEFORE any scriptly imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-not-for-production"
os.environ["BCRYPT_ROUNDS"] = "4"  # Fast hashing; rounds do not matter for behaviour
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests
os.environ.pop("ADMIN_EMAIL", None)
os.environ.pop("ADMIN_PASSWORD", None)

from typing import Optional, Tuple  # noqa: E402

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import scriptly.models  # noqa: E402,F401  (registers every table)
from scriptly.database import Base, get_db_session  # noqa: E402
from scriptly.models.category import Category  # noqa: E402
from scriptly.models.chapter import Chapter  # noqa: E402
from scriptly.models.enums import Role  # noqa: E402
from scriptly.models.user import User  # noqa: E402
from scriptly.services.security import create_access_token, hash_password  # noqa: E402

DEFAULT_PASSWORD = "secret123"


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    A private in-memory database with the full schema.

    StaticPool keeps the single connection alive, otherwise each new
    connection would see an empty in-memory database.
    """
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """
    Session for service-level tests.

    Services never commit, so a test sees its own writes through flushes
    exactly as a request handler would.
    """
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Factories (service tests)
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def make_user(db_session):
    """
    Creates users in db_session.

    Usage:
        bob = await make_user("Bob")
        lead = await make_user("Lena", role=Role.CHAPTER_LEAD, chapter=alpha)
    """
    async def _make(
        name: str,
        role: Role = Role.STUDENT,
        chapter: Optional[Chapter] = None,
        email: Optional[str] = None,
        password: str = DEFAULT_PASSWORD,
    ) -> User:
        user = User(
            name=name,
            email=email or f"{name.lower()}@example.com",
            password_hash=hash_password(password),
            role=role,
            chapter_id=chapter.id if chapter is not None else None,
            vouch_count=0,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make


@pytest_asyncio.fixture
async def make_chapter(db_session):
    async def _make(name: str, lead: Optional[User] = None) -> Chapter:
        chapter = Chapter(name=name, description=f"{name} chapter")
        db_session.add(chapter)
        await db_session.flush()
        if lead is not None:
            # Both sides of the link, as the lead-assignment path leaves them
            chapter.chapter_lead_id = lead.id
            lead.chapter_id = chapter.id
            await db_session.flush()
        return chapter

    return _make


@pytest_asyncio.fixture
async def make_category(db_session):
    async def _make(name: str = "python") -> Category:
        category = Category(name=name, description="")
        db_session.add(category)
        await db_session.flush()
        return category

    return _make


# ══════════════════════════════════════════════════════════════════════════
# HTTP (API tests)
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def api_client(session_factory):
    """
    HTTPX AsyncClient talking to the FastAPI app in-process.

    get_db_session is overridden with the same commit / rollback contract
    as production, bound to the test database.

    Usage:
        async def test_health(api_client):
            response = await api_client.get("/health")
            assert response.status_code == 200
    """
    from scriptly.main import app

    async def _test_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _test_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def seed_user(session_factory):
    """
    Commits a user straight to the database and returns (user, token).

    For accounts the public API cannot create (admins, chapter leads).
    """
    async def _seed(name: str, role: Role = Role.STUDENT) -> Tuple[User, str]:
        async with session_factory() as session:
            user = User(
                name=name,
                email=f"{name.lower()}@example.com",
                password_hash=hash_password(DEFAULT_PASSWORD),
                role=role,
                vouch_count=0,
            )
            session.add(user)
            await session.commit()
        return user, create_access_token(user.id, user.role)

    return _seed
