"""
Pytest configuration and fixtures for testing
"""
import os
import pytest
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool
from infrastructure.postgres_connection import Base
from models.user import User
from infrastructure.user_store import UserStore


# Test database URL - using file-based SQLite to avoid in-memory connection issues
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"


@pytest.fixture(scope="function")
async def db_engine():
    """Create a test database engine"""
    # Import all models to ensure they're registered with Base.metadata
    from models.user import User  # noqa: F401
    
    # Remove test database if it exists
    if os.path.exists("./test.db"):
        os.remove("./test.db")
    
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=NullPool,
    )
    
    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    yield engine
    
    # Drop tables and close
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    
    await engine.dispose()
    
    # Remove test database file
    if os.path.exists("./test.db"):
        os.remove("./test.db")


@pytest.fixture(scope="function")
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine"""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session"""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def john(db_session: AsyncSession) -> User:
    """Create test user John"""
    return await UserStore.create_user(db_session, "John")


@pytest.fixture
async def jane(db_session: AsyncSession) -> User:
    """Create test user Jane"""
    return await UserStore.create_user(db_session, "Jane")


@pytest.fixture
async def jack(db_session: AsyncSession) -> User:
    """Create test user Jack"""
    return await UserStore.create_user(db_session, "Jack")


@pytest.fixture
async def jill(db_session: AsyncSession) -> User:
    """Create test user Jill"""
    return await UserStore.create_user(db_session, "Jill")


@pytest.fixture
def load_user(session_factory):
    """
    Load a user through a separate session, so assertions see what was
    actually committed rather than the in-memory document.
    """
    async def _load(user_id: int) -> User:
        async with session_factory() as session:
            return await session.get(User, user_id)
    return _load
