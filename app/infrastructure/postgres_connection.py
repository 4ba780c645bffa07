# app/infrastructure/postgres_connection.py

import logging
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy import text
from config.settings import settings

logger = logging.getLogger(__name__)


# Base class for SQLAlchemy models
Base = declarative_base()


class PostgresConnection:
    """Simple database connection manager using SQLAlchemy"""

    def __init__(self):
        self.engine: AsyncEngine | None = None
        self.session_factory: async_sessionmaker[AsyncSession] | None = None

    async def connect(self, database_url: str | None = None):
        """Connect to the configured database"""
        if self.engine is not None:
            return  # Already connected

        url = database_url or settings.DATABASE_URL
        engine_options = {
            "echo": settings.DEBUG,  # Log SQL queries in debug mode
            "pool_pre_ping": True,  # Verify connections before using them
        }
        if url.startswith("postgresql"):
            engine_options.update(pool_size=10, max_overflow=20)

        try:
            self.engine = create_async_engine(url, **engine_options)

            # Create session factory
            self.session_factory = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
            # Test connection
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))

            logger.info(f"Connected to database at {self.engine.url.render_as_string(hide_password=True)}")
        except Exception as e:
            logger.error(f"Failed to connect to database: {e}")
            self.engine = None
            self.session_factory = None
            raise

    async def disconnect(self):
        """Disconnect from the database"""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None
            logger.info("Disconnected from database")

    async def create_tables(self):
        """Create all tables registered on Base.metadata"""
        # Register models with Base
        import models  # noqa: F401

        async with self.get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    def get_engine(self) -> AsyncEngine:
        """Get the SQLAlchemy async engine instance"""
        if not self.engine:
            raise RuntimeError("Database engine is not connected. Call connect() first.")
        return self.engine

    def get_session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get the session factory for creating database sessions"""
        if not self.session_factory:
            raise RuntimeError("Database session factory is not initialized. Call connect() first.")
        return self.session_factory


# Shared instance
postgres_connection = PostgresConnection()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory for creating database sessions"""
    return postgres_connection.get_session_factory()


async def get_db_session() -> AsyncSession:
    """
    Yield a database session, committing on success and rolling back on error.

    Usage:
        async for session in get_db_session():
            user = await UserStore.find_by_id(session, user_id)
            await RelationshipService.request_friend(session, user, other_id)
    """
    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
