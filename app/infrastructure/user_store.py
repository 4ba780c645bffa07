# app/infrastructure/user_store.py

import logging
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified
from models.user import User
from exceptions.domain_exceptions import PersistenceException

logger = logging.getLogger(__name__)


class UserStore:
    """Point lookups and saves of user documents"""
    
    @staticmethod
    async def find_by_id(session: AsyncSession, user_id: int) -> Optional[User]:
        """
        Look up a user by id
        
        Returns the instance already tracked by the session when there is one,
        so both sides of a relation are always the same objects.
        """
        return await session.get(User, user_id)
    
    @staticmethod
    async def save(session: AsyncSession, user: User) -> User:
        """
        Persist a user document
        
        Raises:
            PersistenceException: If the write fails. Nothing is retried and
                writes committed before this one are left as they are.
        """
        user_id = user.id
        # Entries are mutated in place, so the JSON column must be flagged
        flag_modified(user, "relations")
        session.add(user)
        try:
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Failed to save user {user_id}: {e}")
            raise PersistenceException(
                message="Failed to save user",
                details={"user_id": user_id}
            ) from e
        return user
    
    @staticmethod
    async def create_user(session: AsyncSession, nickname: str) -> User:
        """Create a user with an empty relation list"""
        user = User(nickname=nickname, relations=[])
        session.add(user)
        try:
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Failed to create user '{nickname}': {e}")
            raise PersistenceException(
                message="Failed to create user",
                details={"nickname": nickname}
            ) from e
        await session.refresh(user)
        return user
