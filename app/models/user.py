# app/models/user.py

from sqlalchemy import Index, Integer, JSON, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from config.settings import settings
from infrastructure.postgres_connection import Base


# JSONB on PostgreSQL so the relation list can carry a GIN index
RelationListType = JSON().with_variant(JSONB(), "postgresql")


class User(Base):
    """User document holding its own list of relations to other users"""
    __tablename__ = "users"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    nickname: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    
    # Each entry: {"user": <counterpart id>, "status": <RelationStatus value>}
    relations: Mapped[list] = mapped_column(
        settings.RELATIONS_FIELD_NAME,
        RelationListType,
        nullable=False,
        default=list,
    )
    
    def __repr__(self):
        return f"<User(id={self.id}, nickname='{self.nickname}', relations={len(self.relations or [])})>"


if settings.RELATIONS_INDEX:
    Index(f"ix_users_{settings.RELATIONS_FIELD_NAME}", User.relations, postgresql_using="gin")
