# app/schemas/relation_schema.py

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class RelationStatus(str, Enum):
    PENDING = "pending"  # Incoming friend request
    REQUESTED = "requested"  # Outgoing friend request
    ACCEPTED = "accepted"
    BLOCKED = "blocked"


# Status each side must hold for a pair to be consistent
PAIRED_STATUS = {
    RelationStatus.REQUESTED: RelationStatus.PENDING,
    RelationStatus.PENDING: RelationStatus.REQUESTED,
    RelationStatus.ACCEPTED: RelationStatus.ACCEPTED,
    RelationStatus.BLOCKED: RelationStatus.BLOCKED,
}


class Relation(BaseModel):
    """One user's view of its link to another user"""
    user_id: int = Field(alias="user")
    status: RelationStatus
    
    model_config = ConfigDict(frozen=True, populate_by_name=True)
    
    def to_document(self) -> dict:
        """Stored form inside the owner's relation list"""
        return {"user": self.user_id, "status": self.status.value}


class RelationMismatch(BaseModel):
    """A relation whose counterpart does not hold the paired status"""
    user_id: int
    counterpart_id: int
    status: RelationStatus
    counterpart_status: Optional[RelationStatus] = None
    dangling: bool = False  # Counterpart no longer exists
    duplicate: bool = False  # More than one entry for the same counterpart
    
    model_config = ConfigDict(frozen=True)
