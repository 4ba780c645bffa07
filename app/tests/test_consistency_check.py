"""
Unit tests for RelationshipService.check_consistency
"""
import logging
import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from models.user import User
from infrastructure.user_store import UserStore
from schemas.relation_schema import RelationStatus
from services.relationship_service import RelationshipService


@pytest.mark.unit
class TestCheckConsistency:
    """Test cases for check_consistency method"""
    
    async def test_consistent_pairs(self, db_session: AsyncSession, john: User, jane: User, jack: User, jill: User):
        """Pairs produced by the protocol are consistent"""
        await RelationshipService.request_friend(db_session, john, jane)
        await RelationshipService.request_friend(db_session, jack, john)
        await RelationshipService.accept_friend(db_session, john, jack)
        await RelationshipService.block_user(db_session, jill, john)
        
        assert await RelationshipService.check_consistency(db_session, john) == []
        assert await RelationshipService.check_consistency(db_session, jill) == []
    
    async def test_missing_counterpart_entry(self, db_session: AsyncSession, john: User, jane: User):
        """A one-sided relation is reported"""
        await RelationshipService.add_relation(db_session, john, jane, RelationStatus.REQUESTED)
        
        mismatches = await RelationshipService.check_consistency(db_session, john)
        
        assert len(mismatches) == 1
        assert mismatches[0].counterpart_id == jane.id
        assert mismatches[0].status == RelationStatus.REQUESTED
        assert mismatches[0].counterpart_status is None
        assert not mismatches[0].dangling
    
    async def test_mismatched_statuses(self, db_session: AsyncSession, john: User, jane: User, caplog):
        """Statuses that do not pair up are reported and logged"""
        await RelationshipService.add_relation(db_session, john, jane, RelationStatus.ACCEPTED)
        await RelationshipService.add_relation(db_session, jane, john, RelationStatus.PENDING)
        
        with caplog.at_level(logging.WARNING, logger="services.relationship_service"):
            mismatches = await RelationshipService.check_consistency(db_session, john)
        
        assert len(mismatches) == 1
        assert mismatches[0].counterpart_status == RelationStatus.PENDING
        assert "Inconsistent relation" in caplog.text
        # Reading does not repair anything
        assert RelationshipService.get_relation(john, jane).status == RelationStatus.ACCEPTED
        assert RelationshipService.get_relation(jane, john).status == RelationStatus.PENDING
    
    async def test_dangling_reference(self, db_session: AsyncSession, john: User):
        """A relation to a deleted user is reported as dangling"""
        john.relations.append({"user": 424242, "status": "accepted"})
        await UserStore.save(db_session, john)
        
        mismatches = await RelationshipService.check_consistency(db_session, john)
        
        assert len(mismatches) == 1
        assert mismatches[0].dangling
        assert mismatches[0].counterpart_id == 424242
    
    async def test_duplicate_entries(self, db_session: AsyncSession, john: User, jane: User):
        """Repeated entries for one counterpart are reported"""
        await RelationshipService.request_friend(db_session, john, jane)
        john.relations.append({"user": jane.id, "status": "requested"})
        await UserStore.save(db_session, john)
        
        mismatches = await RelationshipService.check_consistency(db_session, john)
        
        assert len(mismatches) == 1
        assert mismatches[0].duplicate
    
    async def test_remove_relation_clears_duplicates(self, db_session: AsyncSession, john: User, jane: User):
        """Removal drops every entry for the counterpart"""
        await RelationshipService.request_friend(db_session, john, jane)
        john.relations.append({"user": jane.id, "status": "requested"})
        await UserStore.save(db_session, john)
        
        await RelationshipService.remove_relation(db_session, john, jane)
        
        assert john.relations == []
        assert jane.relations == []
