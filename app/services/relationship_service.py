# app/services/relationship_service.py

import logging
from typing import List, Optional, Tuple, Union
from sqlalchemy.ext.asyncio import AsyncSession
from models.user import User
from infrastructure.user_store import UserStore
from schemas.relation_schema import Relation, RelationMismatch, RelationStatus, PAIRED_STATUS
from exceptions.domain_exceptions import ValidationException

logger = logging.getLogger(__name__)

# A user document or its id
UserRef = Union[User, int]


def _ref_id(ref: UserRef) -> int:
    return ref.id if isinstance(ref, User) else ref


def _coerce_status(status: Union[RelationStatus, str]) -> RelationStatus:
    try:
        return RelationStatus(status)
    except ValueError:
        raise ValidationException(
            message="Invalid relation status",
            details={"status": status, "allowed": [s.value for s in RelationStatus]}
        )


def _entries(user: User) -> list:
    return user.relations if user.relations is not None else []


def _writable_entries(user: User) -> list:
    if user.relations is None:
        user.relations = []
    return user.relations


def _find_entry(user: User, counterpart_id: int) -> Optional[dict]:
    for entry in _entries(user):
        if entry["user"] == counterpart_id:
            return entry
    return None


def _drop_entries(user: User, counterpart_id: int) -> bool:
    """Remove every entry pointing at counterpart_id, return whether any was removed"""
    entries = _entries(user)
    kept = [entry for entry in entries if entry["user"] != counterpart_id]
    if len(kept) == len(entries):
        return False
    entries[:] = kept
    return True


class RelationshipService:
    """
    Friend requests, friendships and blocks between users.

    Every user keeps its own relation list. A two-sided operation writes one
    side and then the other as two separate commits; a failure in between is
    not rolled back and leaves the pair inconsistent.
    """

    @staticmethod
    async def resolve_user(session: AsyncSession, ref: UserRef) -> Optional[User]:
        """
        Turn a user reference into a user document

        Args:
            session: Database session
            ref: User document or user id

        Returns:
            The user, or None if the id does not exist
        """
        if isinstance(ref, User):
            return ref
        return await UserStore.find_by_id(session, ref)

    @staticmethod
    def get_relations(user: User) -> Tuple[Relation, ...]:
        """Snapshot of all relations of a user, in insertion order"""
        return tuple(Relation.model_validate(entry) for entry in _entries(user))

    @staticmethod
    def get_relation(user: User, counterpart: UserRef) -> Optional[Relation]:
        """Relation from user to counterpart, or None if there is none"""
        entry = _find_entry(user, _ref_id(counterpart))
        if entry is None:
            return None
        return Relation.model_validate(entry)

    @staticmethod
    async def add_relation(
        session: AsyncSession,
        user: User,
        counterpart: UserRef,
        status: Union[RelationStatus, str]
    ) -> Optional[Relation]:
        """
        Create a relation from user to counterpart if there is none yet

        An existing relation is returned unchanged, its status is never
        overwritten. Two concurrent calls for the same pair can both append.

        Returns:
            The new or existing relation, None if counterpart does not exist

        Raises:
            ValidationException: If status is not a relation status
        """
        status = _coerce_status(status)
        counterpart_doc = await RelationshipService.resolve_user(session, counterpart)
        if counterpart_doc is None:
            logger.debug(f"add_relation: user {_ref_id(counterpart)} not found")
            return None

        if _find_entry(user, counterpart_doc.id) is None:
            _writable_entries(user).append(Relation(user=counterpart_doc.id, status=status).to_document())
            await UserStore.save(session, user)
        return RelationshipService.get_relation(user, counterpart_doc)

    @staticmethod
    async def update_relation(
        session: AsyncSession,
        user: User,
        counterpart: UserRef,
        status: Union[RelationStatus, str]
    ) -> Optional[Relation]:
        """
        Set the status of an existing relation from user to counterpart

        Returns:
            The updated relation, None (and no write) if there is none
        """
        status = _coerce_status(status)
        entry = _find_entry(user, _ref_id(counterpart))
        if entry is None:
            return None
        entry["status"] = status.value
        await UserStore.save(session, user)
        return Relation.model_validate(entry)

    @staticmethod
    async def remove_relation(session: AsyncSession, user: User, counterpart: UserRef) -> bool:
        """
        Remove the relation between two users on both sides

        Each side that changed is saved on its own.

        Returns:
            True if an entry was removed on either side, False if counterpart
            does not exist or neither side held an entry
        """
        counterpart_doc = await RelationshipService.resolve_user(session, counterpart)
        if counterpart_doc is None:
            logger.debug(f"remove_relation: user {_ref_id(counterpart)} not found")
            return False

        removed_own = _drop_entries(user, counterpart_doc.id)
        if removed_own:
            await UserStore.save(session, user)
        removed_back = _drop_entries(counterpart_doc, user.id)
        if removed_back:
            await UserStore.save(session, counterpart_doc)
        return removed_own or removed_back

    @staticmethod
    async def _force_status(
        session: AsyncSession,
        user: User,
        counterpart: User,
        status: RelationStatus
    ) -> Optional[Relation]:
        relation = await RelationshipService.update_relation(session, user, counterpart, status)
        if relation is None:
            relation = await RelationshipService.add_relation(session, user, counterpart, status)
        return relation

    @staticmethod
    async def request_friend(session: AsyncSession, user: User, counterpart: UserRef) -> Optional[Relation]:
        """
        Send a friend request, or accept one if counterpart already sent one

        - No relation: user gets "requested", counterpart gets "pending"
        - User's relation is "pending": both sides become "accepted"
        - Any other status: nothing changes

        Args:
            session: Database session
            user: User sending (or accepting) the request
            counterpart: Other user, document or id

        Returns:
            User's relation to counterpart, None if counterpart does not exist
        """
        counterpart_doc = await RelationshipService.resolve_user(session, counterpart)
        if counterpart_doc is None:
            logger.debug(f"request_friend: user {_ref_id(counterpart)} not found")
            return None
        if counterpart_doc.id == user.id:
            logger.debug(f"request_friend: user {user.id} cannot befriend itself")
            return None

        relation = RelationshipService.get_relation(user, counterpart_doc)
        if relation is None:
            relation = await RelationshipService.add_relation(session, user, counterpart_doc, RelationStatus.REQUESTED)
            await RelationshipService.add_relation(session, counterpart_doc, user, RelationStatus.PENDING)
            logger.info(f"User {user.id} sent a friend request to user {counterpart_doc.id}")
            return relation

        if relation.status == RelationStatus.PENDING:
            relation = await RelationshipService.update_relation(session, user, counterpart_doc, RelationStatus.ACCEPTED)
            await RelationshipService.update_relation(session, counterpart_doc, user, RelationStatus.ACCEPTED)
            logger.info(f"User {user.id} accepted the friend request of user {counterpart_doc.id}")
            return relation

        logger.debug(f"request_friend: relation {user.id} -> {counterpart_doc.id} is already {relation.status.value}")
        return relation

    accept_friend = request_friend
    add_friend = request_friend

    @staticmethod
    async def remove_friend(session: AsyncSession, user: User, counterpart: UserRef) -> None:
        """
        Remove a friend or deny an incoming friend request

        Only "pending" and "accepted" relations are removed, on both sides.
        Outgoing requests and blocks are left untouched.
        """
        relation = RelationshipService.get_relation(user, counterpart)
        if relation is None or relation.status not in (RelationStatus.PENDING, RelationStatus.ACCEPTED):
            logger.debug(f"remove_friend: nothing to remove between {user.id} and {_ref_id(counterpart)}")
            return
        if not await RelationshipService.remove_relation(session, user, counterpart):
            logger.debug(f"remove_friend: user {_ref_id(counterpart)} not found, relation left in place")
            return
        logger.info(f"User {user.id} removed {relation.status.value} relation with user {relation.user_id}")

    deny_friend = remove_friend

    @staticmethod
    async def block_user(session: AsyncSession, user: User, counterpart: UserRef) -> Optional[Relation]:
        """
        Block a user

        Any existing relation is overwritten with "blocked" on both sides,
        otherwise a "blocked" relation is created on both sides.

        Returns:
            User's relation to counterpart, None if counterpart does not exist
        """
        counterpart_doc = await RelationshipService.resolve_user(session, counterpart)
        if counterpart_doc is None:
            logger.debug(f"block_user: user {_ref_id(counterpart)} not found")
            return None
        if counterpart_doc.id == user.id:
            logger.debug(f"block_user: user {user.id} cannot block itself")
            return None

        if RelationshipService.get_relation(user, counterpart_doc) is not None:
            relation = await RelationshipService.update_relation(session, user, counterpart_doc, RelationStatus.BLOCKED)
        else:
            relation = await RelationshipService.add_relation(session, user, counterpart_doc, RelationStatus.BLOCKED)
        await RelationshipService._force_status(session, counterpart_doc, user, RelationStatus.BLOCKED)

        logger.info(f"User {user.id} blocked user {counterpart_doc.id}")
        return relation

    @staticmethod
    async def unblock_user(session: AsyncSession, user: User, counterpart: UserRef) -> None:
        """
        Unblock a user

        The relation is removed on both sides; nothing from before the block
        is restored.
        """
        relation = RelationshipService.get_relation(user, counterpart)
        if relation is None or relation.status != RelationStatus.BLOCKED:
            logger.debug(f"unblock_user: user {_ref_id(counterpart)} is not blocked by {user.id}")
            return
        if not await RelationshipService.remove_relation(session, user, counterpart):
            logger.debug(f"unblock_user: user {_ref_id(counterpart)} not found, relation left in place")
            return
        logger.info(f"User {user.id} unblocked user {relation.user_id}")

    @staticmethod
    def _with_status(user: User, status: RelationStatus) -> List[Relation]:
        return [relation for relation in RelationshipService.get_relations(user) if relation.status == status]

    @staticmethod
    def get_requested(user: User) -> List[Relation]:
        """Outgoing friend requests"""
        return RelationshipService._with_status(user, RelationStatus.REQUESTED)

    @staticmethod
    def get_pending(user: User) -> List[Relation]:
        """Incoming friend requests"""
        return RelationshipService._with_status(user, RelationStatus.PENDING)

    @staticmethod
    def get_accepted(user: User) -> List[Relation]:
        return RelationshipService._with_status(user, RelationStatus.ACCEPTED)

    get_friends = get_accepted

    @staticmethod
    def get_blocked(user: User) -> List[Relation]:
        return RelationshipService._with_status(user, RelationStatus.BLOCKED)

    @staticmethod
    async def check_consistency(session: AsyncSession, user: User) -> List[RelationMismatch]:
        """
        Compare each of the user's relations with the counterpart's view

        Reports relations whose counterpart does not hold the paired status,
        relations to users that no longer exist, and repeated entries for the
        same counterpart. Nothing is modified.

        Args:
            session: Database session
            user: User whose relations are checked

        Returns:
            List of mismatches, empty when every pair is consistent
        """
        mismatches = []
        seen = set()
        for relation in RelationshipService.get_relations(user):
            if relation.user_id in seen:
                mismatches.append(RelationMismatch(
                    user_id=user.id,
                    counterpart_id=relation.user_id,
                    status=relation.status,
                    duplicate=True
                ))
                continue
            seen.add(relation.user_id)

            counterpart_doc = await UserStore.find_by_id(session, relation.user_id)
            if counterpart_doc is None:
                mismatches.append(RelationMismatch(
                    user_id=user.id,
                    counterpart_id=relation.user_id,
                    status=relation.status,
                    dangling=True
                ))
                continue

            back = RelationshipService.get_relation(counterpart_doc, user)
            if back is None or back.status != PAIRED_STATUS[relation.status]:
                mismatches.append(RelationMismatch(
                    user_id=user.id,
                    counterpart_id=relation.user_id,
                    status=relation.status,
                    counterpart_status=back.status if back else None
                ))

        for mismatch in mismatches:
            logger.warning(
                f"Inconsistent relation {mismatch.user_id} -> {mismatch.counterpart_id}: "
                f"{mismatch.status.value} vs {mismatch.counterpart_status.value if mismatch.counterpart_status else None} "
                f"(dangling={mismatch.dangling}, duplicate={mismatch.duplicate})"
            )
        return mismatches
