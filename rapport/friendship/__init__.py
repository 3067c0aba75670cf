"""Friendship domain.

Two-sided friendships stored as one relationship record on each party's
document:
- FriendshipService for requests, listings and removals
- PartyStore adapters for the party documents
- Models, statuses and errors
"""

from rapport.friendship.enums import FriendshipStatus, WriteAction
from rapport.friendship.errors import (
    FriendshipError,
    FriendshipNotFoundError,
    PartialWriteFailure,
    PartyNotFoundError,
    PersistenceError,
    RelationshipConflictError,
)
from rapport.friendship.models import (
    FriendshipPair,
    FriendshipView,
    ListOptions,
    PartyId,
    PartyRef,
    RelationshipRecord,
    resolve_party_id,
)
from rapport.friendship.service import FriendshipService, PartyFriendships
from rapport.friendship.store import PartyStore

__all__ = [
    # Enums
    "FriendshipStatus",
    "WriteAction",
    # Errors
    "FriendshipError",
    "FriendshipNotFoundError",
    "PartialWriteFailure",
    "PartyNotFoundError",
    "PersistenceError",
    "RelationshipConflictError",
    # Models
    "FriendshipPair",
    "FriendshipView",
    "ListOptions",
    "PartyId",
    "PartyRef",
    "RelationshipRecord",
    "resolve_party_id",
    # Service
    "FriendshipService",
    "PartyFriendships",
    "PartyStore",
]
