"""Rapport: two-sided friendships embedded in party documents."""

from rapport.friendship import (
    FriendshipService,
    FriendshipStatus,
    PartyFriendships,
)

__version__ = "0.1.0"

__all__ = [
    "FriendshipService",
    "FriendshipStatus",
    "PartyFriendships",
    "__version__",
]
