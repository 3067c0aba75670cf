"""Enums for the friendship domain."""

from enum import Enum


class FriendshipStatus(str, Enum):
    """One party's view of a pairwise relationship.

    Both sides hold ACCEPTED once a friendship is confirmed. While a request
    is outstanding the requester holds REQUESTED and the recipient PENDING.
    """

    PENDING = "pending"
    REQUESTED = "requested"
    ACCEPTED = "accepted"

    def mirrored(self) -> "FriendshipStatus":
        """Status the peer's record holds for the same relationship."""
        if self is FriendshipStatus.PENDING:
            return FriendshipStatus.REQUESTED
        if self is FriendshipStatus.REQUESTED:
            return FriendshipStatus.PENDING
        return self


class WriteAction(str, Enum):
    """What the request orchestrator does to one side's record."""

    SKIP = "skip"
    CREATE = "create"
    UPDATE = "update"
