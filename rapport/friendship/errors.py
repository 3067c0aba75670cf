"""Exception classes for friendship operations.

Only RelationshipConflictError is retried internally, by the request
orchestrator. Every mutating operation is idempotent, so callers may retry
any of them.
"""

from typing import Any, Literal

Side = Literal["local", "remote", "a", "b"]


class FriendshipError(Exception):
    """Base class for friendship errors."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


class PartyNotFoundError(FriendshipError):
    """Raised when the owning party document does not exist."""

    def __init__(self, party_id: Any, cause: BaseException | None = None) -> None:
        self.party_id = party_id
        super().__init__(f"Party not found: {party_id!r}", cause=cause)


class FriendshipNotFoundError(FriendshipError):
    """Raised when a specific relationship was expected but is absent."""

    def __init__(self, party_id: Any, peer_id: Any) -> None:
        self.party_id = party_id
        self.peer_id = peer_id
        super().__init__(f"No friendship between {party_id!r} and {peer_id!r}")


class RelationshipConflictError(FriendshipError):
    """Raised when a record was created for the same pair by a concurrent write.

    The record this call meant to create was not written. Re-reading both
    sides and resolving again converges.
    """

    def __init__(self, owner_id: Any, peer_id: Any) -> None:
        self.owner_id = owner_id
        self.peer_id = peer_id
        super().__init__(
            f"Relationship from {owner_id!r} to {peer_id!r} was created concurrently"
        )


class PersistenceError(FriendshipError):
    """Raised by a store when the backend fails (network, timeout, constraint)."""


class PartialWriteFailure(FriendshipError):
    """One of two fanned-out writes failed while the other succeeded.

    The two party documents share no transaction, so the succeeded write
    stays applied. `failed` and `succeeded` name the owning party ids.
    """

    def __init__(
        self,
        *,
        operation: str,
        failed_side: Side,
        failed: Any,
        succeeded: Any,
        cause: BaseException,
    ) -> None:
        self.operation = operation
        self.failed_side = failed_side
        self.failed = failed
        self.succeeded = succeeded
        super().__init__(
            f"{operation}: write to {failed_side} party {failed!r} failed "
            f"after write to {succeeded!r} succeeded: {cause}",
            cause=cause,
        )
