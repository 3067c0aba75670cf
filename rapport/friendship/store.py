"""PartyStore abstract interface."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from rapport.friendship.enums import FriendshipStatus
from rapport.friendship.models import Document, PartyId, RelationshipRecord, SortSpec


class PartyStore(ABC):
    """Abstract interface for party document storage.

    Party documents are owned by the backend. The store only knows how to
    look them up and how to mutate the relationship list stored under
    `field_name`. Every relationship mutation is atomic within the one
    owning document; nothing spans two documents.

    Filters and projections use MongoDB query syntax.
    """

    def __init__(self, field_name: str = "friends") -> None:
        self._field_name = field_name

    @property
    def field_name(self) -> str:
        """Name of the embedded relationship list."""
        return self._field_name

    @abstractmethod
    async def get_party(
        self,
        party_id: PartyId,
        projection: Mapping[str, Any] | None = None,
    ) -> Document | None:
        """Get a party document by ID."""
        pass

    @abstractmethod
    async def find_parties(
        self,
        filter: Mapping[str, Any],
        projection: Mapping[str, Any] | None = None,
        *,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[Document]:
        """List party documents matching a filter."""
        pass

    @abstractmethod
    async def get_relationship(
        self, owner_id: PartyId, peer_id: PartyId
    ) -> RelationshipRecord | None:
        """Get the owner's record for a peer.

        Raises:
            PartyNotFoundError: If the owner document does not exist
        """
        pass

    @abstractmethod
    async def push_relationship(
        self, owner_id: PartyId, record: RelationshipRecord
    ) -> bool:
        """Append a record to the owner's list.

        A record for the same peer already present is left untouched.

        Returns:
            False if the owner already held a record for the peer

        Raises:
            PartyNotFoundError: If the owner document does not exist
        """
        pass

    @abstractmethod
    async def set_relationship_status(
        self,
        owner_id: PartyId,
        peer_id: PartyId,
        status: FriendshipStatus,
    ) -> RelationshipRecord | None:
        """Set the status of the owner's record for a peer.

        Returns:
            The record as it was before the update, None if the owner has
            no record for the peer

        Raises:
            PartyNotFoundError: If the owner document does not exist
        """
        pass

    @abstractmethod
    async def pull_relationship(self, owner_id: PartyId, peer_id: PartyId) -> None:
        """Remove the owner's record for a peer. Absent records are ignored."""
        pass

    @abstractmethod
    async def ensure_indexes(self) -> None:
        """Create the index on `<field_name>.peer_id` if missing."""
        pass
