"""Friendship domain models.

Relationship records are embedded in party documents, one list per party.
Party documents themselves are plain mappings owned by the store; only
their `_id` and relationship list are interpreted here.
"""

from collections.abc import Hashable, Mapping
from datetime import UTC, datetime
from typing import Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rapport.friendship.enums import FriendshipStatus

PartyId: TypeAlias = Hashable
PartyRef: TypeAlias = PartyId | Mapping[str, Any]
Document: TypeAlias = dict[str, Any]
SortSpec: TypeAlias = list[tuple[str, Literal[1, -1]]]


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


def resolve_party_id(ref: PartyRef) -> PartyId:
    """Reduce a party document or bare identifier to the identifier.

    Raises:
        ValueError: If a document has no `_id`
    """
    if isinstance(ref, Mapping):
        if "_id" not in ref:
            raise ValueError("Party document has no _id")
        return ref["_id"]
    return ref


class RelationshipRecord(BaseModel):
    """One party's stored view of a relationship to a peer."""

    model_config = ConfigDict(frozen=True)

    peer_id: Any = Field(..., description="The other party in the relationship")
    status: FriendshipStatus = Field(..., description="This party's view")
    created_at: datetime = Field(
        default_factory=utc_now, description="Creation time, never mutated"
    )

    def with_status(self, status: FriendshipStatus) -> "RelationshipRecord":
        """Copy of this record with a new status."""
        return self.model_copy(update={"status": status})

    def to_document(self) -> Document:
        """Stored form of the record."""
        return {
            "peer_id": self.peer_id,
            "status": self.status.value,
            "created_at": self.created_at,
        }

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "RelationshipRecord":
        """Build a record from its stored form."""
        return cls(
            peer_id=data["peer_id"],
            status=data["status"],
            created_at=data["created_at"],
        )


class FriendshipPair(BaseModel):
    """Both records after a request, as seen by the requester."""

    model_config = ConfigDict(frozen=True)

    local: RelationshipRecord = Field(..., description="Requester's record for the peer")
    remote: RelationshipRecord = Field(..., description="Peer's record for the requester")


class FriendshipView(BaseModel):
    """A friend of a party together with that party's status toward them."""

    status: FriendshipStatus = Field(..., description="Status from the queried party's side")
    created_at: datetime | None = Field(
        default=None,
        description="When the queried party's record was created, None if it has none",
    )
    friend: Document = Field(..., description="The peer's party document")


class ListOptions(BaseModel):
    """Pass-through options for friend listings.

    Applied to the peer query only, never to the local status lookup.
    """

    sort: SortSpec | None = Field(default=None, description="(field, 1|-1) pairs")
    skip: int = Field(default=0, ge=0, description="Peers to skip")
    limit: int | None = Field(default=None, gt=0, description="Maximum peers returned")
    select: list[str] | dict[str, Any] | None = Field(
        default=None,
        description="Field names to include, or a projection mapping",
    )

    @field_validator("select")
    @classmethod
    def _no_empty_select(cls, value: list[str] | dict[str, Any] | None):
        if value is not None and len(value) == 0:
            return None
        return value
