"""Test factories for party documents and relationship records."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from rapport.friendship.enums import FriendshipStatus
from rapport.friendship.models import RelationshipRecord


class PartyFactory:
    """Factory for creating party documents for testing."""

    @staticmethod
    def create(
        *,
        id: UUID | None = None,
        name: str = "Test Party",
        field_name: str = "friends",
        relationships: list[RelationshipRecord] | None = None,
        **fields: Any,
    ) -> dict[str, Any]:
        """Create a party document with sensible defaults.

        Args:
            id: Party ID (auto-generated if not provided)
            name: Display name
            field_name: Name of the relationship list
            relationships: Records to embed
            **fields: Extra document fields
        """
        return {
            "_id": id or uuid4(),
            "name": name,
            field_name: [r.to_document() for r in relationships or []],
            **fields,
        }


class RelationshipFactory:
    """Factory for creating RelationshipRecord instances for testing."""

    @staticmethod
    def create(
        *,
        peer_id: UUID | None = None,
        status: FriendshipStatus = FriendshipStatus.PENDING,
        created_at: datetime | None = None,
    ) -> RelationshipRecord:
        return RelationshipRecord(
            peer_id=peer_id or uuid4(),
            status=status,
            created_at=created_at or datetime(2024, 1, 1, tzinfo=UTC),
        )
