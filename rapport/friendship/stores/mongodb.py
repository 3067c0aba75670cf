"""MongoDB implementation of PartyStore.

Uses the PyMongo asyncio API. Each relationship mutation is a single-document
update, so it is atomic for the owning party without any transaction.
"""

from collections.abc import Mapping
from typing import Any

from pymongo import ASCENDING, ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from rapport.friendship.enums import FriendshipStatus
from rapport.friendship.errors import PartyNotFoundError, PersistenceError
from rapport.friendship.models import Document, PartyId, RelationshipRecord, SortSpec
from rapport.friendship.store import PartyStore
from rapport.observability.logging import get_logger

logger = get_logger(__name__)


class MongoPartyStore(PartyStore):
    """MongoDB implementation of PartyStore.

    Operates on an existing collection of party documents. The collection
    and its client are owned by the caller.
    """

    def __init__(self, collection: AsyncCollection, field_name: str = "friends") -> None:
        """Initialize with a party collection.

        Args:
            collection: Collection holding party documents
            field_name: Name of the embedded relationship list
        """
        super().__init__(field_name)
        self._collection = collection

    @property
    def index_name(self) -> str:
        return f"{self.field_name}_peer_id"

    async def get_party(
        self,
        party_id: PartyId,
        projection: Mapping[str, Any] | None = None,
    ) -> Document | None:
        """Get a party document by ID."""
        try:
            return await self._collection.find_one({"_id": party_id}, projection)
        except PyMongoError as e:
            logger.error("mongodb_get_party_error", party_id=str(party_id), error=str(e))
            raise PersistenceError(f"Failed to get party: {e}", cause=e) from e

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
        try:
            cursor = self._collection.find(
                filter,
                projection,
                sort=sort or None,
                skip=skip,
                limit=limit or 0,
            )
            return await cursor.to_list()
        except PyMongoError as e:
            logger.error("mongodb_find_parties_error", error=str(e))
            raise PersistenceError(f"Failed to find parties: {e}", cause=e) from e

    async def get_relationship(
        self, owner_id: PartyId, peer_id: PartyId
    ) -> RelationshipRecord | None:
        """Get the owner's record for a peer."""
        document = await self.get_party(
            owner_id, {self.field_name: {"$elemMatch": {"peer_id": peer_id}}}
        )
        if document is None:
            raise PartyNotFoundError(owner_id)
        elements = document.get(self.field_name) or []
        if not elements:
            return None
        return RelationshipRecord.from_document(elements[0])

    async def push_relationship(
        self, owner_id: PartyId, record: RelationshipRecord
    ) -> bool:
        """Append a record to the owner's list.

        The filter excludes owners already holding a record for the peer,
        which keeps peer entries unique under concurrent pushes.
        """
        try:
            result = await self._collection.update_one(
                {"_id": owner_id, f"{self.field_name}.peer_id": {"$ne": record.peer_id}},
                {"$push": {self.field_name: record.to_document()}},
            )
            if result.matched_count:
                logger.debug(
                    "relationship_pushed",
                    owner_id=str(owner_id),
                    peer_id=str(record.peer_id),
                    status=record.status.value,
                )
                return True
            exists = await self._collection.count_documents({"_id": owner_id}, limit=1)
        except PyMongoError as e:
            logger.error(
                "mongodb_push_relationship_error",
                owner_id=str(owner_id),
                peer_id=str(record.peer_id),
                error=str(e),
            )
            raise PersistenceError(f"Failed to push relationship: {e}", cause=e) from e

        if not exists:
            raise PartyNotFoundError(owner_id)
        logger.debug(
            "relationship_already_present",
            owner_id=str(owner_id),
            peer_id=str(record.peer_id),
        )
        return False

    async def set_relationship_status(
        self,
        owner_id: PartyId,
        peer_id: PartyId,
        status: FriendshipStatus,
    ) -> RelationshipRecord | None:
        """Set the status of the owner's record for a peer."""
        try:
            prior = await self._collection.find_one_and_update(
                {"_id": owner_id, f"{self.field_name}.peer_id": peer_id},
                {"$set": {f"{self.field_name}.$.status": FriendshipStatus(status).value}},
                projection={self.field_name: {"$elemMatch": {"peer_id": peer_id}}},
                return_document=ReturnDocument.BEFORE,
            )
            exists = True
            if prior is None:
                exists = bool(
                    await self._collection.count_documents({"_id": owner_id}, limit=1)
                )
        except PyMongoError as e:
            logger.error(
                "mongodb_set_relationship_status_error",
                owner_id=str(owner_id),
                peer_id=str(peer_id),
                error=str(e),
            )
            raise PersistenceError(f"Failed to update relationship: {e}", cause=e) from e

        if not exists:
            raise PartyNotFoundError(owner_id)
        if prior is None:
            return None
        return RelationshipRecord.from_document(prior[self.field_name][0])

    async def pull_relationship(self, owner_id: PartyId, peer_id: PartyId) -> None:
        """Remove the owner's record for a peer."""
        try:
            await self._collection.update_one(
                {"_id": owner_id},
                {"$pull": {self.field_name: {"peer_id": peer_id}}},
            )
        except PyMongoError as e:
            logger.error(
                "mongodb_pull_relationship_error",
                owner_id=str(owner_id),
                peer_id=str(peer_id),
                error=str(e),
            )
            raise PersistenceError(f"Failed to pull relationship: {e}", cause=e) from e

    async def ensure_indexes(self) -> None:
        """Create the multikey index on `<field_name>.peer_id`.

        Status is not indexed: every friendship query also matches on the
        peer id, which already narrows it to one party's relationships.
        """
        try:
            await self._collection.create_index(
                [(f"{self.field_name}.peer_id", ASCENDING)],
                name=self.index_name,
            )
        except PyMongoError as e:
            logger.error("mongodb_create_index_error", index=self.index_name, error=str(e))
            raise PersistenceError(f"Failed to create index: {e}", cause=e) from e
        logger.info("index_ensured", index=self.index_name)
