"""Factories for party stores and the friendship service.

The MongoDB connection string is read from environment variables:
- RAPPORT_MONGODB_URL or MONGODB_URL (defaults to mongodb://localhost:27017)
"""

import os

from rapport.config.models.friendship import FriendshipConfig
from rapport.config.models.storage import StorageConfig
from rapport.config.settings import Settings
from rapport.friendship.service import FriendshipService
from rapport.friendship.store import PartyStore
from rapport.friendship.stores.inmemory import InMemoryPartyStore
from rapport.observability.logging import get_logger

logger = get_logger(__name__)


def create_party_store(storage: StorageConfig, friendship: FriendshipConfig) -> PartyStore:
    """Create a PartyStore instance based on configuration.

    Raises:
        ValueError: If backend type is not supported
    """
    backend = storage.backend

    if backend == "inmemory":
        logger.info(
            "creating_party_store",
            backend="inmemory",
            field_name=friendship.field_name,
        )
        return InMemoryPartyStore(field_name=friendship.field_name)

    elif backend == "mongodb":
        from pymongo import AsyncMongoClient

        from rapport.friendship.stores.mongodb import MongoPartyStore

        url = (
            os.environ.get("RAPPORT_MONGODB_URL")
            or os.environ.get("MONGODB_URL")
            or "mongodb://localhost:27017"
        )
        client: AsyncMongoClient = AsyncMongoClient(
            url,
            timeoutMS=storage.timeout_ms,
            serverSelectionTimeoutMS=storage.server_selection_timeout_ms,
        )

        logger.info(
            "creating_party_store",
            backend="mongodb",
            url=url,
            database=storage.database,
            collection=storage.collection,
            field_name=friendship.field_name,
        )
        return MongoPartyStore(
            client[storage.database][storage.collection],
            field_name=friendship.field_name,
        )

    else:
        raise ValueError(f"Unsupported party store backend: {backend}")


def create_friendship_service(
    settings: Settings, store: PartyStore | None = None
) -> FriendshipService:
    """Create a FriendshipService wired from settings.

    Args:
        settings: Application settings
        store: Store to use instead of the configured backend

    Raises:
        ValueError: If the store's relationship field differs from the configured one
    """
    if store is None:
        store = create_party_store(settings.storage, settings.friendship)
    elif store.field_name != settings.friendship.field_name:
        raise ValueError(
            f"Store relationship field {store.field_name!r} does not match "
            f"configured field {settings.friendship.field_name!r}"
        )

    return FriendshipService(
        store,
        auto_index=settings.friendship.auto_index,
        conflict_retries=settings.friendship.conflict_retries,
        record_metrics=settings.observability.metrics.enabled,
    )
