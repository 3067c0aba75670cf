"""Party stores holding friendship records."""

from rapport.friendship.store import PartyStore
from rapport.friendship.stores.inmemory import InMemoryPartyStore
from rapport.friendship.stores.mongodb import MongoPartyStore

__all__ = [
    "PartyStore",
    "InMemoryPartyStore",
    "MongoPartyStore",
]
