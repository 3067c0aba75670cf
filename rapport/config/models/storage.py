"""Storage backend configuration models."""

from typing import Literal

from pydantic import BaseModel, Field

BackendType = Literal["inmemory", "mongodb"]


class StorageConfig(BaseModel):
    """Configuration for the party store backend.

    Note: the MongoDB connection URL comes from environment variables
    (RAPPORT_MONGODB_URL or MONGODB_URL), NOT from config files.
    """

    backend: BackendType = Field(
        default="inmemory",
        description="Party store backend type",
    )
    database: str = Field(
        default="rapport",
        description="Database holding the party collection",
    )
    collection: str = Field(
        default="parties",
        description="Collection of party documents",
    )
    timeout_ms: int = Field(
        default=10000,
        gt=0,
        description="Client-side operation timeout in milliseconds",
    )
    server_selection_timeout_ms: int = Field(
        default=5000,
        gt=0,
        description="How long to wait for a reachable server",
    )
