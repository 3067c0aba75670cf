"""Friendship layout configuration."""

from pydantic import BaseModel, Field


class FriendshipConfig(BaseModel):
    """Where relationship records live on a party document."""

    field_name: str = Field(
        default="friends",
        min_length=1,
        pattern=r"^[^.$]+$",
        description="Name of the embedded relationship list on party documents",
    )
    auto_index: bool = Field(
        default=True,
        description="Ask the store to maintain an index on <field_name>.peer_id",
    )
    conflict_retries: int = Field(
        default=2,
        ge=0,
        description="Times a request re-resolves after losing a race with a concurrent request",
    )
