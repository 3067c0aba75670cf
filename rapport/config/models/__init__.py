"""Configuration model exports.

    from rapport.config.models import FriendshipConfig, StorageConfig
"""

from rapport.config.models.friendship import FriendshipConfig
from rapport.config.models.observability import (
    LoggingConfig,
    MetricsConfig,
    ObservabilityConfig,
)
from rapport.config.models.storage import StorageConfig

__all__ = [
    "FriendshipConfig",
    "LoggingConfig",
    "MetricsConfig",
    "ObservabilityConfig",
    "StorageConfig",
]
