"""Root settings model."""

from typing import Literal

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from rapport.config.models.friendship import FriendshipConfig
from rapport.config.models.observability import ObservabilityConfig
from rapport.config.models.storage import StorageConfig

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Rapport settings.

    Constructor arguments carry the merged TOML layers. RAPPORT_* environment
    variables take precedence over them, with `__` separating nested keys
    (RAPPORT_STORAGE__BACKEND=mongodb).
    """

    model_config = SettingsConfigDict(
        env_prefix="RAPPORT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="rapport", description="Application name for logging")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: LogLevel = Field(default="INFO", description="Logging level")

    friendship: FriendshipConfig = Field(
        default_factory=FriendshipConfig,
        description="Relationship list layout and request behaviour",
    )
    storage: StorageConfig = Field(
        default_factory=StorageConfig,
        description="Party store backend configuration",
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Logging and metrics",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Earlier sources win
        return (env_settings, init_settings)
