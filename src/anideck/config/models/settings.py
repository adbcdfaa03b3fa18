"""AniDeck Settings Configuration Model.

Main Settings class that consolidates all configuration domains.
"""

from __future__ import annotations

import logging
from pathlib import Path

import toml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from anideck.config.models.api_settings import APISettings, JikanSettings
from anideck.config.models.app_settings import AppSettings, LoggingSettings
from anideck.config.models.cache_settings import CacheSettings
from anideck.config.models.discovery_settings import DiscoverySettings, LibrarySettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Settings facade providing unified configuration access.

    Every field can be overridden from the environment, e.g.
    ``ANIDECK_API__JIKAN__REQUEST_DELAY=1.0`` or
    ``ANIDECK_DISCOVERY__HISTORY_LIMIT=40``.
    """

    model_config = SettingsConfigDict(
        env_prefix="ANIDECK_",
        env_nested_delimiter="__",
        env_ignore_empty=True,
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=AppSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    api: APISettings = Field(default_factory=APISettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)
    library: LibrarySettings = Field(default_factory=LibrarySettings)

    @property
    def jikan(self) -> JikanSettings:
        """Shortcut for ``settings.api.jikan``."""
        return self.api.jikan

    @classmethod
    def from_toml_file(cls, file_path: str | Path) -> Settings:
        """Load settings from TOML file with environment variable overrides."""
        file_path = Path(file_path)
        if not file_path.exists():
            msg = f"Configuration file not found: {file_path}"
            raise FileNotFoundError(msg)

        raw_config = toml.load(file_path)
        logger.debug("Loaded configuration from %s", file_path)
        return cls(**raw_config)

    def to_toml_file(self, file_path: str | Path) -> None:
        """Save settings to TOML file."""
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        config_dict = self.model_dump(mode="json", exclude_none=True)

        with open(file_path, "w", encoding="utf-8") as f:
            toml.dump(config_dict, f)
