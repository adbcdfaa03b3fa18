"""Settings loader and singleton manager.

This module handles:
- Environment variable loading from .env files
- Configuration file loading from TOML
- Thread-safe singleton pattern for Settings instance
- Configuration update and save operations
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable

import toml
from dotenv import load_dotenv
from pydantic import ValidationError

from anideck.config.models.settings import Settings
from anideck.shared.errors import (
    ApplicationError,
    ErrorCode,
    ErrorContext,
    create_config_error,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/config.toml")


class SettingsLoader:
    """Thread-safe singleton manager for Settings.

    Uses double-checked locking pattern to ensure thread-safety
    while minimizing lock overhead.
    """

    _instance: Settings | None = None
    _config_path: Path | None = None
    _lock: threading.RLock = threading.RLock()

    def get_config(self) -> Settings:
        """Get the global settings instance (thread-safe).

        Returns:
            The global Settings instance, loading it if necessary.
        """
        if self._instance is None:
            with self._lock:
                if self._instance is None:
                    self._instance = load_settings(self._config_path)

        return self._instance

    def reload_config(self, config_path: Path | str | None = None) -> Settings:
        """Reload the global settings instance.

        Args:
            config_path: Explicit TOML file to load from. When given it is
                remembered for later reloads.

        Returns:
            The reloaded Settings instance.
        """
        with self._lock:
            if config_path is not None:
                self._config_path = Path(config_path)
            self._instance = load_settings(self._config_path)

        return self._instance

    def update_and_save_config(
        self,
        updater: Callable[[Settings], None],
        config_path: Path | str = DEFAULT_CONFIG_PATH,
    ) -> None:
        """Update configuration, validate, save to file, and reload global cache.

        Args:
            updater: Callable that modifies a Settings copy in-place
            config_path: Path to save the configuration file

        Raises:
            ApplicationError: If validation fails or save operation fails
        """
        config_path = Path(config_path)

        with self._lock:
            try:
                current = self.get_config()
                updated = current.model_copy(deep=True)
                updater(updated)

                # model_copy skips validation; round-trip through the schema
                updated = Settings.model_validate(updated.model_dump())
                updated.to_toml_file(config_path)
                self._instance = updated

                logger.info("Configuration updated and saved successfully to %s", config_path)

            except (ValidationError, OSError, TypeError, ValueError) as e:
                logger.exception("Failed to update and save configuration")
                raise ApplicationError(
                    code=ErrorCode.CONFIGURATION_ERROR,
                    message=f"Configuration update failed: {e}",
                    context=ErrorContext(
                        operation="update_and_save_config",
                        additional_data={"config_path": str(config_path)},
                    ),
                    original_error=e,
                ) from e

    def reset(self) -> None:
        """Forget the cached instance and explicit path (used by tests)."""
        with self._lock:
            self._instance = None
            self._config_path = None


def _load_env_file(env_file: Path = Path(".env")) -> None:
    """Load environment variables from a .env file if one exists.

    Jikan needs no credentials, so a missing file is not an error.
    Variables already present in the environment win.
    """
    if env_file.exists():
        load_dotenv(env_file, override=False)
        logger.debug("Loaded environment from %s", env_file)


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from TOML configuration file or environment.

    Args:
        config_path: Optional path to TOML configuration file. If None, tries
            the default locations and finally falls back to environment
            variables and defaults.

    Returns:
        Settings instance loaded from the specified source

    Raises:
        ApplicationError: If the file is missing, unparsable or invalid
    """
    _load_env_file()

    if config_path:
        return _load_from_file(Path(config_path))

    default_config_paths = [
        DEFAULT_CONFIG_PATH,
        Path("config.toml"),
        Path.home() / ".anideck" / "config.toml",
    ]

    for candidate in default_config_paths:
        if candidate.exists():
            return _load_from_file(candidate)

    return Settings()


def _load_from_file(path: Path) -> Settings:
    try:
        return Settings.from_toml_file(path)
    except FileNotFoundError as e:
        raise ApplicationError(
            code=ErrorCode.CONFIG_MISSING,
            message=str(e),
            context=ErrorContext(
                operation="load_config",
                additional_data={"config_path": str(path)},
            ),
            original_error=e,
        ) from e
    except (toml.TomlDecodeError, ValidationError) as e:
        raise create_config_error(
            f"Invalid configuration file {path}: {e}",
            config_path=str(path),
            original_error=e,
        ) from e


# Global loader instance
_loader = SettingsLoader()


def get_config() -> Settings:
    """Get the global settings instance (thread-safe)."""
    return _loader.get_config()


def reload_config(config_path: Path | str | None = None) -> Settings:
    """Reload the global settings instance from configuration files."""
    return _loader.reload_config(config_path)


def update_and_save_config(
    updater: Callable[[Settings], None],
    config_path: Path | str = DEFAULT_CONFIG_PATH,
) -> None:
    """Update configuration, validate, save to file, and reload global cache."""
    _loader.update_and_save_config(updater, config_path)


def reset_config() -> None:
    """Drop the cached global settings."""
    _loader.reset()
