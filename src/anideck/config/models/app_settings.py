"""Application and logging configuration models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from anideck.shared.constants import CLIDefaults


class AppSettings(BaseModel):
    """Application configuration."""

    name: str = Field(default="AniDeck", description="Application name")
    version: str = Field(default=CLIDefaults.VERSION, description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")


class LoggingSettings(BaseModel):
    """Logging configuration.

    Console output goes through Rich; the optional file is JSON lines.
    """

    level: str = Field(default="INFO", description="Logging level")
    file: str | None = Field(default=None, description="Log file path")
    rich_console: bool = Field(
        default=True,
        description="Use Rich console output instead of JSON on stderr",
    )


__all__ = [
    "AppSettings",
    "LoggingSettings",
]
