"""
CLI context management.

Global options parsed by the Typer callback are stored in a ContextVar so
command handlers can read them without threading them through every call.
"""

from __future__ import annotations

import contextvars
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from anideck.shared.constants import CLIDefaults


class LogLevel(str, Enum):
    """Log level enumeration for type safety."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class CliContext(BaseModel):
    """
    Global CLI options.

    Attributes:
        log_level: Logging level
        config_path: Explicit TOML configuration file
    """

    log_level: LogLevel = Field(default=LogLevel(CLIDefaults.LOG_LEVEL))
    config_path: Path | None = Field(default=None)


_cli_context: contextvars.ContextVar[CliContext | None] = contextvars.ContextVar(
    "cli_context",
    default=None,
)


def get_cli_context() -> CliContext:
    """Return the current CLI context (defaults if none was set)."""
    return _cli_context.get() or CliContext()


def set_cli_context(context: CliContext) -> None:
    _cli_context.set(context)
