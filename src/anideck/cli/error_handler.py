"""CLI error handling decorator.

Wraps command handlers so AniDeck errors become a one-line message on
stderr and a non-zero exit code instead of a traceback.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, TypeVar

import typer
from pydantic import ValidationError
from rich.console import Console

from anideck.shared.constants import CLIDefaults
from anideck.shared.errors import (
    AniDeckError,
    ApplicationError,
    ErrorCode,
    ErrorContext,
)
from anideck.shared.logging import log_operation_error

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_error_console = Console(stderr=True)


def handle_cli_errors(operation: str, command_name: str) -> Callable[[F], F]:
    """Decorator for standardized CLI error handling.

    Args:
        operation: Operation name for the error context
        command_name: CLI command name shown to the user

    Example:
        >>> @handle_cli_errors(operation="discover", command_name="discover")
        ... def handle_discover(options): ...
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except typer.Exit:
                raise
            except ValidationError as e:
                error = ApplicationError(
                    code=ErrorCode.CLI_INVALID_ARGUMENTS,
                    message=_first_validation_message(e),
                    context=ErrorContext(operation=operation),
                    original_error=e,
                )
                _report(error, command_name)
                raise typer.Exit(CLIDefaults.EXIT_ERROR) from e
            except AniDeckError as e:
                _report(e, command_name)
                raise typer.Exit(CLIDefaults.EXIT_ERROR) from e
            except KeyboardInterrupt as e:
                _error_console.print("[yellow]Cancelled.[/yellow]")
                raise typer.Exit(CLIDefaults.EXIT_ERROR) from e

        return wrapper  # type: ignore[return-value]

    return decorator


def _report(error: AniDeckError, command_name: str) -> None:
    log_operation_error(logger, error, operation=command_name, level=logging.DEBUG)
    _error_console.print(f"[red]Error ({command_name}):[/red] {error.message}", markup=True, highlight=False)


def _first_validation_message(error: ValidationError) -> str:
    details = error.errors()
    if not details:
        return str(error)
    first = details[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid value")
    return f"{location}: {message}" if location else message
