"""
JSON output formatter for the AniDeck CLI.

Commands run with ``--json`` print one envelope produced here.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import orjson


def format_json_output(
    success: bool,
    command: str,
    data: Any | None = None,
    errors: list[str] | None = None,
) -> bytes:
    """
    Format command output as JSON.

    Args:
        success: Whether the command executed successfully
        command: The command name (e.g., "discover", "library list")
        data: The command's output data (pydantic models are dumped)
        errors: List of error messages

    Returns:
        JSON-encoded bytes ready for output

    Example:
        >>> format_json_output(success=True, command="genres", data=[])
        b'{\\n  "success": true, ...'
    """
    output = {
        "success": success,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "command": command,
        "data": _to_jsonable(data),
        "errors": errors or [],
    }
    return orjson.dumps(output, option=orjson.OPT_INDENT_2)


def _to_jsonable(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: _to_jsonable(v) for k, v in value.items()}
    return value
