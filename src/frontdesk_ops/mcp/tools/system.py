"""System tool handlers for MCP server.

This module implements the connection_status tool, reporting the
monitor's view of every backend.
"""

import logging

import mcp.types as types

from ...services import FrontDesk
from .errors import format_timestamp, text_result
from .registry import ToolSpec

logger = logging.getLogger(__name__)


async def _handle_connection_status(
    services: FrontDesk, args: dict
) -> types.CallToolResult:
    """Handle connection_status.

    Optionally runs a fresh round of probes before reporting.
    """
    if args.get("refresh", False):
        await services.monitor.check_all()

    snapshot = services.monitor.snapshot()
    lines = [f"Last checked: {format_timestamp(snapshot['last_checked'])}"]
    backends_json = {}
    for name, state in snapshot["backends"].items():
        line = f"- {name}: {state.status.value}"
        if state.detail:
            line += f" ({state.detail})"
        lines.append(line)
        backends_json[name] = {
            "status": state.status.value,
            "detail": state.detail,
            "last_transition_at": (
                state.last_transition_at.isoformat()
                if state.last_transition_at
                else None
            ),
            **snapshot["details"].get(name, {}),
        }

    return text_result(
        "\n".join(lines),
        {
            "backends": backends_json,
            "last_checked": (
                snapshot["last_checked"].isoformat()
                if snapshot["last_checked"]
                else None
            ),
        },
    )


SYSTEM_SPECS = [
    ToolSpec(
        tool=types.Tool(
            name="connection_status",
            description="Report the health of the remote directory, local cache, scanner export and time clock. Set refresh=true to probe them now instead of returning the last round's results.",
            inputSchema={
                "type": "object",
                "properties": {
                    "refresh": {
                        "type": "boolean",
                        "description": "Run all probes before reporting (default: false)",
                    },
                },
                "required": [],
            },
        ),
        writes=False,
        handler=_handle_connection_status,
    ),
]
