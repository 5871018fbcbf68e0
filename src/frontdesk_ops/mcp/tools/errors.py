"""Error response builders and shared utilities for MCP tool handlers.

This module provides structured error responses with corrective actions
to help agents recover from errors without human intervention, plus
shared formatting utilities used across tool modules.
"""

from datetime import date, datetime
from typing import Any

import mcp.types as types

from ...errors import (
    AuthenticationRejected,
    ConfigurationMissing,
    FrontDeskError,
    RemoteRequestError,
    RemoteUnavailable,
    StoreWriteFailure,
    SyncFailure,
)


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (not_found, configuration_missing, remote_unavailable, validation_error, server_error, ...)
        message: Human-readable error description
        corrective_action: Specific action the agent can take to resolve the error

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("not_found", "Member abc not found", "Use member_search to find the member.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


def text_result(
    text: str, structured: dict[str, Any] | None = None
) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=structured,
    )


# ---------------------------------------------------------------------------
# Shared formatting utilities
# ---------------------------------------------------------------------------


def format_timestamp(timestamp: Any) -> str:
    """Format a timestamp for display (YYYY-MM-DD HH:MM), or "-" if unset."""
    match timestamp:
        case None:
            return "-"
        case datetime() as dt:
            return dt.strftime("%Y-%m-%d %H:%M")
        case date() as d:
            return d.isoformat()
        case _:
            return str(timestamp)


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------

_CORRECTIVE_ACTIONS: list[tuple[type[FrontDeskError], str, str]] = [
    (
        ConfigurationMissing,
        "configuration_missing",
        "Set FRONTDESK_API_KEY and FRONTDESK_SITE_ID (or FRONTDESK_CLIENT_ID and "
        "FRONTDESK_CLIENT_SECRET), or search with local_only=true.",
    ),
    (
        AuthenticationRejected,
        "permission_denied",
        "Check the directory API key, site id and OAuth client credentials.",
    ),
    (
        RemoteUnavailable,
        "remote_unavailable",
        "The directory is unreachable. Use local_only=true for cached results, "
        "check connection_status, or retry later.",
    ),
    (
        RemoteRequestError,
        "remote_error",
        "Check the member id and fields, then retry.",
    ),
    (
        StoreWriteFailure,
        "store_error",
        "The local cache rejected the write. Check disk space and permissions, then retry.",
    ),
    (
        SyncFailure,
        "sync_error",
        "The record stays FAILED on the ledger and is retried by the next sweep.",
    ),
]


def translate_error(error: FrontDeskError) -> types.CallToolResult:
    """Translate a front desk error into a structured error response."""
    for error_cls, error_type, action in _CORRECTIVE_ACTIONS:
        if isinstance(error, error_cls):
            return build_error_response(error_type, str(error), action)
    return build_error_response(
        "server_error", str(error), "Check the server log and retry."
    )
