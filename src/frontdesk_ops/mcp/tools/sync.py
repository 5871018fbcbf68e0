"""Cloud sync ledger tool handler for MCP server."""

import mcp.types as types

from ...core.async_utils import run_sync
from ...services import FrontDesk
from .errors import format_timestamp, text_result
from .registry import ToolSpec


async def _handle_sync_status(
    services: FrontDesk, args: dict
) -> types.CallToolResult:
    """Handle sync_status: ledger counts plus the records awaiting retry."""
    tracker = services.tracker
    counts = await run_sync(tracker.counts)
    failed = await run_sync(tracker.list_retryable)
    last_attempt = await run_sync(tracker.last_attempt)

    lines = [
        "Cloud sync ledger:",
        f"  Pending: {counts['pending']}",
        f"  Synced:  {counts['synced']}",
        f"  Failed:  {counts['failed']}",
        f"  Last attempt: {format_timestamp(last_attempt)}",
    ]
    for record in failed[:20]:
        lines.append(
            f"  ! {record.table_name}#{record.record_id}: {record.error_message}"
        )
    if len(failed) > 20:
        lines.append(f"  ... and {len(failed) - 20} more")

    return text_result(
        "\n".join(lines),
        {
            "counts": counts,
            "failed": [r.model_dump(mode="json") for r in failed],
            "last_attempt": last_attempt.isoformat() if last_attempt else None,
        },
    )


SYNC_SPECS = [
    ToolSpec(
        tool=types.Tool(
            name="sync_status",
            description="Show how many local records are pending, synced or failed on the cloud sync ledger, and which ones failed.",
            inputSchema={
                "type": "object",
                "properties": {},
                "required": [],
            },
        ),
        writes=False,
        handler=_handle_sync_status,
    ),
]
