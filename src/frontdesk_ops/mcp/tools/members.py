"""Member tool handlers for MCP server.

Lookups go through the IdentityResolver, so they answer from the local
cache first and only reach the remote directory on a miss.
"""

import mcp.types as types

from ...core.async_utils import run_sync
from ...core.client import member_patch
from ...models import Member
from ...services import FrontDesk
from .errors import build_error_response, text_result
from .registry import ToolSpec

_UPDATABLE_FIELDS = ("first_name", "last_name", "email", "phone")


def _member_json(member: Member) -> dict:
    return member.model_dump(mode="json")


def _member_line(member: Member) -> str:
    name = member.display_name or "Unknown Name"
    line = f"- {name} [{member.external_id or 'local #' + str(member.id)}]"
    details = [d for d in (member.email, member.phone) if d]
    if details:
        line += " " + ", ".join(details)
    return line + f" (status: {member.membership_status.value})"


async def _handle_get(
    services: FrontDesk, args: dict
) -> types.CallToolResult:
    """Handle member_get."""
    member_id = str(args.get("member_id") or "").strip()
    if not member_id:
        return build_error_response(
            "validation_error",
            "member_id is required",
            "Provide member_id parameter.",
        )

    member = await run_sync(services.resolver.resolve, member_id)
    if member is None:
        return build_error_response(
            "not_found",
            f"Member {member_id} not found locally or in the directory",
            "Use member_search to find the member by name, email or phone.",
        )

    expiry = member.membership_expiry.isoformat() if member.membership_expiry else "-"
    lines = [
        f"Member {member.external_id}: {member.display_name}",
        f"Email: {member.email or '-'} | Phone: {member.phone or '-'}",
        f"Membership: {member.membership_status.value} (expires {expiry})",
    ]
    return text_result("\n".join(lines), _member_json(member))


async def _handle_search(
    services: FrontDesk, args: dict
) -> types.CallToolResult:
    """Handle member_search."""
    term = str(args.get("term") or "").strip()
    if not term:
        return build_error_response(
            "validation_error",
            "term is required",
            "Provide a name, email or phone fragment to search for.",
        )
    local_only = bool(args.get("local_only", False))
    max_results = min(max(1, int(args.get("max_results", 20))), 100)

    members = await run_sync(services.resolver.search, term, local_only)
    if not members:
        return text_result(
            f"No members found matching '{term}'.",
            {"members": [], "total": 0, "showing": 0},
        )

    total = len(members)
    shown = members[:max_results]
    header = f"Found {total} member(s)"
    if total > max_results:
        header += f" (showing {max_results})"
    lines = [header + ":"] + [_member_line(m) for m in shown]
    return text_result(
        "\n".join(lines),
        {
            "members": [_member_json(m) for m in shown],
            "total": total,
            "showing": len(shown),
        },
    )


async def _handle_update(
    services: FrontDesk, args: dict
) -> types.CallToolResult:
    """Handle member_update."""
    member_id = str(args.get("member_id") or "").strip()
    if not member_id:
        return build_error_response(
            "validation_error",
            "member_id is required",
            "Provide member_id parameter.",
        )
    fields = {k: args[k] for k in _UPDATABLE_FIELDS if args.get(k)}
    if not fields:
        return build_error_response(
            "validation_error",
            "No fields to update",
            f"Provide at least one of: {', '.join(_UPDATABLE_FIELDS)}.",
        )

    member = await run_sync(
        services.resolver.update, member_id, member_patch(**fields)
    )
    return text_result(
        f"Updated member {member.external_id}: {', '.join(fields)}",
        _member_json(member),
    )


MEMBER_SPECS = [
    ToolSpec(
        tool=types.Tool(
            name="member_get",
            description="Look up a member by directory id. Answers from the local cache when possible, otherwise fetches from the directory and caches the result.",
            inputSchema={
                "type": "object",
                "properties": {
                    "member_id": {
                        "type": "string",
                        "description": "Remote directory member id",
                    },
                },
                "required": ["member_id"],
            },
        ),
        writes=False,
        handler=_handle_get,
    ),
    ToolSpec(
        tool=types.Tool(
            name="member_search",
            description="Search members by name, email or phone. Searches the local cache first and falls back to the directory only when nothing is cached.",
            inputSchema={
                "type": "object",
                "properties": {
                    "term": {
                        "type": "string",
                        "description": "Case-insensitive substring to match",
                    },
                    "local_only": {
                        "type": "boolean",
                        "description": "Never contact the directory (default: false)",
                    },
                    "max_results": {
                        "type": "integer",
                        "description": "Maximum results to return (default: 20, max: 100)",
                    },
                },
                "required": ["term"],
            },
        ),
        writes=False,
        handler=_handle_search,
    ),
    ToolSpec(
        tool=types.Tool(
            name="member_update",
            description="Update a member's contact details in the directory and refresh the cached copy.",
            inputSchema={
                "type": "object",
                "properties": {
                    "member_id": {
                        "type": "string",
                        "description": "Remote directory member id",
                    },
                    "first_name": {"type": "string"},
                    "last_name": {"type": "string"},
                    "email": {"type": "string"},
                    "phone": {"type": "string"},
                },
                "required": ["member_id"],
            },
        ),
        writes=True,
        handler=_handle_update,
    ),
]
