"""Front desk record tool handlers for MCP server.

Check-ins, incidents, announcements and knowledge base entries live in the
local cache only; every write is queued on the cloud sync ledger.
"""

from datetime import date

import mcp.types as types

from ...core.async_utils import run_sync
from ...models import Announcement, CheckIn, Incident, KnowledgeBaseEntry
from ...services import FrontDesk
from .errors import build_error_response, format_timestamp, text_result
from .registry import ToolSpec


def _required(args: dict, *names: str) -> types.CallToolResult | None:
    missing = [n for n in names if not str(args.get(n) or "").strip()]
    if missing:
        return build_error_response(
            "validation_error",
            f"{', '.join(missing)} required",
            f"Provide {', '.join(missing)} parameter(s).",
        )
    return None


async def _handle_checkin_create(
    services: FrontDesk, args: dict
) -> types.CallToolResult:
    check_in = CheckIn(
        member_id=args.get("member_id") or None,
        member_name=args.get("member_name") or "Unknown Member",
        purpose=args.get("purpose"),
        notes=args.get("notes"),
    )
    record_id = await run_sync(services.cache.insert_check_in, check_in)
    return text_result(
        f"Check-in #{record_id} recorded.", {"id": record_id}
    )


async def _handle_checkin_recent(
    services: FrontDesk, args: dict
) -> types.CallToolResult:
    limit = min(max(1, int(args.get("limit", 10))), 100)
    check_ins = await run_sync(services.cache.recent_check_ins, limit)
    if not check_ins:
        return text_result("No check-ins yet.", {"check_ins": []})
    lines = [
        f"- {format_timestamp(c.timestamp)} {c.member_name}"
        + (f" ({c.purpose})" if c.purpose else "")
        for c in check_ins
    ]
    return text_result(
        f"Last {len(check_ins)} check-in(s):\n" + "\n".join(lines),
        {"check_ins": [c.model_dump(mode="json") for c in check_ins]},
    )


async def _handle_incident_create(
    services: FrontDesk, args: dict
) -> types.CallToolResult:
    if error := _required(args, "description"):
        return error
    incident = Incident(
        description=args["description"],
        reported_by=args.get("reported_by"),
        location=args.get("location"),
        incident_type=args.get("incident_type"),
        incident_date=args.get("incident_date")
        or date.today().isoformat(),
        incident_time=args.get("incident_time"),
        action_taken=args.get("action_taken"),
    )
    record_id = await run_sync(services.cache.insert_incident, incident)
    return text_result(f"Incident #{record_id} recorded.", {"id": record_id})


async def _handle_announcement_create(
    services: FrontDesk, args: dict
) -> types.CallToolResult:
    if error := _required(args, "title", "content"):
        return error
    announcement = Announcement(
        title=args["title"],
        content=args["content"],
        priority=args.get("priority") or "normal",
        expiry_date=args.get("expiry_date") or None,
    )
    record_id = await run_sync(
        services.cache.insert_announcement, announcement
    )
    return text_result(
        f"Announcement #{record_id} posted.", {"id": record_id}
    )


async def _handle_announcement_list(
    services: FrontDesk, args: dict
) -> types.CallToolResult:
    include_expired = bool(args.get("include_expired", False))
    announcements = await run_sync(
        services.cache.list_announcements, include_expired
    )
    if not announcements:
        return text_result("No announcements.", {"announcements": []})
    lines = []
    for a in announcements:
        marker = "!" if a.priority == "high" else "-"
        line = f"{marker} {a.title}: {a.content}"
        if a.expiry_date:
            line += f" (until {a.expiry_date.isoformat()})"
        lines.append(line)
    return text_result(
        "\n".join(lines),
        {"announcements": [a.model_dump(mode="json") for a in announcements]},
    )


async def _handle_kb_add(
    services: FrontDesk, args: dict
) -> types.CallToolResult:
    if error := _required(args, "title", "content"):
        return error
    entry = KnowledgeBaseEntry(
        title=args["title"],
        content=args["content"],
        category=args.get("category"),
    )
    record_id = await run_sync(
        services.cache.insert_knowledge_base_entry, entry
    )
    return text_result(
        f"Knowledge base entry #{record_id} added.", {"id": record_id}
    )


async def _handle_kb_search(
    services: FrontDesk, args: dict
) -> types.CallToolResult:
    if error := _required(args, "term"):
        return error
    entries = await run_sync(
        services.cache.search_knowledge_base, args["term"]
    )
    if not entries:
        return text_result(
            f"No knowledge base entries match '{args['term']}'.",
            {"entries": []},
        )
    sections = [
        f"## {e.title}" + (f" [{e.category}]" if e.category else "")
        + f"\n{e.content}"
        for e in entries
    ]
    return text_result(
        "\n\n".join(sections),
        {"entries": [e.model_dump(mode="json") for e in entries]},
    )


def _tool(name: str, description: str, properties: dict, required: list[str]):
    return types.Tool(
        name=name,
        description=description,
        inputSchema={
            "type": "object",
            "properties": properties,
            "required": required,
        },
    )


RECORD_SPECS = [
    ToolSpec(
        tool=_tool(
            "checkin_create",
            "Record a visitor or member check-in. The member's name is filled from the local cache when member_id is known.",
            {
                "member_id": {"type": "string", "description": "Directory member id, if known"},
                "member_name": {"type": "string", "description": "Name to record when the member is not cached"},
                "purpose": {"type": "string"},
                "notes": {"type": "string"},
            },
            [],
        ),
        writes=True,
        handler=_handle_checkin_create,
    ),
    ToolSpec(
        tool=_tool(
            "checkin_recent",
            "List the most recent check-ins, newest first.",
            {"limit": {"type": "integer", "description": "Default: 10, max: 100"}},
            [],
        ),
        writes=False,
        handler=_handle_checkin_recent,
    ),
    ToolSpec(
        tool=_tool(
            "incident_create",
            "File an incident report. incident_date defaults to today.",
            {
                "description": {"type": "string"},
                "reported_by": {"type": "string"},
                "location": {"type": "string"},
                "incident_type": {"type": "string"},
                "incident_date": {"type": "string", "description": "YYYY-MM-DD"},
                "incident_time": {"type": "string", "description": "HH:MM"},
                "action_taken": {"type": "string"},
            },
            ["description"],
        ),
        writes=True,
        handler=_handle_incident_create,
    ),
    ToolSpec(
        tool=_tool(
            "announcement_create",
            "Post a staff announcement.",
            {
                "title": {"type": "string"},
                "content": {"type": "string"},
                "priority": {
                    "type": "string",
                    "enum": ["high", "normal", "low"],
                    "description": "Default: normal",
                },
                "expiry_date": {"type": "string", "description": "YYYY-MM-DD; hidden after this day"},
            },
            ["title", "content"],
        ),
        writes=True,
        handler=_handle_announcement_create,
    ),
    ToolSpec(
        tool=_tool(
            "announcement_list",
            "List current announcements, high priority first.",
            {"include_expired": {"type": "boolean", "description": "Default: false"}},
            [],
        ),
        writes=False,
        handler=_handle_announcement_list,
    ),
    ToolSpec(
        tool=_tool(
            "knowledge_base_add",
            "Add an entry to the front desk knowledge base.",
            {
                "title": {"type": "string"},
                "content": {"type": "string"},
                "category": {"type": "string"},
            },
            ["title", "content"],
        ),
        writes=True,
        handler=_handle_kb_add,
    ),
    ToolSpec(
        tool=_tool(
            "knowledge_base_search",
            "Search the knowledge base by title, content or category.",
            {"term": {"type": "string"}},
            ["term"],
        ),
        writes=False,
        handler=_handle_kb_search,
    ),
]
