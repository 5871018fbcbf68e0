"""MCP server for front desk operations using stdio transport.

This module implements the Model Context Protocol server that lets an agent
or a UI shell look up members, record check-ins and incidents, and watch
the health of the desk's integrations.

Transport: stdio
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import sys

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..config_loader import ensure_config
from ..core.async_utils import run_sync
from ..logger import DEFAULT_LOG_FILE, setup_logging
from ..services import FrontDesk
from .lifespan import server_lifespan
from .tools import ALL_SPECS, ToolRegistry, build_error_response
from .tools.registry import ToolSpec

logger = logging.getLogger(__name__)

server = Server("frontdesk-ops")

# Global services bundle (initialized in main via the lifespan)
_services: FrontDesk | None = None

# Global registry instance (initialized in main)
_registry: ToolRegistry | None = None


# ---------------------------------------------------------------------------
# Ping tool (always available)
# ---------------------------------------------------------------------------


async def _handle_ping(
    services: FrontDesk, args: dict
) -> types.CallToolResult:
    """Handle ping tool -- confirm the server and its local cache respond."""
    cache_ok = await run_sync(services.cache.ping)
    if not cache_ok:
        return build_error_response(
            "store_error",
            f"Local cache at {services.cache.db_path} did not answer",
            "Check that the cache file is readable and not locked.",
        )
    directory = (
        "configured"
        if services.auth.has_credentials()
        else "not configured (local cache only)"
    )
    return types.CallToolResult(
        content=[
            types.TextContent(
                type="text",
                text=f"Front desk server {__version__} is up. Local cache OK. Remote directory: {directory}.",
            )
        ]
    )


PING_SPEC = ToolSpec(
    tool=types.Tool(
        name="ping",
        description="Check that the front desk server and its local cache respond",
        inputSchema={
            "type": "object",
            "properties": {},
            "required": [],
        },
    ),
    writes=False,
    handler=_handle_ping,
)


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_services() -> FrontDesk:
    """Get the global services bundle.

    Raises:
        RuntimeError: If the server lifespan has not started
    """
    if _services is None:
        raise RuntimeError(
            "Services not initialized. Server lifespan not started."
        )
    return _services


def set_services(services: FrontDesk | None) -> None:
    global _services
    _services = services


def get_registry() -> ToolRegistry:
    """Get the global ToolRegistry instance.

    Raises:
        RuntimeError: If registry is not initialized
    """
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    global _registry
    _registry = registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """List available front desk tools."""
    return get_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Handle tool execution via ToolRegistry dispatch."""
    services = get_services()
    try:
        return await get_registry().call_tool(name, arguments, services)
    except ValueError as e:
        # Unknown or filtered-out tool name
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    Sets up logging for MCP mode (file only, never stdout), builds the
    services via the lifespan manager and serves until the client hangs up.

    Args:
        config_overrides: Optional dict with config values to override
    """
    overrides = config_overrides or {}

    # Must run before stdio_server so nothing is ever written to stdout
    setup_logging(
        mode="mcp",
        debug=overrides.get("debug", False),
        log_file=overrides.get("log_file"),
    )

    all_specs = [PING_SPEC] + ALL_SPECS
    registry = ToolRegistry(
        all_specs, read_only=overrides.get("read_only", False)
    )
    logger.info(
        "Registered %d tools (of %d total)",
        registry.tool_count(),
        len(all_specs),
    )
    if overrides.get("read_only"):
        print(
            f"Read-only mode: {registry.tool_count()} of {len(all_specs)} tools enabled",
            file=sys.stderr,
        )
    set_registry(registry)

    async with server_lifespan(config_overrides=config_overrides) as services:
        set_services(services)
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name="frontdesk-ops",
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(read_stream, write_stream, init_options)
        finally:
            set_services(None)
            set_registry(None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="frontdesk-ops",
        description="Front desk operations MCP server: member lookup, check-ins and integration health",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .frontdesk/config.yml)
  frontdesk-ops

  # Point at a specific scanner export directory and time-clock database
  frontdesk-ops --scanner-path ~/BCR/Scan-ID --time-clock-db ~/TimeXpress/Database/TimeXpress.db

  # Lobby kiosk: no tools that write
  frontdesk-ops --read-only

  # Write a starter config file and exit
  frontdesk-ops --init-config

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr.
        """,
    )
    parser.add_argument(
        "--api-key",
        help="Override remote directory API key"
        " (visible in process list -- prefer FRONTDESK_API_KEY env var)",
    )
    parser.add_argument(
        "--site-id", help="Override remote directory site id"
    )
    parser.add_argument(
        "--scanner-path", help="ID-scanner export directory"
    )
    parser.add_argument(
        "--time-clock-db", help="Time-clock database file"
    )
    parser.add_argument("--cache-db", help="Local cache database file")
    parser.add_argument(
        "--poll-interval",
        type=float,
        help="Seconds between connection health checks (default: 30)",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip SSL certificate verification (use only for development)",
    )
    parser.add_argument(
        "--read-only",
        action="store_true",
        help="Only expose tools that do not write records",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--log-file",
        default=DEFAULT_LOG_FILE,
        help=f"Log file path (default: {DEFAULT_LOG_FILE})",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Create .frontdesk/config.yml if no config file exists, then exit",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"frontdesk-ops version {__version__}",
    )
    return parser


def overrides_from_args(args: argparse.Namespace) -> dict:
    """Keep only the options the user actually set."""
    keys = (
        "api_key",
        "site_id",
        "scanner_path",
        "time_clock_db",
        "cache_db",
        "poll_interval",
        "log_file",
    )
    overrides = {k: getattr(args, k) for k in keys if getattr(args, k)}
    for flag in ("insecure", "read_only", "debug"):
        if getattr(args, flag):
            overrides[flag] = True
    return overrides


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    args = build_parser().parse_args()

    if args.init_config:
        setup_logging(mode="cli")
        path = ensure_config()
        print(f"Config file: {path}", file=sys.stderr)
        return

    config_overrides = overrides_from_args(args)
    if config_overrides:
        shown = [k for k in config_overrides if k != "api_key"]
        print(
            f"Config overrides from CLI: {', '.join(shown)}",
            file=sys.stderr,
        )

    try:
        asyncio.run(main(config_overrides=config_overrides or None))
    except RuntimeError:
        # Error already printed to stderr by lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
