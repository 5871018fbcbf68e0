"""Tests for tool registration, routing and the CLI entry point of the server.

Detailed handler behaviour is tested in tests/test_mcp/tools/; this file
only covers the server layer.
"""

import asyncio
import sys
from unittest.mock import MagicMock, patch

import mcp.types as types
import pytest

from frontdesk_ops import __version__
from frontdesk_ops.mcp import server
from frontdesk_ops.mcp.server import (
    PING_SPEC,
    build_parser,
    get_registry,
    get_services,
    handle_call_tool,
    handle_list_tools,
    overrides_from_args,
    set_registry,
    set_services,
)
from frontdesk_ops.mcp.tools import ALL_SPECS
from frontdesk_ops.mcp.tools.registry import ToolRegistry


@pytest.fixture
def registry():
    registry = ToolRegistry([PING_SPEC] + ALL_SPECS)
    set_registry(registry)
    yield registry
    set_registry(None)


@pytest.fixture
def live_services(desk):
    set_services(desk)
    yield desk
    set_services(None)


# ---------------------------------------------------------------------------
# Registration and routing
# ---------------------------------------------------------------------------


class TestToolRegistration:
    def test_all_tools_listed(self, registry):
        names = [t.name for t in asyncio.run(handle_list_tools())]
        assert names[0] == "ping"
        for expected in (
            "connection_status",
            "member_get",
            "member_search",
            "member_update",
            "checkin_create",
            "sync_status",
        ):
            assert expected in names

    def test_schemas_declare_required_fields(self, registry):
        tools = {t.name: t for t in asyncio.run(handle_list_tools())}
        assert tools["member_get"].inputSchema["required"] == ["member_id"]
        assert tools["member_search"].inputSchema["required"] == ["term"]

    def test_accessors_fail_before_startup(self):
        set_registry(None)
        set_services(None)
        with pytest.raises(RuntimeError, match="not initialized"):
            get_registry()
        with pytest.raises(RuntimeError, match="lifespan not started"):
            get_services()


class TestToolRouting:
    @patch("frontdesk_ops.mcp.server.get_registry")
    @patch("frontdesk_ops.mcp.server.get_services")
    def test_calls_route_to_registry(self, mock_get_services, mock_get_registry):
        services = MagicMock()
        mock_get_services.return_value = services
        expected = types.CallToolResult(
            content=[types.TextContent(type="text", text="ok")]
        )

        async def fake_call_tool(name, args, services):
            return expected

        mock_get_registry.return_value.call_tool = MagicMock(
            side_effect=fake_call_tool
        )

        result = asyncio.run(handle_call_tool("member_get", {"member_id": "wix-1"}))

        mock_get_registry.return_value.call_tool.assert_called_once_with(
            "member_get", {"member_id": "wix-1"}, services
        )
        assert result is expected

    def test_unknown_tool_returns_error(self, registry, live_services):
        result = asyncio.run(handle_call_tool("locker_assign", {}))
        assert result.isError
        assert "Error (unknown_tool)" in result.content[0].text

    def test_read_only_write_tool_is_unknown(self, live_services):
        set_registry(ToolRegistry([PING_SPEC] + ALL_SPECS, read_only=True))
        try:
            result = asyncio.run(
                handle_call_tool("checkin_create", {"member_name": "x"})
            )
        finally:
            set_registry(None)
        assert "unknown_tool" in result.content[0].text


class TestPing:
    def test_ping_reports_cache_and_directory(self, registry, live_services):
        result = asyncio.run(handle_call_tool("ping", {}))
        text = result.content[0].text
        assert not result.isError
        assert f"Front desk server {__version__} is up" in text
        assert "Remote directory: configured" in text

    def test_ping_fails_when_cache_down(self, registry, live_services):
        with patch.object(live_services.cache, "ping", return_value=False):
            result = asyncio.run(handle_call_tool("ping", {}))
        assert result.isError
        assert "store_error" in result.content[0].text


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


class TestCli:
    def test_overrides_only_include_set_options(self):
        args = build_parser().parse_args(
            ["--scanner-path", "/scans", "--poll-interval", "10", "--read-only"]
        )
        overrides = overrides_from_args(args)
        assert overrides["scanner_path"] == "/scans"
        assert overrides["poll_interval"] == 10.0
        assert overrides["read_only"] is True
        assert "api_key" not in overrides
        assert "insecure" not in overrides
        # log_file always has a default
        assert overrides["log_file"] == "/tmp/frontdesk-ops.log"

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--version"])
        assert __version__ in capsys.readouterr().out

    def test_init_config_writes_starter(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        monkeypatch.setattr(sys, "argv", ["frontdesk-ops", "--init-config"])

        with patch("frontdesk_ops.mcp.server.setup_logging"):
            server.run()

        assert (tmp_path / ".frontdesk" / "config.yml").exists()

    def test_startup_failure_exits_with_1(self, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["frontdesk-ops"])

        def fail(coro):
            coro.close()
            raise RuntimeError("Configuration error")

        with patch("frontdesk_ops.mcp.server.asyncio.run", side_effect=fail):
            with pytest.raises(SystemExit) as exc_info:
                server.run()
        assert exc_info.value.code == 1
