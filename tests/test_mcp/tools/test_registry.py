"""Tests for ToolSpec and ToolRegistry.

Covers:
- ToolSpec creation and immutability
- ToolRegistry read-only filtering
- ToolRegistry list_tools, tool_count, call_tool and error translation
"""

import asyncio
import sqlite3
import unittest
from unittest.mock import MagicMock

import mcp.types as types

from frontdesk_ops.errors import RemoteUnavailable
from frontdesk_ops.mcp.tools import ALL_SPECS
from frontdesk_ops.mcp.tools.registry import ToolRegistry, ToolSpec


def _make_spec(name: str, writes: bool = False, handler=None) -> ToolSpec:
    """Helper to create a ToolSpec for testing."""
    if handler is None:

        async def handler(services, args):
            return types.CallToolResult(
                content=[types.TextContent(type="text", text=f"ok:{name}")]
            )

    return ToolSpec(
        tool=types.Tool(
            name=name,
            description=f"Test tool {name}",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        writes=writes,
        handler=handler,
    )


def _raising(exc):
    async def handler(services, args):
        raise exc

    return handler


class TestToolSpec(unittest.TestCase):
    def test_creation(self):
        spec = _make_spec("member_get")
        self.assertEqual(spec.tool.name, "member_get")
        self.assertFalse(spec.writes)

    def test_frozen(self):
        spec = _make_spec("member_get")
        with self.assertRaises(AttributeError):
            spec.writes = True


class TestToolRegistry(unittest.TestCase):
    def setUp(self):
        self.specs = [
            _make_spec("ping"),
            _make_spec("member_search"),
            _make_spec("member_update", writes=True),
            _make_spec("checkin_create", writes=True),
        ]

    def test_all_tools_registered_by_default(self):
        registry = ToolRegistry(self.specs)
        self.assertEqual(registry.tool_count(), 4)

    def test_read_only_drops_write_tools(self):
        registry = ToolRegistry(self.specs, read_only=True)
        names = [t.name for t in registry.list_tools()]
        self.assertEqual(names, ["ping", "member_search"])

    def test_filtered_tool_reported_as_disabled(self):
        registry = ToolRegistry(self.specs, read_only=True)
        with self.assertRaises(ValueError) as ctx:
            asyncio.run(registry.call_tool("member_update", {}, MagicMock()))
        self.assertIn("disabled in read-only mode", str(ctx.exception))

    def test_call_tool_dispatches_to_handler(self):
        calls = []

        async def handler(services, args):
            calls.append((services, args))
            return types.CallToolResult(
                content=[types.TextContent(type="text", text="dispatched")]
            )

        registry = ToolRegistry([_make_spec("dispatch", handler=handler)])
        services = MagicMock()

        result = asyncio.run(
            registry.call_tool("dispatch", {"key": "val"}, services)
        )

        self.assertEqual(calls, [(services, {"key": "val"})])
        self.assertEqual(result.content[0].text, "dispatched")

    def test_call_tool_none_arguments(self):
        calls = []

        async def handler(services, args):
            calls.append(args)
            return types.CallToolResult(content=[])

        registry = ToolRegistry([_make_spec("none_args", handler=handler)])
        asyncio.run(registry.call_tool("none_args", None, MagicMock()))
        self.assertEqual(calls, [{}])

    def test_unknown_tool_raises_value_error(self):
        registry = ToolRegistry(self.specs)
        with self.assertRaises(ValueError) as ctx:
            asyncio.run(registry.call_tool("nope", {}, MagicMock()))
        self.assertIn("Unknown tool: nope", str(ctx.exception))


class TestCallToolErrorTranslation(unittest.TestCase):
    def _call(self, exc):
        registry = ToolRegistry([_make_spec("t", handler=_raising(exc))])
        return asyncio.run(registry.call_tool("t", {}, MagicMock()))

    def test_front_desk_error_translated(self):
        result = self._call(RemoteUnavailable("directory down"))
        self.assertTrue(result.isError)
        self.assertIn("remote_unavailable", result.content[0].text)
        self.assertIn("directory down", result.content[0].text)

    def test_value_error_is_validation_error(self):
        result = self._call(ValueError("bad limit"))
        self.assertTrue(result.isError)
        self.assertIn("validation_error", result.content[0].text)

    def test_cache_read_error_is_store_error(self):
        result = self._call(sqlite3.OperationalError("database is locked"))
        self.assertTrue(result.isError)
        self.assertIn("store_error", result.content[0].text)
        self.assertIn("database is locked", result.content[0].text)

    def test_unexpected_error_is_server_error(self):
        result = self._call(KeyError("oops"))
        self.assertTrue(result.isError)
        self.assertIn("server_error", result.content[0].text)


class TestShippedSpecs(unittest.TestCase):
    def test_tool_names_are_unique(self):
        names = [s.tool.name for s in ALL_SPECS]
        self.assertEqual(len(names), len(set(names)))

    def test_read_only_keeps_every_lookup(self):
        registry = ToolRegistry(ALL_SPECS, read_only=True)
        names = {t.name for t in registry.list_tools()}
        self.assertIn("member_search", names)
        self.assertIn("connection_status", names)
        self.assertIn("sync_status", names)
        self.assertNotIn("member_update", names)
        self.assertNotIn("incident_create", names)
