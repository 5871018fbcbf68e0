"""Tool table for the MCP server.

A ``ToolSpec`` ties an MCP tool definition to its handler and records
whether the tool writes (cache rows, ledger rows or remote members).
A ``ToolRegistry`` built with ``read_only=True`` (a lobby kiosk, say)
hides the writing tools; calling one reports it as disabled rather than
unknown.
"""

import logging
import sqlite3
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import mcp.types as types

from ...errors import FrontDeskError
from ...services import FrontDesk
from .errors import build_error_response, translate_error

logger = logging.getLogger(__name__)

Handler = Callable[[FrontDesk, dict], Awaitable[types.CallToolResult]]


@dataclass(frozen=True, slots=True)
class ToolSpec:
    tool: types.Tool
    writes: bool
    handler: Handler


class ToolRegistry:
    def __init__(self, specs: list[ToolSpec], read_only: bool = False):
        self.read_only = read_only
        self._specs = {
            s.tool.name: s for s in specs if not (read_only and s.writes)
        }
        self._disabled = frozenset(
            s.tool.name for s in specs if read_only and s.writes
        )

    def list_tools(self) -> list[types.Tool]:
        return [spec.tool for spec in self._specs.values()]

    def tool_count(self) -> int:
        return len(self._specs)

    async def call_tool(
        self,
        name: str,
        arguments: dict | None,
        services: FrontDesk,
    ) -> types.CallToolResult:
        """Run the handler for ``name`` and turn failures into error results.

        Domain errors map to their corrective actions, ``ValueError`` to a
        validation error, and a failing local store read to ``store_error``.

        Raises:
            ValueError: ``name`` is not registered or is disabled in
                read-only mode.
        """
        spec = self._specs.get(name)
        if spec is None:
            if name in self._disabled:
                raise ValueError(f"Tool {name} is disabled in read-only mode")
            raise ValueError(f"Unknown tool: {name}")

        try:
            return await spec.handler(services, arguments or {})
        except FrontDeskError as e:
            logger.warning("%s failed: %s", name, e)
            return translate_error(e)
        except ValueError as e:
            return build_error_response(
                "validation_error", str(e), "Check parameter values and retry."
            )
        except sqlite3.Error as e:
            logger.error("%s: local cache read failed: %s", name, e)
            return build_error_response(
                "store_error",
                f"Local cache query failed: {e}",
                "Check the cache database file and retry.",
            )
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            return build_error_response(
                "server_error", str(e), "Check the server log and retry."
            )
