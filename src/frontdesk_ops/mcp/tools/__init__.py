"""MCP tool handlers for front desk operations.

This package wraps the core services with async handlers and structured
error responses.
"""

from .errors import build_error_response, translate_error
from .members import MEMBER_SPECS
from .records import RECORD_SPECS
from .registry import ToolRegistry, ToolSpec
from .sync import SYNC_SPECS
from .system import SYSTEM_SPECS

ALL_SPECS: list[ToolSpec] = (
    SYSTEM_SPECS + MEMBER_SPECS + RECORD_SPECS + SYNC_SPECS
)

__all__ = [
    "build_error_response",
    "translate_error",
    "ToolSpec",
    "ToolRegistry",
    "ALL_SPECS",
    "SYSTEM_SPECS",
    "MEMBER_SPECS",
    "RECORD_SPECS",
    "SYNC_SPECS",
]
