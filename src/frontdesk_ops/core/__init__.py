"""Remote directory access shared between the CLI and the MCP server."""

from .async_utils import run_sync, run_sync_bounded
from .auth import AuthenticationManager
from .client import RemoteDirectoryClient

__all__ = [
    "AuthenticationManager",
    "RemoteDirectoryClient",
    "run_sync",
    "run_sync_bounded",
]
