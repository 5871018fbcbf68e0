"""Logging setup for the MCP server and the CLI.

In "mcp" mode stdout carries the JSON-RPC stream, so records only ever go
to a file. Every handler carries the shared ``SecretMask`` filter: values
passed to ``mask_secret`` (API keys, client secrets, issued tokens) are
replaced before any record is written.
"""

import json
import logging
import os
import sys
import threading

DEFAULT_LOG_FILE = "/tmp/frontdesk-ops.log"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MASK = "[redacted]"

# Chatty below WARNING; only let them through at DEBUG.
NOISY_LOGGERS = ("urllib3", "asyncio")

TEXT_FORMATS = {
    "stderr": "[%(asctime)s] [%(levelname)s] %(message)s",
    "file": "[%(asctime)s] [%(levelname)s] %(name)s %(message)s",
}


class SecretMask(logging.Filter):
    """Replaces registered secret values in the rendered message."""

    def __init__(self) -> None:
        super().__init__()
        self._secrets: set[str] = set()
        self._lock = threading.Lock()

    def add(self, value: str) -> None:
        # short values would mask ordinary words
        if value and len(value) >= 6:
            with self._lock:
                self._secrets.add(value)

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        message = record.getMessage()
        masked = message
        for secret in self._secrets:
            masked = masked.replace(secret, MASK)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


_secret_mask = SecretMask()


def mask_secret(*values: str | None) -> None:
    """Register values that must never appear in log output."""
    for value in values:
        if value:
            _secret_mask.add(value)


class JsonFormatter(logging.Formatter):
    """One JSON object per record: ts, level, logger, msg and exc if any."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _resolve_level(mode: str, debug: bool) -> int:
    if debug:
        return logging.DEBUG
    name = os.getenv("LOG_LEVEL", "WARNING" if mode == "mcp" else "INFO")
    return getattr(logging, name.upper(), logging.INFO)


def _handler(
    handler: logging.Handler, target: str, debug_format: str
) -> logging.Handler:
    if debug_format == "json":
        handler.setFormatter(JsonFormatter(datefmt=DATE_FORMAT))
    else:
        handler.setFormatter(
            logging.Formatter(TEXT_FORMATS[target], datefmt=DATE_FORMAT)
        )
    handler.addFilter(_secret_mask)
    return handler


def setup_logging(
    mode: str = "cli",
    debug: bool = False,
    log_file: str | None = None,
    debug_format: str = "text",
) -> None:
    """
    Configure the root logger for the given execution mode.

    Args:
        mode: "mcp" logs to a file only (``log_file``, then ``LOG_FILE``,
            then /tmp/frontdesk-ops.log); "cli" logs to stderr and, when
            ``log_file`` is given, to that file as well.
        debug: Force DEBUG regardless of ``LOG_LEVEL``.
        log_file: Log file path.
        debug_format: "text" or "json".

    ``LOG_LEVEL`` defaults to WARNING in MCP mode and INFO in CLI mode.
    """
    level = _resolve_level(mode, debug)

    handlers: list[logging.Handler] = []
    if mode == "mcp":
        path = log_file or os.getenv("LOG_FILE", DEFAULT_LOG_FILE)
        handlers.append(
            _handler(logging.FileHandler(path, mode="a"), "file", debug_format)
        )
    else:
        handlers.append(
            _handler(logging.StreamHandler(sys.stderr), "stderr", debug_format)
        )
        if log_file:
            handlers.append(
                _handler(
                    logging.FileHandler(log_file, mode="a"), "file", debug_format
                )
            )

    logging.basicConfig(level=level, handlers=handlers)

    if level != logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
