"""
Centralized Logging
-------------------
Structured logging with request_id propagation for tool call traceability.

Design:
- Every tool invocation gets a unique request_id
- request_id propagates through: Tool handler -> Executor -> Transport
- Console output goes to stderr via Rich (stdout is the MCP channel)
- Optional JSON-lines file output
- Severity discipline: DEBUG=attempts, INFO=lifecycle, WARNING=retries,
  ERROR=failed calls

Usage:
    from infra.logging import get_logger, RequestContext

    logger = get_logger("tools.factory")

    with RequestContext(tool_name="evolution_send_text") as request_id:
        logger.info("Calling tool")
"""

from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional
import contextvars
import json
import logging
import uuid

from rich.console import Console
from rich.logging import RichHandler


ROOT_LOGGER = "evolution"

# Context variables are task-local under asyncio
_request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)
_tool_name_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "tool_name", default=None
)


def generate_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


def get_request_id() -> Optional[str]:
    return _request_id_var.get()


def get_tool_name() -> Optional[str]:
    return _tool_name_var.get()


class RequestContext:
    """
    Scope for one tool invocation.

    Usage:
        with RequestContext(tool_name="evolution_send_text") as request_id:
            logger.info("Processing...")
    """

    def __init__(self, request_id: Optional[str] = None, tool_name: Optional[str] = None):
        self.request_id = request_id or generate_request_id()
        self.tool_name = tool_name
        self._tokens = []

    def __enter__(self) -> str:
        self._tokens.append((_request_id_var, _request_id_var.set(self.request_id)))
        if self.tool_name is not None:
            self._tokens.append((_tool_name_var, _tool_name_var.set(self.tool_name)))
        return self.request_id

    def __exit__(self, *args) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)


class RequestIdFilter(logging.Filter):
    """Adds request_id and tool_name from context to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id() or "-"
        if getattr(record, "tool_name", None) is None:
            record.tool_name = get_tool_name() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """JSON-lines formatter for file logging."""

    EXTRA_FIELDS = (
        "tool_name", "attempt", "status_code", "error_kind",
        "execution_time_ms", "success",
    )

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key in self.EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None and value != "-":
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Prefix console messages with the request id when one is active."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        request_id = getattr(record, "request_id", "-")
        if request_id and request_id != "-":
            return f"[{request_id}] {record.name}: {message}"
        return f"{record.name}: {message}"


_logging_initialized = False
_log_file_path: Optional[Path] = None


def configure_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    console: bool = True,
    file: bool = False,
) -> None:
    """
    Configure the `evolution` logger tree. Safe to call more than once.

    Args:
        level: Console logging level
        log_dir: Directory for the JSON log file (default: ./logs)
        console: Enable Rich console output on stderr
        file: Enable JSON-lines file output
    """
    global _logging_initialized, _log_file_path

    if _logging_initialized:
        return

    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(logging.DEBUG if file else level)
    root_logger.handlers.clear()
    root_logger.propagate = False

    request_filter = RequestIdFilter()

    if console:
        console_handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        console_handler.setLevel(level)
        console_handler.setFormatter(ConsoleFormatter())
        console_handler.addFilter(request_filter)
        root_logger.addHandler(console_handler)

    if file:
        log_path = Path(log_dir) if log_dir else Path("logs")
        log_path.mkdir(parents=True, exist_ok=True)
        _log_file_path = log_path / "evolution-api-mcp.log"

        file_handler = RotatingFileHandler(
            str(_log_file_path), maxBytes=10 * 1024 * 1024, backupCount=3, encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter())
        file_handler.addFilter(request_filter)
        root_logger.addHandler(file_handler)

    _logging_initialized = True


def get_logger(name: str) -> logging.Logger:
    """Logger under the `evolution.` namespace."""
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def log_call_end(tool_name: str, success: bool, elapsed_ms: float, error: Optional[str] = None) -> None:
    """Boundary event closing one tool call."""
    logger = get_logger("tools.calls")
    extra = {
        "tool_name": tool_name,
        "success": success,
        "execution_time_ms": round(elapsed_ms, 1),
    }

    if success:
        logger.info(f"CALL_END: {tool_name} ok in {elapsed_ms:.0f}ms", extra=extra)
    else:
        logger.warning(f"CALL_END: {tool_name} failed: {error or 'Unknown'}", extra=extra)

