"""Logging setup for the ERPNext MCP system.

Provides the tool-call audit logger, a JSON formatter for structured logs,
redaction of credentials before they reach any handler, and the
``log_mcp_call`` decorator applied to every registered tool.
"""

from __future__ import annotations

import datetime
import functools
import inspect
import json
import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from .metrics_config import record_tool_call_error
from .metrics_config import record_tool_call_start
from .metrics_config import record_tool_call_success

SENSITIVE_FIELDS = ("api_key", "api_secret", "apiKey", "apiSecret", "password", "token")
REDACTED = "[REDACTED]"


class StructuredLogFormatter(logging.Formatter):
    """Format log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.datetime.fromtimestamp(record.created, tz=datetime.timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": "erpnext-mcp",
        }
        context = getattr(record, "context", None)
        if context:
            log_entry["context"] = redact_sensitive_data(context)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def redact_sensitive_data(data: Any) -> Any:
    """Return a shallow copy of ``data`` with credential fields masked."""
    if not isinstance(data, dict):
        return data
    redacted = dict(data)
    for field in SENSITIVE_FIELDS:
        if field in redacted:
            redacted[field] = REDACTED
    return redacted


def configure_logging(level: str = "INFO", structured: bool = True) -> None:
    """Attach a console handler to the package logger."""
    package_logger = logging.getLogger("erpnext_mcp")
    package_logger.setLevel(level)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    handler = logging.StreamHandler()
    if structured:
        handler.setFormatter(StructuredLogFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    package_logger.addHandler(handler)


# --- Tool Call Logging Setup ---
mcp_call_logger = logging.getLogger("mcp_call_logger")
mcp_call_logger.setLevel(logging.INFO)

log_dir = Path(os.environ.get("MCP_LOG_DIR", Path(__file__).resolve().parent))
log_dir.mkdir(parents=True, exist_ok=True)
log_file_path = log_dir / "mcp_calls.log"

# 10MB per file, 5 backups
file_handler = RotatingFileHandler(log_file_path, maxBytes=10 * 1024 * 1024, backupCount=5)
file_handler.setFormatter(StructuredLogFormatter())
mcp_call_logger.addHandler(file_handler)
mcp_call_logger.propagate = False


def _dump(value: Any) -> str:
    if hasattr(value, "model_dump_json"):
        return value.model_dump_json(exclude_none=True)
    if isinstance(value, dict):
        return json.dumps(redact_sensitive_data(value), default=str)
    return repr(value)


def _format_call(func_name: str, kwargs: dict[str, Any]) -> str:
    try:
        logged_kwargs = {k: REDACTED if k in SENSITIVE_FIELDS else _dump(v) for k, v in kwargs.items()}
        return f"Calling tool: {func_name} with kwargs={logged_kwargs}"
    except Exception as e:
        return f"Calling tool: {func_name} (kwargs logging error: {e})"


def log_mcp_call(func):
    """Log the arguments, result and failures of an MCP tool.

    Works for both plain and ``async def`` tools; credentials passed as keyword
    arguments are never written to the log.
    """
    func_name = getattr(func, "__name__", "unknown_function")

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = record_tool_call_start()
            mcp_call_logger.info(_format_call(func_name, kwargs))
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                record_tool_call_error(func_name, start_time, e)
                mcp_call_logger.error(f"Tool {func_name} raised exception: {e}", exc_info=True)
                raise
            record_tool_call_success(func_name, start_time)
            mcp_call_logger.info(f"Tool {func_name} returned: {_dump(result)}")
            return result

        return async_wrapper

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = record_tool_call_start()
        mcp_call_logger.info(_format_call(func_name, kwargs))
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            record_tool_call_error(func_name, start_time, e)
            mcp_call_logger.error(f"Tool {func_name} raised exception: {e}", exc_info=True)
            raise
        record_tool_call_success(func_name, start_time)
        mcp_call_logger.info(f"Tool {func_name} returned: {_dump(result)}")
        return result

    return wrapper
