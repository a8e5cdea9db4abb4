"""Structured JSON logging utilities.

- JSON format for log aggregation
- Includes request_id, vault_id, cluster_id and tool from context variables
- Standard fields: timestamp, level, message, module, func, line
- Every message and extra value passes through the sanitizer
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from vaultgate_api.context import cluster_id_var, request_id_var, tool_name_var, vault_id_var
from vaultgate_api.utils.sanitize import sanitize_exc, sanitize_obj, sanitize_str

# LogRecord attributes that are not user-supplied extras.
_RESERVED_ATTRS = frozenset({
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "thread",
    "threadName",
    "taskName",
    "exc_info",
    "exc_text",
    "stack_info",
})

_CONTEXT_FIELDS = (
    ("request_id", request_id_var),
    ("vault_id", vault_id_var),
    ("cluster_id", cluster_id_var),
    ("tool", tool_name_var),
)


class JSONFormatter(logging.Formatter):
    """JSON log formatter with request context.

    Formats log records as JSON with standard fields:
    - timestamp: ISO 8601 UTC
    - level: log level (INFO, ERROR, etc.)
    - message: log message
    - module: Python module name
    - func: function name
    - line: line number
    - request_id / vault_id / cluster_id / tool: from context variables (if set)

    Credentials never appear: they are not stored in context variables, and
    any that reach a message or extra are redacted by the sanitizer.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON string."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": sanitize_str(record.getMessage()),
            "module": record.module,
            "func": record.funcName,
            "line": record.lineno,
        }

        for field, var in _CONTEXT_FIELDS:
            value = var.get()
            if value:
                log_data[field] = value

        if record.exc_info:
            log_data["exc_info"] = sanitize_exc(record.exc_info)

        # Extra fields from logger.info(..., extra={...}); sanitized as one
        # dict so sensitive key names are redacted at the top level too.
        extras = {key: value for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS}
        log_data.update(sanitize_obj(extras))

        return json.dumps(log_data, default=str)


def configure_json_logging(log_level: str = "INFO") -> None:
    """Configure root logger with JSON formatter.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)
