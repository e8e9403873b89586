"""
Postboard Logging Configuration
Structured logging with per-component fields and redaction of secrets
"""
import logging
import sys
import json
import traceback
from datetime import datetime, timezone
from typing import Iterable, Optional
from functools import wraps
import time
import os

# ============================================================
# LOG LEVELS
# ============================================================

LOG_LEVEL = os.environ.get("POSTBOARD_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.environ.get("POSTBOARD_LOG_FORMAT", "json")  # json or text
SERVICE_NAME = "postboard-api"
REDACTED = "[redacted]"

# ============================================================
# STRUCTURED LOGGING
# ============================================================

class StructuredLogger:
    """
    Logger that attaches a component name and bound fields to every record.

    `bind()` returns a child sharing the same handlers, so a media store can
    stamp its directory on each line. Context keys listed in `redact` are
    replaced before the record leaves the process.
    """

    def __init__(
        self,
        name: str,
        component: Optional[str] = None,
        redact: Iterable[str] = (),
        **fields,
    ):
        self.name = name
        self.component = component or name.rsplit(".", 1)[-1]
        self.redact = frozenset(redact)
        self.fields = fields
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(StructuredFormatter() if LOG_FORMAT == "json" else TextFormatter())
            self.logger.addHandler(handler)

    def bind(self, **fields) -> "StructuredLogger":
        return StructuredLogger(self.name, self.component, self.redact, **{**self.fields, **fields})

    def _log(self, level: str, message: str, **context):
        context = {**self.fields, **context}
        for key in self.redact.intersection(context):
            context[key] = REDACTED
        extra = {
            "context": context,
            "logger_name": self.name,
            "component": self.component,
        }
        getattr(self.logger, level)(message, extra=extra)

    def debug(self, message: str, **context):
        self._log("debug", message, **context)

    def info(self, message: str, **context):
        self._log("info", message, **context)

    def warning(self, message: str, **context):
        self._log("warning", message, **context)

    def error(self, message: str, error: Optional[Exception] = None, **context):
        if error:
            context["error_type"] = type(error).__name__
            context["error_message"] = str(error)
            context["traceback"] = traceback.format_exc()
        self._log("error", message, **context)


class StructuredFormatter(logging.Formatter):
    """One JSON object per line"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "service": SERVICE_NAME,
            "component": getattr(record, "component", record.name),
            "level": record.levelname,
            "logger": getattr(record, "logger_name", record.name),
            "message": record.getMessage(),
        }

        if hasattr(record, "context"):
            log_data.update(record.context)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """`HH:MM:SS LEVEL [component] message (k=v ...)` for local runs"""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%H:%M:%S")
        line = f"{timestamp} {record.levelname:<7} [{getattr(record, 'component', record.name)}] {record.getMessage()}"

        context = getattr(record, "context", None) or {}
        context_str = " ".join(f"{k}={v}" for k, v in context.items() if k != "traceback")
        if context_str:
            line = f"{line} ({context_str})"
        if "traceback" in context:
            line = f"{line}\n{context['traceback']}"
        return line


# ============================================================
# FUNCTION TIMING DECORATOR
# ============================================================

def timed(logger: StructuredLogger):
    """Decorator to log how long a blocking call took."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"{func.__name__} failed",
                    error=e,
                    function=func.__name__,
                    duration_ms=round((time.time() - start) * 1000, 2),
                )
                raise
            logger.debug(
                f"{func.__name__} completed",
                function=func.__name__,
                duration_ms=round((time.time() - start) * 1000, 2),
            )
            return result

        return wrapper

    return decorator


# ============================================================
# LOGGER INSTANCES
# ============================================================

api_logger = StructuredLogger("postboard.api")
auth_logger = StructuredLogger("postboard.auth", redact=("token", "password", "old_password", "new_password"))
db_logger = StructuredLogger("postboard.db")
media_logger = StructuredLogger("postboard.media")


def get_logger(name: str) -> StructuredLogger:
    """Get or create a logger by name"""
    return StructuredLogger(f"postboard.{name}")
