"""Structured logging configuration with correlation fields."""
import logging
import json
import sys
import uuid
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from contextvars import ContextVar

# Context variables for log correlation
current_request_id: ContextVar[str] = ContextVar("request_id", default="")
current_spreadsheet_id: ContextVar[str] = ContextVar("spreadsheet_id", default="")
current_sheet_name: ContextVar[str] = ContextVar("sheet_name", default="")
current_run_id: ContextVar[str] = ContextVar("run_id", default="")

_CONTEXT_VARS = {
    "request_id": current_request_id,
    "spreadsheet_id": current_spreadsheet_id,
    "sheet_name": current_sheet_name,
    "run_id": current_run_id,
}


def generate_run_id() -> str:
    """Generate a unique run ID for reprocessing runs."""
    return f"run_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"


def set_context(
    request_id: Optional[str] = None,
    spreadsheet_id: Optional[str] = None,
    sheet_name: Optional[str] = None,
    run_id: Optional[str] = None,
) -> None:
    """Set logging context variables."""
    if request_id is not None:
        current_request_id.set(request_id)
    if spreadsheet_id is not None:
        current_spreadsheet_id.set(spreadsheet_id)
    if sheet_name is not None:
        current_sheet_name.set(sheet_name)
    if run_id is not None:
        current_run_id.set(run_id)


def clear_context() -> None:
    """Clear all logging context variables."""
    for var in _CONTEXT_VARS.values():
        var.set("")


class JSONFormatter(logging.Formatter):
    """JSON log formatter with correlation fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for name, var in _CONTEXT_VARS.items():
            if value := var.get():
                log_data[name] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter with correlation fields."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        ctx_parts = []
        if request_id := current_request_id.get():
            ctx_parts.append(f"req={request_id}")
        if sheet_name := current_sheet_name.get():
            ctx_parts.append(f"sheet={sheet_name}")
        if run_id := current_run_id.get():
            ctx_parts.append(f"run={run_id[:24]}")

        ctx_str = f" [{', '.join(ctx_parts)}]" if ctx_parts else ""

        msg = f"{timestamp} {record.levelname:8s} {record.name}{ctx_str}: {record.getMessage()}"

        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)

        return msg


# Third-party loggers that drown out request logs at INFO
NOISY_LOGGERS = ("googleapiclient.discovery", "googleapiclient.discovery_cache", "urllib3")


def setup_logging(
    level: str = "INFO",
    format_type: str = "text",
    logger_name: Optional[str] = None,
) -> logging.Logger:
    """
    Install one stdout handler with the text or JSON formatter.

    Args:
        level: Log level name; unknown names fall back to INFO
        format_type: "json" for structured logs, anything else for text
        logger_name: Configure a named logger instead of the root logger

    Returns:
        The configured logger
    """
    numeric_level = getattr(logging, str(level).upper(), logging.INFO)
    formatter = JSONFormatter() if str(format_type).lower() == "json" else TextFormatter()

    logger = logging.getLogger(logger_name)
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    if logger_name is not None:
        logger.propagate = False

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    return logger


class LogContext:
    """Context manager for setting and clearing log context."""

    def __init__(
        self,
        request_id: Optional[str] = None,
        spreadsheet_id: Optional[str] = None,
        sheet_name: Optional[str] = None,
        run_id: Optional[str] = None,
    ):
        self._values = {
            "request_id": request_id,
            "spreadsheet_id": spreadsheet_id,
            "sheet_name": sheet_name,
            "run_id": run_id,
        }
        self._tokens = {}

    def __enter__(self):
        for name, value in self._values.items():
            if value:
                self._tokens[name] = _CONTEXT_VARS[name].set(value)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        for name, token in self._tokens.items():
            _CONTEXT_VARS[name].reset(token)
        return False
