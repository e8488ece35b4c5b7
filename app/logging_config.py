"""
Structured JSON logging for storage observability.

Provides a single-line JSON formatter plus a context manager that times
provider operations (put/delete/exists) and records their outcome.
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime

# Context variable for request correlation
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Extra fields copied from LogRecord onto the JSON payload
_EXTRA_FIELDS = (
    "event",
    "provider",
    "providers",
    "driver",
    "operation",
    "key",
    "url",
    "path",
    "public_id",
    "size_bytes",
    "duration_ms",
    "original_name",
    "error",
)


# -----------------------------------------------------------------------------
# JSON Formatter
# -----------------------------------------------------------------------------


class JSONFormatter(logging.Formatter):
    """
    Format log records as single-line JSON.

    Output format:
    {"timestamp": "...", "level": "INFO", "message": "...", "provider": "...", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in _EXTRA_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str)


# Client libraries that log every request at INFO/DEBUG
_NOISY_LOGGERS = ("botocore", "boto3", "s3transfer", "urllib3", "cloudinary", "httpx", "PIL")


def configure_logging(json_format: bool = True, level: str = "INFO") -> None:
    """
    Configure root logging for the API and the CLI.

    Args:
        json_format: Single-line JSON (LOG_JSON=true) or plain text lines
        level: Root level name, e.g. "INFO" or "debug"
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    formatter = JSONFormatter() if json_format else logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(numeric_level)
    stream_handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(numeric_level)
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(stream_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


# -----------------------------------------------------------------------------
# Context Managers
# -----------------------------------------------------------------------------


@contextmanager
def log_storage_operation(provider: str, operation: str, key: str):
    """
    Context manager for provider operation instrumentation.

    Logs completion at DEBUG with timing and size. Failures are logged at
    DEBUG too and re-raised: the gateway decides how loud a failure is.

    Usage:
        with log_storage_operation("s3", "put", "avatars/a.jpg") as metrics:
            client.upload_fileobj(...)
            metrics["size_bytes"] = upload.size
    """
    start_time = time.time()
    logger = logging.getLogger("storage.operations")
    metrics: dict = {"size_bytes": 0}

    try:
        yield metrics

        duration_ms = int((time.time() - start_time) * 1000)
        logger.debug(
            f"{provider} {operation} completed: {key} ({metrics['size_bytes']} bytes, {duration_ms}ms)",
            extra={
                "event": f"{provider}_{operation}_complete",
                "provider": provider,
                "operation": operation,
                "key": key,
                "duration_ms": duration_ms,
                "size_bytes": metrics["size_bytes"],
            },
        )
    except Exception as e:
        duration_ms = int((time.time() - start_time) * 1000)
        logger.debug(
            f"{provider} {operation} failed: {key} - {e}",
            extra={
                "event": f"{provider}_{operation}_failed",
                "provider": provider,
                "operation": operation,
                "key": key,
                "duration_ms": duration_ms,
                "error": str(e),
            },
        )
        raise
