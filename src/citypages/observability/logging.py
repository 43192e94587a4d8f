"""Structured logging tagged with the request and job a line belongs to.

Two ContextVars travel through await chains and into background tasks:
correlation_id (set per HTTP request) and current_job_id (set for the whole
orchestrator run). JobContextFilter copies both onto every record, so a job
can be followed from the POST that created it to its final write in either
the JSON or the text format.
"""

import json
import logging
from contextvars import ContextVar
from datetime import datetime, timezone

correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")
current_job_id: ContextVar[str] = ContextVar("current_job_id", default="")

# Optional per-call fields, passed as logger.info("msg", extra={...})
EXTRA_FIELDS = ("city_id", "section", "step", "progress", "duration_ms")

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [job=%(job_id)s req=%(correlation_id)s]: %(message)s"


def get_correlation_id() -> str:
    """Return the current correlation ID, or empty string if not set."""
    return correlation_id.get()


class JobContextFilter(logging.Filter):
    """Stamp records with the active correlation and job ids.

    An explicit extra={"job_id": ...} wins over the context, which matters
    for lines logged before a job's run starts (e.g. job creation).
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "job_id", None):
            record.job_id = current_job_id.get() or "-"
        if not getattr(record, "correlation_id", None):
            record.correlation_id = correlation_id.get() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record; "-" placeholders are left out."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in ("correlation_id", "job_id"):
            val = getattr(record, key, None)
            if val and val != "-":
                entry[key] = val
        for key in EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(json_format: bool = True, level: str = "INFO") -> None:
    """Install a single stderr handler on the root logger.

    Args:
        json_format: JSON lines for log aggregation, else human-readable text.
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
    """
    handler = logging.StreamHandler()
    handler.addFilter(JobContextFilter())
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for noisy in ("httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
