"""Logging setup with job context.

Records emitted inside a ``JobContext`` carry the AutomationJob id (and the
Video id when there is one), both in JSON output and in the plain format.
"""
from __future__ import annotations

from contextvars import ContextVar
from datetime import UTC, datetime
import json
import logging
import os
import sys

current_job_id: ContextVar[int | None] = ContextVar("current_job_id", default=None)
current_video_id: ContextVar[int | None] = ContextVar("current_video_id", default=None)

PLAIN_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s |%(job_tag)s %(message)s"


class JobContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.job_id = current_job_id.get()
        record.video_id = current_video_id.get()
        tags = []
        if record.job_id is not None:
            tags.append(f"job={record.job_id}")
        if record.video_id is not None:
            tags.append(f"video={record.video_id}")
        record.job_tag = f" [{' '.join(tags)}]" if tags else ""
        return True


class StructuredFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if getattr(record, "job_id", None) is not None:
            payload["job_id"] = record.job_id
        if getattr(record, "video_id", None) is not None:
            payload["video_id"] = record.video_id
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def setup_logging(level: str | None = None, structured: bool | None = None) -> None:
    """Configure the root logger once per process.

    Args:
        level: Log level name, defaults to ``LOG_LEVEL`` or INFO.
        structured: JSON lines when true, defaults to ``LOG_JSON=1``.
    """
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if structured is None:
        structured = os.getenv("LOG_JSON", "0").lower() in {"1", "true", "yes"}

    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(JobContextFilter())
    if structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
    root.addHandler(handler)


class JobContext:
    """
    Context manager that tags log records with a job (and video) id.

    Usage:
        with JobContext(job_id=12, video_id=3):
            logger.info("Rendering...")
    """

    def __init__(self, job_id: int | None = None, video_id: int | None = None) -> None:
        self.job_id = job_id
        self.video_id = video_id
        self._tokens: list = []

    def set_video(self, video_id: int) -> None:
        self._tokens.append((current_video_id, current_video_id.set(video_id)))

    def __enter__(self) -> "JobContext":
        if self.job_id is not None:
            self._tokens.append((current_job_id, current_job_id.set(self.job_id)))
        if self.video_id is not None:
            self.set_video(self.video_id)
        return self

    def __exit__(self, *exc) -> None:
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()
