"""
Structured scheduler events.

Each record describes one thing that happened to one node: the event name,
the node id and the revision it concerns, plus free-form fields. Records
render as one JSON object per line (or a short human-readable line).

Where records go:
    - ``output`` given: written to that stream
    - otherwise: handed to ``logging.getLogger(__name__)`` at the record's
      level, so whatever handlers the application configured pick them up
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, TextIO

logger = logging.getLogger(__name__)


class LogLevel(Enum):
    """Severity of a scheduler event."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def numeric(self) -> int:
        """The matching stdlib logging level."""
        return getattr(logging, self.name)


@dataclass(frozen=True)
class LogRecord:
    """One scheduler event.

    Attributes:
        level: Severity name.
        event: Event name (``evaluation_complete``, ``node_failed``, ...).
        node_id: Node the event is about, if any.
        revision: Node revision the event is about, if any.
        message: Human-readable summary.
        data: Bound context plus per-event fields.
    """

    level: str
    event: str
    node_id: str | None = None
    revision: int | None = None
    message: str = ""
    data: Mapping[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
    logger_name: str = ""
    thread_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Flat mapping: fixed keys first, then ``data`` merged in."""
        d: dict[str, Any] = {
            "level": self.level,
            "event": self.event,
            "message": self.message,
            "timestamp": self.timestamp,
            "logger_name": self.logger_name,
            "thread_name": self.thread_name,
        }
        if self.node_id is not None:
            d["node_id"] = self.node_id
        if self.revision is not None:
            d["revision"] = self.revision
        d.update(self.data)
        return d


class StructuredLogger:
    """Structured event logging for the scheduler.

    Example:
        events = StructuredLogger("soundgraph", level=LogLevel.DEBUG)
        events.evaluation_complete("vol", revision=3, duration_ms=4.2)
        # {"level": "debug", "event": "evaluation_complete",
        #  "node_id": "vol", "revision": 3, "duration_ms": 4.2, ...}

        session = events.bind(session_id="abc123")
    """

    def __init__(
        self,
        name: str = "soundgraph",
        level: LogLevel = LogLevel.INFO,
        output: TextIO | None = None,
        json_format: bool = True,
        context: Mapping[str, Any] | None = None,
    ):
        self.name = name
        self._level = level
        self._output = output
        self._json_format = json_format
        self._context = dict(context or {})
        self._lock = threading.Lock()

    @property
    def level(self) -> LogLevel:
        return self._level

    def bind(self, **context: Any) -> StructuredLogger:
        """Logger sharing this one's settings, with extra fields on every record."""
        return StructuredLogger(
            name=self.name,
            level=self._level,
            output=self._output,
            json_format=self._json_format,
            context={**self._context, **context},
        )

    def enabled(self, level: LogLevel) -> bool:
        return level.numeric >= self._level.numeric

    def event(
        self,
        name: str,
        node_id: str | None = None,
        revision: int | None = None,
        message: str = "",
        level: LogLevel = LogLevel.DEBUG,
        **data: Any,
    ) -> LogRecord | None:
        """
        Record one event.

        Returns:
            The record written, or None when ``level`` is filtered out
        """
        if not self.enabled(level):
            return None

        record = LogRecord(
            level=level.value,
            event=name,
            node_id=node_id,
            revision=revision,
            message=message,
            data={**self._context, **data},
            logger_name=self.name,
            thread_name=threading.current_thread().name,
        )
        self._write(record)
        return record

    def render(self, record: LogRecord) -> str:
        if self._json_format:
            return json.dumps(record.to_dict(), default=str)
        return _human_line(record)

    def _write(self, record: LogRecord) -> None:
        line = self.render(record)
        if self._output is None:
            logger.log(LogLevel(record.level).numeric, line)
            return
        with self._lock:
            print(line, file=self._output)

    # Scheduler events

    def evaluation_start(self, node_id: str, revision: int, **extra: Any) -> None:
        self.event("evaluation_start", node_id, revision, **extra)

    def evaluation_complete(
        self,
        node_id: str,
        revision: int,
        duration_ms: float,
        buffers: int = 0,
        **extra: Any,
    ) -> None:
        self.event(
            "evaluation_complete", node_id, revision,
            f"Evaluated in {duration_ms:.1f}ms",
            duration_ms=duration_ms, buffers=buffers, **extra,
        )

    def evaluation_discarded(
        self,
        node_id: str,
        revision: int,
        current_revision: int,
        **extra: Any,
    ) -> None:
        """A result dropped because the node was edited mid-evaluation."""
        self.event(
            "evaluation_discarded", node_id, revision,
            "Superseded by a newer edit",
            current_revision=current_revision, **extra,
        )

    def node_failed(self, node_id: str, error: Exception, **extra: Any) -> None:
        self.event(
            "node_failed", node_id, None, str(error), LogLevel.ERROR,
            error_type=type(error).__name__, **extra,
        )

    def node_warning(self, node_id: str, kind: str, message: str = "", **extra: Any) -> None:
        self.event("node_warning", node_id, None, message, LogLevel.WARNING, kind=kind, **extra)

    def preview_delivered(self, node_id: str, revision: int, **extra: Any) -> None:
        self.event("preview_delivered", node_id, revision, **extra)


def _human_line(record: LogRecord) -> str:
    clock = time.strftime("%H:%M:%S", time.localtime(record.timestamp))
    subject = record.node_id or "-"
    if record.revision is not None:
        subject = f"{subject}@{record.revision}"

    line = f"{clock} {record.level.upper():<7} {record.event} {subject}"
    if record.message:
        line += f": {record.message}"
    if record.data:
        line += " (" + ", ".join(f"{k}={v}" for k, v in record.data.items()) + ")"
    return line


_global_logger: StructuredLogger | None = None


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    output: TextIO | None = None,
    json_format: bool = True,
) -> StructuredLogger:
    """Replace the process-wide event logger.

    Raises:
        ValueError: If ``level`` is not a LogLevel name
    """
    global _global_logger
    _global_logger = StructuredLogger(
        level=LogLevel(level),
        output=output,
        json_format=json_format,
    )
    return _global_logger


def get_logger() -> StructuredLogger:
    """The process-wide event logger, created on first use."""
    global _global_logger
    if _global_logger is None:
        _global_logger = StructuredLogger()
    return _global_logger
