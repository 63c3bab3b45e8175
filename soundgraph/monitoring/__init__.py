"""
Monitoring - structured event logging for the scheduler.

Example:
    from soundgraph.monitoring import configure_logging

    configure_logging(level="debug", json_format=False)
"""

from soundgraph.monitoring.logging import (
    StructuredLogger,
    LogLevel,
    LogRecord,
    configure_logging,
    get_logger,
)

__all__ = [
    "StructuredLogger",
    "LogLevel",
    "LogRecord",
    "configure_logging",
    "get_logger",
]
