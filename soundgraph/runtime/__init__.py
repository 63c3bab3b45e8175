"""
Runtime - scheduling and configuration.

Example:
    from soundgraph.runtime import GraphScheduler, SchedulerConfig

    scheduler = GraphScheduler(graph, SchedulerConfig(debounce_ms=100))
    bundle = asyncio.run(scheduler.evaluate("out"))
"""

from soundgraph.nodes.states import NodeState, VALID_TRANSITIONS, is_valid_transition
from soundgraph.runtime.config import (
    DEBOUNCE_ENV_VAR,
    EngineConfig,
    SchedulerConfig,
    load_config,
)
from soundgraph.runtime.scheduler import GraphScheduler, PreviewCallback, PreviewResult

__all__ = [
    "NodeState",
    "VALID_TRANSITIONS",
    "is_valid_transition",
    "DEBOUNCE_ENV_VAR",
    "EngineConfig",
    "SchedulerConfig",
    "load_config",
    "GraphScheduler",
    "PreviewCallback",
    "PreviewResult",
]
