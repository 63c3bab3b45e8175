"""
Runtime configuration for soundgraph.

Defines scheduler timing and the engine-wide bundle of settings, loadable
from YAML or JSON files.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from soundgraph.audio import AudioEnvironment, ChannelPolicy

DEBOUNCE_ENV_VAR = "SOUNDGRAPH_DEBOUNCE_MS"


@dataclass
class SchedulerConfig:
    """Configuration for the graph scheduler.

    Args:
        debounce_ms: Quiet period after the last preview request before
            evaluation starts. Bursts of edits inside the window coalesce.
        offload_kernels: Run node processors in the loop's default thread
            executor instead of on the event loop thread.

    Example:
        config = SchedulerConfig(debounce_ms=150, offload_kernels=True)
    """

    debounce_ms: float = 300.0
    """Preview debounce window in milliseconds."""

    offload_kernels: bool = False
    """Run kernels off the event loop thread."""

    def __post_init__(self):
        if self.debounce_ms < 0:
            raise ValueError("debounce_ms must be non-negative")

    @property
    def debounce_s(self) -> float:
        return self.debounce_ms / 1000.0

    @classmethod
    def from_env(cls, **overrides: Any) -> SchedulerConfig:
        """Build a config, letting SOUNDGRAPH_DEBOUNCE_MS override the debounce."""
        raw = os.environ.get(DEBOUNCE_ENV_VAR)
        if raw is not None:
            try:
                overrides["debounce_ms"] = float(raw)
            except ValueError:
                raise ValueError(f"{DEBOUNCE_ENV_VAR} must be a number, got {raw!r}") from None
        return cls(**overrides)


@dataclass
class EngineConfig:
    """Everything a GraphEngine needs: audio policy plus scheduler timing."""

    environment: AudioEnvironment = field(default_factory=AudioEnvironment)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EngineConfig:
        """
        Build from a mapping with optional "environment" and "scheduler" sections.

        Raises:
            ValueError: For unknown keys or invalid values
        """
        env_data = dict(data.get("environment") or {})
        sched_data = dict(data.get("scheduler") or {})
        unknown = set(data) - {"environment", "scheduler"}
        if unknown:
            raise ValueError(f"Unknown config sections: {sorted(unknown)}")

        if "supported_channel_counts" in env_data:
            env_data["supported_channel_counts"] = tuple(env_data["supported_channel_counts"])
        if "channel_policy" in env_data:
            env_data["channel_policy"] = ChannelPolicy(env_data["channel_policy"])

        try:
            environment = AudioEnvironment(**env_data)
            scheduler = SchedulerConfig.from_env(**sched_data)
        except TypeError as e:
            raise ValueError(f"Invalid config: {e}") from None
        return cls(environment=environment, scheduler=scheduler)

    def to_dict(self) -> dict[str, Any]:
        env = self.environment
        return {
            "environment": {
                "target_sample_rate": env.target_sample_rate,
                "supported_channel_counts": list(env.supported_channel_counts),
                "soft_clip_knee": env.soft_clip_knee,
                "channel_policy": env.channel_policy.value,
                "export_bit_depth": env.export_bit_depth,
            },
            "scheduler": {
                "debounce_ms": self.scheduler.debounce_ms,
                "offload_kernels": self.scheduler.offload_kernels,
            },
        }


def load_config(path: str | Path | None = None) -> EngineConfig:
    """Load an EngineConfig from a YAML or JSON file.

    With no path, returns the defaults (still honouring the environment
    variable override).
    """
    if path is None:
        return EngineConfig(scheduler=SchedulerConfig.from_env())

    path = Path(path)
    if path.suffix in (".yaml", ".yml"):
        with open(path) as f:
            data = yaml.safe_load(f)
    elif path.suffix == ".json":
        with open(path) as f:
            data = json.load(f)
    else:
        raise ValueError(f"Unsupported file format: {path.suffix}")

    return EngineConfig.from_dict(data or {})
