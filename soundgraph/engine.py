"""
GraphEngine - the facade the rendering layer talks to.

Edits go in as commands; audio comes out through evaluate (preview) and
export_final (download). Both read the same committed node output, so
what is previewed is exactly what is exported.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Any

from soundgraph.audio import AudioBundle, SampleBuffer
from soundgraph.errors import GraphError
from soundgraph.formats import encode
from soundgraph.graph import AudioGraph, Command, ValidationResult, load_snapshot, save_snapshot
from soundgraph.monitoring import StructuredLogger
from soundgraph.nodes import NodeWarning
from soundgraph.runtime import EngineConfig, GraphScheduler, PreviewCallback, PreviewResult

logger = logging.getLogger(__name__)


def _export_names(labels: tuple[str, ...]) -> list[str]:
    names: list[str] = []
    taken: set[str] = set()
    for position, label in enumerate(labels, start=1):
        stem = os.path.splitext(label)[0]
        name = f"{stem}.wav"
        suffix = position
        while name in taken:
            name = f"{stem}-{suffix}.wav"
            suffix += 1
        taken.add(name)
        names.append(name)
    return names


class GraphEngine:
    """
    Owns a graph and its scheduler.

    Example:
        engine = GraphEngine()
        engine.apply(AddNode("src", "source"))
        engine.apply(LoadSource("src", wav_bytes, "take1.wav"))
        engine.apply(AddNode("vol", "volume", {"gain": 1.5}))
        engine.apply(Connect("src", "vol", "audio"))

        buffer = asyncio.run(engine.evaluate("vol"))
        wav = asyncio.run(engine.export_final("vol"))
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        graph: AudioGraph | None = None,
        on_preview: PreviewCallback | None = None,
        event_logger: StructuredLogger | None = None,
    ):
        self.config = config or EngineConfig()
        self.graph = graph or AudioGraph(self.config.environment)
        self.scheduler = GraphScheduler(
            self.graph,
            self.config.scheduler,
            on_preview=on_preview,
            event_logger=event_logger,
        )

    # -------------------------------------------------------------------------
    # Edits
    # -------------------------------------------------------------------------

    def apply(self, command: Command) -> Any:
        """Apply one edit command; returns whatever the edit returns."""
        logger.debug("Applying %s", command)
        return command.apply(self.graph)

    def apply_all(self, commands: list[Command]) -> list[Any]:
        return [self.apply(c) for c in commands]

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    async def evaluate_bundle(self, node_id: str) -> AudioBundle:
        return await self.scheduler.evaluate(node_id)

    async def evaluate(self, node_id: str) -> SampleBuffer | None:
        """First buffer of the node's output, or None for a null output."""
        bundle = await self.scheduler.evaluate(node_id)
        return bundle.first

    def request_preview(self, node_id: str) -> asyncio.Task:
        return self.scheduler.request_preview(node_id)

    async def export_final(self, node_id: str, bit_depth: int | None = None) -> bytes:
        """
        Encode the node's evaluated output as WAV bytes.

        Raises:
            GraphError: If the node has no output to export
        """
        bundle = await self.scheduler.evaluate(node_id)
        if bundle.is_empty:
            raise GraphError(f"Node '{node_id}' has no output to export", {"node_id": node_id})
        return encode(bundle.first, bit_depth or self.config.environment.export_bit_depth)

    async def export_all(
        self,
        node_id: str,
        bit_depth: int | None = None,
    ) -> list[tuple[str, bytes]]:
        """Encode every buffer of a multi-file output as ``(filename, wav_bytes)``.

        Filenames are ``<label stem>.wav``; a stem already used gets the
        buffer's position appended (``take-2.wav``).
        """
        bundle = await self.scheduler.evaluate(node_id)
        depth = bit_depth or self.config.environment.export_bit_depth
        names = _export_names(bundle.labels)
        return [(name, encode(buf, depth)) for name, buf in zip(names, bundle.buffers)]

    # -------------------------------------------------------------------------
    # Inspection and persistence
    # -------------------------------------------------------------------------

    def warnings(self) -> dict[str, NodeWarning]:
        return self.scheduler.warnings()

    def validate(self) -> ValidationResult:
        return self.graph.validate()

    def save(self, path: str | Path) -> None:
        save_snapshot(self.graph, path)

    @classmethod
    def load(
        cls,
        path: str | Path,
        config: EngineConfig | None = None,
        on_preview: PreviewCallback | None = None,
    ) -> GraphEngine:
        """Build an engine around a graph loaded strictly from a snapshot file."""
        config = config or EngineConfig()
        graph = load_snapshot(path, strict=True, env=config.environment)
        return cls(config, graph, on_preview=on_preview)


__all__ = ["GraphEngine", "PreviewResult"]
