"""
Graph snapshots - serializable graph structure.

Format:
    {
        "version": 1,
        "nodes": [{"id", "type", "parameters", "connections"}, ...],
        "edges": [{"source", "source_port", "target", "target_port"}, ...],
    }

Node records keep insertion order and edge records keep connection order,
so a loaded graph evaluates exactly like the one that was saved. Loaded
source audio is not part of a snapshot.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

import yaml

from soundgraph.audio import AudioEnvironment, DEFAULT_ENVIRONMENT
from soundgraph.errors import GraphError, SoundGraphError, UnsupportedNodeType
from soundgraph.nodes import is_known_kind

if TYPE_CHECKING:
    from soundgraph.graph.graph import AudioGraph

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


@dataclass
class LoadReport:
    """What a non-strict load had to leave out.

    Attributes:
        skipped_nodes: Node records that could not be added, each with a
            ``reason`` (unsupported type, duplicate id, malformed record).
        skipped_edges: Edge records dropped, each with a ``reason``.
        parameter_errors: Parameters left at their default, as messages.
    """
    skipped_nodes: list[dict[str, Any]] = field(default_factory=list)
    skipped_edges: list[dict[str, Any]] = field(default_factory=list)
    parameter_errors: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        """True when nothing was skipped."""
        return not (self.skipped_nodes or self.skipped_edges or self.parameter_errors)

    def __str__(self) -> str:
        if self.complete:
            return "Snapshot loaded completely"
        lines = ["Snapshot loaded partially:"]
        for entry in self.skipped_nodes:
            lines.append(f"  skipped node {entry.get('id')!r} (type {entry.get('type')!r}): {entry['reason']}")
        for entry in self.skipped_edges:
            lines.append(f"  skipped edge {entry.get('source')} -> {entry.get('target')}: {entry['reason']}")
        for message in self.parameter_errors:
            lines.append(f"  {message}")
        return "\n".join(lines)


def graph_to_snapshot(graph: AudioGraph) -> dict[str, Any]:
    with graph.lock:
        nodes = [
            node.to_snapshot([e.to_dict() for e in graph.outgoing(node.id)])
            for node in graph.nodes
        ]
        edges = [e.to_dict() for e in graph.connections]
    return {"version": SNAPSHOT_VERSION, "nodes": nodes, "edges": edges}


def _add_node_record(
    graph: AudioGraph,
    rec: Any,
    strict: bool,
    report: LoadReport,
) -> None:
    if not isinstance(rec, Mapping):
        raise GraphError(f"Node record must be a mapping, got {type(rec).__name__}")

    params = rec.get("parameters") or {}
    if not isinstance(params, Mapping):
        raise GraphError(f"Parameters of node {rec.get('id')!r} must be a mapping")

    node = graph.add_node(str(rec["id"]), rec.get("type"))
    for name, value in params.items():
        try:
            node.set_parameter(name, value)
        except SoundGraphError as e:
            if strict:
                raise
            report.parameter_errors.append(e.message)


def graph_from_snapshot(
    data: Mapping[str, Any],
    strict: bool = True,
    env: AudioEnvironment = DEFAULT_ENVIRONMENT,
) -> tuple[AudioGraph, LoadReport]:
    """
    Build a graph from a snapshot mapping.

    With ``strict`` any problem raises and nothing is returned. Otherwise
    node records that cannot be added (unsupported type, duplicate id,
    malformed record), their edges and bad parameters are skipped and
    listed in the LoadReport.

    Raises:
        UnsupportedNodeType: Unknown node types (strict only)
        GraphError: Malformed snapshot, or bad edges/parameters (strict only)
    """
    from soundgraph.graph.graph import AudioGraph, Connection

    if not isinstance(data, Mapping):
        raise GraphError("Snapshot must be a mapping")
    version = data.get("version", SNAPSHOT_VERSION)
    if not isinstance(version, int) or version > SNAPSHOT_VERSION:
        raise GraphError(f"Unsupported snapshot version: {version!r}", {"version": version})

    node_records = list(data.get("nodes") or [])
    edge_records = list(data.get("edges") or [])
    report = LoadReport()

    unknown = [
        rec for rec in node_records
        if isinstance(rec, Mapping) and not is_known_kind(rec.get("type"))
    ]
    if unknown and strict:
        raise UnsupportedNodeType(unknown)

    graph = AudioGraph(env)
    for rec in node_records:
        try:
            _add_node_record(graph, rec, strict, report)
        except (KeyError, ValueError, SoundGraphError) as e:
            if strict:
                if isinstance(e, SoundGraphError):
                    raise
                raise GraphError(f"Malformed node record: {rec!r}") from e
            reason = e.message if isinstance(e, SoundGraphError) else f"malformed record ({e})"
            logger.warning("Skipping node record %r: %s", rec, reason)
            entry = dict(rec) if isinstance(rec, Mapping) else {"record": rec}
            report.skipped_nodes.append({**entry, "reason": reason})

    for rec in edge_records:
        try:
            edge = Connection.from_dict(rec)
            graph.connect(edge.source_id, edge.target_id, edge.target_port, edge.source_port)
        except (KeyError, TypeError, AttributeError, SoundGraphError) as e:
            if strict:
                if isinstance(e, SoundGraphError):
                    raise
                raise GraphError(f"Malformed edge record: {rec!r}") from e
            reason = e.message if isinstance(e, SoundGraphError) else f"malformed record ({e})"
            entry = dict(rec) if isinstance(rec, Mapping) else {"record": rec}
            report.skipped_edges.append({**entry, "reason": reason})

    if not report.complete:
        logger.warning("%s", report)
    return graph, report


def save_snapshot(graph: AudioGraph, path: str | Path) -> None:
    """Write a graph snapshot as YAML (.yaml/.yml) or JSON (.json)."""
    path = Path(path)
    data = graph.to_snapshot()

    if path.suffix in (".yaml", ".yml"):
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
    elif path.suffix == ".json":
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
    else:
        raise ValueError(f"Unsupported file format: {path.suffix}")


def load_snapshot(
    path: str | Path,
    strict: bool = True,
    env: AudioEnvironment = DEFAULT_ENVIRONMENT,
):
    """
    Read a snapshot file written by save_snapshot().

    Returns:
        The graph when ``strict``; otherwise ``(graph, LoadReport)``
    """
    from soundgraph.graph.graph import AudioGraph

    path = Path(path)
    if path.suffix in (".yaml", ".yml"):
        with open(path) as f:
            data = yaml.safe_load(f)
    elif path.suffix == ".json":
        with open(path) as f:
            data = json.load(f)
    else:
        raise ValueError(f"Unsupported file format: {path.suffix}")

    return AudioGraph.from_snapshot(data, strict=strict, env=env)
