"""
AudioGraph - nodes plus connections forming a DAG.

The graph exclusively owns its nodes and connections. Every structural or
parameter edit goes through a method here, runs under the graph lock and
marks the edited node and its whole downstream closure dirty. The
scheduler reads the graph under the same lock.
"""

from __future__ import annotations

import heapq
import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Iterator, Mapping

from soundgraph.audio import AudioBundle, AudioEnvironment, DEFAULT_ENVIRONMENT, SampleBuffer
from soundgraph.dsp import resample_to_rate
from soundgraph.errors import (
    CycleRejected,
    DecodeError,
    DuplicateNodeError,
    GraphError,
    PortError,
    UnknownNodeError,
    UnsupportedNodeType,
)
from soundgraph.formats import try_decode
from soundgraph.graph.validation import ValidationError, ValidationResult
from soundgraph.nodes import MAIN_OUTPUT, Node, NodeKind, is_known_kind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Connection:
    """An edge from one node's output port to another node's input port."""
    source_id: str
    source_port: str
    target_id: str
    target_port: str

    def to_dict(self) -> dict[str, str]:
        return {
            "source": self.source_id,
            "source_port": self.source_port,
            "target": self.target_id,
            "target_port": self.target_port,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Connection:
        return cls(
            source_id=str(data["source"]),
            source_port=str(data.get("source_port", MAIN_OUTPUT)),
            target_id=str(data["target"]),
            target_port=str(data["target_port"]),
        )

    def __str__(self) -> str:
        return f"{self.source_id}.{self.source_port} -> {self.target_id}.{self.target_port}"


class AudioGraph:
    """
    A directed acyclic graph of audio nodes.

    Example:
        graph = AudioGraph()
        graph.add_node("src", NodeKind.SOURCE)
        graph.add_node("vol", NodeKind.VOLUME, {"gain": 0.5})
        graph.connect("src", "vol", "audio")
        graph.topological_order()  # ["src", "vol"]
    """

    def __init__(self, env: AudioEnvironment = DEFAULT_ENVIRONMENT):
        self.env = env
        self._nodes: dict[str, Node] = {}
        self._edges: list[Connection] = []
        self._order: dict[str, int] = {}
        self._next_order = 0
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def nodes(self) -> list[Node]:
        """Nodes in insertion order."""
        with self._lock:
            return list(self._nodes.values())

    @property
    def connections(self) -> tuple[Connection, ...]:
        """Connections in the order they were made."""
        with self._lock:
            return tuple(self._edges)

    def node(self, node_id: str) -> Node:
        """
        Get a node by id.

        Raises:
            UnknownNodeError: If no such node exists
        """
        with self._lock:
            try:
                return self._nodes[node_id]
            except KeyError:
                raise UnknownNodeError(node_id) from None

    def get(self, node_id: str) -> Node | None:
        with self._lock:
            return self._nodes.get(node_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def incoming(self, node_id: str, port: str | None = None) -> list[Connection]:
        """Connections into a node (optionally one port), in connection order."""
        with self._lock:
            return [
                e for e in self._edges
                if e.target_id == node_id and (port is None or e.target_port == port)
            ]

    def outgoing(self, node_id: str) -> list[Connection]:
        with self._lock:
            return [e for e in self._edges if e.source_id == node_id]

    # -------------------------------------------------------------------------
    # Node edits
    # -------------------------------------------------------------------------

    def add_node(
        self,
        node_id: str,
        kind: NodeKind | str,
        params: Mapping[str, Any] | None = None,
    ) -> Node:
        """
        Create and add a node.

        Raises:
            DuplicateNodeError: If the id is taken
            UnsupportedNodeType: If ``kind`` is not a known node kind
            ParameterError: If an initial parameter is invalid
        """
        if not is_known_kind(kind):
            raise UnsupportedNodeType([{"id": node_id, "type": getattr(kind, "value", kind)}])

        with self._lock:
            if node_id in self._nodes:
                raise DuplicateNodeError(node_id)
            node = Node(node_id, kind, params)
            self._nodes[node.id] = node
            self._order[node.id] = self._next_order
            self._next_order += 1

        logger.debug("Added node %s (%s)", node.id, node.kind.value)
        return node

    def remove_node(self, node_id: str) -> list[str]:
        """
        Remove a node and every connection touching it.

        Returns:
            Ids of the nodes marked dirty (former downstream closure)
        """
        with self._lock:
            self.node(node_id)
            targets = [e.target_id for e in self._edges if e.source_id == node_id]
            self._edges = [
                e for e in self._edges
                if e.source_id != node_id and e.target_id != node_id
            ]
            del self._nodes[node_id]
            del self._order[node_id]

            dirtied: list[str] = []
            for target in dict.fromkeys(targets):
                for nid in self.mark_dirty(target):
                    if nid not in dirtied:
                        dirtied.append(nid)

        logger.debug("Removed node %s", node_id)
        return dirtied

    def set_parameter(self, node_id: str, name: str, value: Any) -> Any:
        """
        Set a parameter and invalidate the node's downstream closure.

        Returns:
            The stored (possibly clamped) value

        Raises:
            UnknownNodeError, ParameterError
        """
        with self._lock:
            node = self.node(node_id)
            stored = node.set_parameter(name, value)
            self.mark_dirty(node_id)
        return stored

    # -------------------------------------------------------------------------
    # Source payload
    # -------------------------------------------------------------------------

    def _source(self, node_id: str) -> Node:
        node = self.node(node_id)
        if node.kind is not NodeKind.SOURCE:
            raise GraphError(
                f"Node '{node_id}' is a {node.kind.value} node, not a source",
                {"node_id": node_id},
            )
        return node

    def load_source(
        self,
        node_id: str,
        data: bytes,
        filename: str | None = None,
    ) -> SampleBuffer | DecodeError:
        """
        Decode bytes and append them to a SOURCE node's files.

        A decode failure clears the source: its output becomes null and the
        next evaluation puts the node in FAILED with the DecodeError.

        Returns:
            The decoded (and possibly resampled) buffer, or the DecodeError
        """
        with self._lock:
            node = self._source(node_id)
            label = filename or f"file{len(node.payload) + 1}"
            result = try_decode(data, label)

            if isinstance(result, SampleBuffer) and not self.env.supports_channels(result.channels):
                result = DecodeError(
                    f"unsupported channel count {result.channels} "
                    f"(supported: {list(self.env.supported_channel_counts)})",
                    label,
                )

            if isinstance(result, DecodeError):
                logger.warning("Source %s: %s", node_id, result.message)
                node.payload = AudioBundle.empty()
                node.load_error = result
                node.outputs = {}
            else:
                if self.env.target_sample_rate is not None:
                    result = resample_to_rate(result, self.env.target_sample_rate)
                node.payload = node.payload.extend(AudioBundle.single(result, label))
                node.load_error = None

            self.mark_dirty(node_id)
        return result

    def clear_source(self, node_id: str) -> None:
        """Drop every file loaded into a SOURCE node."""
        with self._lock:
            node = self._source(node_id)
            node.payload = AudioBundle.empty()
            node.load_error = None
            self.mark_dirty(node_id)

    # -------------------------------------------------------------------------
    # Connection edits
    # -------------------------------------------------------------------------

    def _check_ports(self, source_id: str, source_port: str, target_id: str, target_port: str):
        source = self.node(source_id)
        target = self.node(target_id)
        if source.output_port(source_port) is None:
            raise PortError(source_id, source_port, "no such output port")
        port = target.input_port(target_port)
        if port is None:
            raise PortError(target_id, target_port, "no such input port")
        return port

    def connect(
        self,
        source_id: str,
        target_id: str,
        target_port: str,
        source_port: str = MAIN_OUTPUT,
    ) -> Connection:
        """
        Connect an output to an input.

        Connecting to an occupied single-source input replaces the old
        connection in the same edit. Making an existing connection again
        changes nothing.

        Raises:
            UnknownNodeError, PortError
            CycleRejected: If the edge would close a cycle (graph unchanged)
        """
        edge = Connection(source_id, source_port, target_id, target_port)
        with self._lock:
            port = self._check_ports(source_id, source_port, target_id, target_port)

            if edge in self._edges:
                return edge

            path = self._path(target_id, source_id)
            if path is not None:
                raise CycleRejected(source_id, target_id, path + [target_id])

            if not port.multi_source:
                replaced = [
                    e for e in self._edges
                    if e.target_id == target_id and e.target_port == target_port
                ]
                for old in replaced:
                    logger.debug("Replacing connection %s", old)
                self._edges = [e for e in self._edges if e not in replaced]

            self._edges.append(edge)
            self.mark_dirty(target_id)

        logger.debug("Connected %s", edge)
        return edge

    def disconnect(
        self,
        source_id: str,
        target_id: str,
        target_port: str,
        source_port: str = MAIN_OUTPUT,
    ) -> bool:
        """Remove a connection. Returns False if it did not exist."""
        edge = Connection(source_id, source_port, target_id, target_port)
        with self._lock:
            if edge not in self._edges:
                return False
            self._edges.remove(edge)
            self.mark_dirty(target_id)

        logger.debug("Disconnected %s", edge)
        return True

    # -------------------------------------------------------------------------
    # Traversal
    # -------------------------------------------------------------------------

    def _path(self, start: str, goal: str) -> list[str] | None:
        """Shortest downstream path from start to goal, inclusive."""
        if start == goal:
            return [start]
        parents: dict[str, str] = {}
        queue = deque([start])
        while queue:
            current = queue.popleft()
            for e in self._edges:
                if e.source_id != current or e.target_id in parents or e.target_id == start:
                    continue
                parents[e.target_id] = current
                if e.target_id == goal:
                    path = [goal]
                    while path[-1] != start:
                        path.append(parents[path[-1]])
                    return list(reversed(path))
                queue.append(e.target_id)
        return None

    def downstream(self, node_id: str) -> list[str]:
        """Every node reachable from ``node_id``, breadth-first, excluding it."""
        with self._lock:
            seen = {node_id}
            order: list[str] = []
            queue = deque([node_id])
            while queue:
                current = queue.popleft()
                for e in self._edges:
                    if e.source_id == current and e.target_id not in seen:
                        seen.add(e.target_id)
                        order.append(e.target_id)
                        queue.append(e.target_id)
            return order

    def upstream(self, node_id: str) -> set[str]:
        """Every transitive ancestor of ``node_id``."""
        with self._lock:
            seen: set[str] = set()
            stack = [node_id]
            while stack:
                current = stack.pop()
                for e in self._edges:
                    if e.target_id == current and e.source_id not in seen:
                        seen.add(e.source_id)
                        stack.append(e.source_id)
            return seen

    def mark_dirty(self, node_id: str) -> list[str]:
        """
        Mark a node and its downstream closure dirty.

        Returns:
            The ids marked, the node itself first
        """
        with self._lock:
            closure = [node_id] + self.downstream(node_id)
            for nid in closure:
                self._nodes[nid].mark_dirty()
            return closure

    def topological_order(self, subset: set[str] | None = None) -> list[str]:
        """
        Node ids in dependency order.

        Ties are broken by insertion order, so the result is deterministic.
        """
        with self._lock:
            indegree = {nid: 0 for nid in self._nodes}
            children: dict[str, list[str]] = {nid: [] for nid in self._nodes}
            for e in self._edges:
                indegree[e.target_id] += 1
                children[e.source_id].append(e.target_id)

            heap = [(self._order[nid], nid) for nid, deg in indegree.items() if deg == 0]
            heapq.heapify(heap)
            order: list[str] = []
            while heap:
                _, nid = heapq.heappop(heap)
                order.append(nid)
                for child in children[nid]:
                    indegree[child] -= 1
                    if indegree[child] == 0:
                        heapq.heappush(heap, (self._order[child], child))

        if subset is not None:
            order = [nid for nid in order if nid in subset]
        return order

    def gather_inputs(
        self, node_id: str
    ) -> tuple[dict[str, AudioBundle], dict[str, tuple[int, ...]]]:
        """
        Collect the committed upstream outputs for each input port.

        Returns:
            (bundle per input port, per-connection buffer counts for
            multi-source ports)
        """
        with self._lock:
            node = self.node(node_id)
            inputs: dict[str, AudioBundle] = {}
            groups: dict[str, tuple[int, ...]] = {}
            for port in node.ports_in:
                bundle = AudioBundle.empty()
                sizes = []
                for e in self.incoming(node_id, port.name):
                    part = self._nodes[e.source_id].output(e.source_port)
                    bundle = bundle.extend(part)
                    sizes.append(len(part))
                inputs[port.name] = bundle
                if port.multi_source:
                    groups[port.name] = tuple(sizes)
            return inputs, groups

    # -------------------------------------------------------------------------
    # Validation and persistence
    # -------------------------------------------------------------------------

    def validate(self) -> ValidationResult:
        """Report missing inputs, isolated nodes and empty or broken sources."""
        result = ValidationResult()
        with self._lock:
            for node in self._nodes.values():
                if node.kind is NodeKind.SOURCE:
                    if node.load_error is not None:
                        result.add(ValidationError.source_decode_failed(node.id, node.load_error.reason))
                    elif node.payload.is_empty:
                        result.add(ValidationError.empty_source(node.id))

                for port in node.ports_in:
                    if port.required and not self.incoming(node.id, port.name):
                        result.add(ValidationError.missing_input(node.id, port.name))

                touching = any(
                    e.source_id == node.id or e.target_id == node.id for e in self._edges
                )
                if not touching:
                    result.add(ValidationError.isolated_node(node.id))
        return result

    def to_snapshot(self) -> dict[str, Any]:
        """Serializable form: ordered node records plus ordered edge records."""
        from soundgraph.graph.snapshot import graph_to_snapshot

        return graph_to_snapshot(self)

    @classmethod
    def from_snapshot(
        cls,
        data: Mapping[str, Any],
        strict: bool = True,
        env: AudioEnvironment = DEFAULT_ENVIRONMENT,
    ):
        """
        Rebuild a graph from ``to_snapshot()`` output.

        Returns:
            The graph when ``strict``; otherwise ``(graph, LoadReport)``

        Raises:
            UnsupportedNodeType: Unknown node types with ``strict=True``
        """
        from soundgraph.graph.snapshot import graph_from_snapshot

        graph, report = graph_from_snapshot(data, strict=strict, env=env)
        if strict:
            return graph
        return graph, report

    def __repr__(self) -> str:
        return f"AudioGraph(nodes={len(self._nodes)}, connections={len(self._edges)})"
