"""
Errors - Domain-specific error types.

Error hierarchy:
    SoundGraphError (base)
    ├── DecodeError
    ├── InvalidStateTransition
    └── GraphError
        ├── CycleRejected
        ├── UnsupportedNodeType
        ├── UnknownNodeError
        ├── DuplicateNodeError
        ├── PortError
        └── ParameterError

Warnings (clipping, multi-file capacity, missing inputs) are NOT errors.
They are reported on the node via NodeWarning and never raised.
"""

from __future__ import annotations

from typing import Any


class SoundGraphError(Exception):
    """Base error for all soundgraph errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class DecodeError(SoundGraphError):
    """
    Raised (or returned) when source audio cannot be decoded.

    Fatal for the source node that received the bytes, never for the graph.
    """

    def __init__(
        self,
        reason: str,
        label: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        prefix = f"{label}: " if label else ""
        super().__init__(f"{prefix}{reason}", details)
        self.reason = reason
        self.label = label


class InvalidStateTransition(SoundGraphError):
    """Raised when a node is moved between scheduler states illegally."""

    def __init__(self, node_id: str, from_state: Any, to_state: Any):
        super().__init__(
            f"Node '{node_id}': invalid transition {from_state.value} -> {to_state.value}",
            {"node_id": node_id},
        )
        self.node_id = node_id
        self.from_state = from_state
        self.to_state = to_state


class GraphError(SoundGraphError):
    """Base error for graph-edit and graph-load failures."""


class CycleRejected(GraphError):
    """
    Raised when a connection would create a cycle.

    The graph is left exactly as it was before the attempt.
    """

    def __init__(self, source_id: str, target_id: str, path: list[str]):
        cycle_str = " -> ".join(path)
        super().__init__(
            f"Connecting '{source_id}' -> '{target_id}' would create a cycle: {cycle_str}",
            {"cycle_path": path},
        )
        self.source_id = source_id
        self.target_id = target_id
        self.path = path


class UnsupportedNodeType(GraphError):
    """Raised when a snapshot references node types this build does not know."""

    def __init__(self, entries: list[dict[str, Any]]):
        types = sorted({str(e.get("type")) for e in entries})
        super().__init__(
            f"Unsupported node type(s) in snapshot: {', '.join(types)}",
            {"entries": entries},
        )
        self.entries = entries
        self.types = types


class UnknownNodeError(GraphError):
    """Raised when a command references a node id that is not in the graph."""

    def __init__(self, node_id: str):
        super().__init__(f"Unknown node: '{node_id}'", {"node_id": node_id})
        self.node_id = node_id


class DuplicateNodeError(GraphError):
    """Raised when adding a node whose id is already taken."""

    def __init__(self, node_id: str):
        super().__init__(f"Node '{node_id}' already exists", {"node_id": node_id})
        self.node_id = node_id


class PortError(GraphError):
    """Raised for connections to missing ports or with the wrong direction."""

    def __init__(self, node_id: str, port: str, message: str):
        super().__init__(f"Node '{node_id}' port '{port}': {message}")
        self.node_id = node_id
        self.port = port


class ParameterError(GraphError):
    """Raised when SetParameter names an unknown parameter or a bad value."""

    def __init__(self, node_id: str, name: str, message: str, value: Any = None):
        super().__init__(
            f"Node '{node_id}' parameter '{name}': {message}",
            {"value": value},
        )
        self.node_id = node_id
        self.name = name
        self.value = value
