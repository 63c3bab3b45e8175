"""
Graph Module - nodes, connections, edit commands and snapshots.

Example:
    from soundgraph.graph import AudioGraph, Connect, SetParameter

    graph = AudioGraph()
    graph.add_node("src", "source")
    graph.add_node("vol", "volume")
    Connect("src", "vol", "audio").apply(graph)
    SetParameter("vol", "gain", 1.5).apply(graph)
"""

from soundgraph.graph.graph import AudioGraph, Connection
from soundgraph.graph.commands import (
    AddNode,
    ClearSource,
    Command,
    CommandType,
    Connect,
    Disconnect,
    LoadSource,
    RemoveNode,
    SetParameter,
    affected_node,
)
from soundgraph.graph.snapshot import (
    SNAPSHOT_VERSION,
    LoadReport,
    load_snapshot,
    save_snapshot,
)
from soundgraph.graph.validation import (
    GraphValidationException,
    ValidationError,
    ValidationResult,
    ValidationSeverity,
)

__all__ = [
    "AudioGraph",
    "Connection",
    # Commands
    "AddNode",
    "ClearSource",
    "Command",
    "CommandType",
    "Connect",
    "Disconnect",
    "LoadSource",
    "RemoveNode",
    "SetParameter",
    "affected_node",
    # Snapshots
    "SNAPSHOT_VERSION",
    "LoadReport",
    "load_snapshot",
    "save_snapshot",
    # Validation
    "GraphValidationException",
    "ValidationError",
    "ValidationResult",
    "ValidationSeverity",
]
