"""
Edit commands - the only way a UI changes the graph.

A UI event becomes a command value; ``command.apply(graph)`` is the single
edit path that mutates node state. The scheduler never receives ad hoc
mutations mid-evaluation.

Example:
    engine.apply(SetParameter("vol", "gain", 1.4))
    engine.apply(Connect("src", "vol", "audio"))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from soundgraph.audio import SampleBuffer
from soundgraph.errors import DecodeError
from soundgraph.graph.graph import AudioGraph, Connection
from soundgraph.nodes import MAIN_OUTPUT, Node, NodeKind


class CommandType(Enum):
    """Edit actions a UI can issue."""
    ADD_NODE = "add_node"
    REMOVE_NODE = "remove_node"
    CONNECT = "connect"
    DISCONNECT = "disconnect"
    SET_PARAMETER = "set_parameter"
    LOAD_SOURCE = "load_source"
    CLEAR_SOURCE = "clear_source"


@dataclass(frozen=True)
class AddNode:
    node_id: str
    kind: NodeKind | str
    params: dict[str, Any] = field(default_factory=dict)

    command_type = CommandType.ADD_NODE

    def apply(self, graph: AudioGraph) -> Node:
        return graph.add_node(self.node_id, self.kind, self.params)


@dataclass(frozen=True)
class RemoveNode:
    node_id: str

    command_type = CommandType.REMOVE_NODE

    def apply(self, graph: AudioGraph) -> list[str]:
        return graph.remove_node(self.node_id)


@dataclass(frozen=True)
class Connect:
    source_id: str
    target_id: str
    target_port: str
    source_port: str = MAIN_OUTPUT

    command_type = CommandType.CONNECT

    def apply(self, graph: AudioGraph) -> Connection:
        return graph.connect(self.source_id, self.target_id, self.target_port, self.source_port)


@dataclass(frozen=True)
class Disconnect:
    source_id: str
    target_id: str
    target_port: str
    source_port: str = MAIN_OUTPUT

    command_type = CommandType.DISCONNECT

    def apply(self, graph: AudioGraph) -> bool:
        return graph.disconnect(self.source_id, self.target_id, self.target_port, self.source_port)


@dataclass(frozen=True)
class SetParameter:
    """Set one parameter; out-of-range numbers are clamped, bad values raise."""
    node_id: str
    name: str
    value: Any

    command_type = CommandType.SET_PARAMETER

    def apply(self, graph: AudioGraph) -> Any:
        return graph.set_parameter(self.node_id, self.name, self.value)


@dataclass(frozen=True)
class LoadSource:
    """Decode WAV bytes into a source node. Returns the DecodeError on failure."""
    node_id: str
    data: bytes = field(repr=False)
    filename: str | None = None

    command_type = CommandType.LOAD_SOURCE

    def apply(self, graph: AudioGraph) -> SampleBuffer | DecodeError:
        return graph.load_source(self.node_id, self.data, self.filename)


@dataclass(frozen=True)
class ClearSource:
    node_id: str

    command_type = CommandType.CLEAR_SOURCE

    def apply(self, graph: AudioGraph) -> None:
        graph.clear_source(self.node_id)


Command = Union[AddNode, RemoveNode, Connect, Disconnect, SetParameter, LoadSource, ClearSource]


def affected_node(command: Command) -> str:
    """The node id a command edits (the target for connection edits)."""
    if isinstance(command, (Connect, Disconnect)):
        return command.target_id
    return command.node_id
