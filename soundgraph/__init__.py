"""
soundgraph - Node-based audio processing graphs.

Architecture:
    Commands → AudioGraph → GraphScheduler → Node processors → DSP kernels

Public API (stable):
    GraphEngine     - Main interface. apply() edits, evaluate()/export_final() render.
    AudioGraph      - Nodes + connections, cycle rejection, snapshots.
    SampleBuffer    - Immutable (channels, frames) PCM with a sample rate.
    AudioBundle     - The 0..n buffers carried by one port.
    NodeKind        - SOURCE, VOLUME, SOFTEN, JOIN, CROP, FADE, SPEED, MIX, COMBINE.

Commands:
    AddNode, RemoveNode, Connect, Disconnect, SetParameter, LoadSource, ClearSource

Internals (for advanced users):
    soundgraph.dsp        - Pure kernels (apply_gain, soften, join, mix, ...)
    soundgraph.formats    - WAV decode/encode
    soundgraph.runtime    - GraphScheduler, SchedulerConfig, EngineConfig
    soundgraph.monitoring - Structured event logging
    soundgraph.testing    - AudioAssertions and fixtures

Example:
    import asyncio
    from soundgraph import GraphEngine, AddNode, Connect, LoadSource, SetParameter

    engine = GraphEngine()
    engine.apply(AddNode("src", "source"))
    engine.apply(LoadSource("src", open("voice.wav", "rb").read(), "voice.wav"))
    engine.apply(AddNode("vol", "volume"))
    engine.apply(Connect("src", "vol", "audio"))
    engine.apply(SetParameter("vol", "gain", 1.8))

    wav = asyncio.run(engine.export_final("vol"))
"""

from soundgraph.audio import (
    AudioBundle,
    AudioEnvironment,
    ChannelPolicy,
    SampleBuffer,
)
from soundgraph.errors import (
    CycleRejected,
    DecodeError,
    GraphError,
    InvalidStateTransition,
    ParameterError,
    PortError,
    SoundGraphError,
    UnknownNodeError,
    UnsupportedNodeType,
)
from soundgraph.graph import (
    AddNode,
    AudioGraph,
    ClearSource,
    Connect,
    Disconnect,
    LoadSource,
    RemoveNode,
    SetParameter,
)
from soundgraph.nodes import Node, NodeKind, NodeState, NodeWarning, WarningKind
from soundgraph.runtime import EngineConfig, GraphScheduler, PreviewResult, SchedulerConfig
from soundgraph.engine import GraphEngine

__version__ = "1.0.0"

__all__ = [
    # Core
    "GraphEngine",
    "AudioGraph",
    "GraphScheduler",
    "EngineConfig",
    "SchedulerConfig",
    "PreviewResult",
    # Audio
    "SampleBuffer",
    "AudioBundle",
    "AudioEnvironment",
    "ChannelPolicy",
    # Nodes
    "Node",
    "NodeKind",
    "NodeState",
    "NodeWarning",
    "WarningKind",
    # Commands
    "AddNode",
    "RemoveNode",
    "Connect",
    "Disconnect",
    "SetParameter",
    "LoadSource",
    "ClearSource",
    # Errors
    "SoundGraphError",
    "DecodeError",
    "GraphError",
    "CycleRejected",
    "UnsupportedNodeType",
    "UnknownNodeError",
    "PortError",
    "ParameterError",
    "InvalidStateTransition",
    # Version
    "__version__",
]
