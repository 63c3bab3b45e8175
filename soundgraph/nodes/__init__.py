"""
Node model - kinds, ports, parameters, warnings and processors.

Node kinds form a closed enum dispatched through NODE_SPECS. There is no
subclass per kind: the scheduler calls ``node.process(inputs)`` the same
way for every node.

Example:
    from soundgraph.nodes import Node, NodeKind

    vol = Node("vol", NodeKind.VOLUME, {"gain": 2.0, "clipping_mode": "limiter"})
"""

from soundgraph.nodes.types import (
    MAIN_OUTPUT,
    NodeKind,
    NodeResult,
    NodeWarning,
    ParamSpec,
    Port,
    PortDirection,
    ProcessContext,
    WarningKind,
)
from soundgraph.nodes.states import (
    NodeState,
    VALID_TRANSITIONS,
    is_valid_transition,
    is_settled,
)
from soundgraph.nodes.registry import NODE_SPECS, NodeSpec, get_spec, is_known_kind
from soundgraph.nodes.base import Node

__all__ = [
    "MAIN_OUTPUT",
    "NodeKind",
    "NodeResult",
    "NodeWarning",
    "ParamSpec",
    "Port",
    "PortDirection",
    "ProcessContext",
    "WarningKind",
    "NodeState",
    "VALID_TRANSITIONS",
    "is_valid_transition",
    "is_settled",
    "NODE_SPECS",
    "NodeSpec",
    "get_spec",
    "is_known_kind",
    "Node",
]
