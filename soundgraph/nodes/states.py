"""
Node evaluation states and the transition table the scheduler enforces.

    CLEAN ──edit──▶ DIRTY ──start──▶ COMPUTING ──▶ CLEAN | FAILED
                      ▲                  │
                      └──re-marked dirty─┘ (result discarded)

FAILED returns to DIRTY on the next edit that reaches the node.
"""

from __future__ import annotations

from enum import Enum


class NodeState(Enum):
    """Evaluation lifecycle of one node."""
    CLEAN = "clean"           # Cached output matches parameters and upstream
    DIRTY = "dirty"           # Needs recompute
    COMPUTING = "computing"   # Evaluation in flight
    FAILED = "failed"         # Last evaluation raised; previous output kept


# Valid state transitions (from -> to)
VALID_TRANSITIONS: dict[NodeState, set[NodeState]] = {
    NodeState.CLEAN: {NodeState.DIRTY},
    NodeState.DIRTY: {NodeState.COMPUTING},
    NodeState.COMPUTING: {NodeState.CLEAN, NodeState.FAILED, NodeState.DIRTY},
    NodeState.FAILED: {NodeState.DIRTY},
}


def is_valid_transition(from_state: NodeState, to_state: NodeState) -> bool:
    """Check if a state transition is valid."""
    return to_state in VALID_TRANSITIONS.get(from_state, set())


def is_settled(state: NodeState) -> bool:
    """True when the node's cached output may be read downstream."""
    return state in (NodeState.CLEAN, NodeState.FAILED)
