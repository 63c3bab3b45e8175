"""
Node - one unit of audio transformation inside a graph.

A Node holds state, never behaviour: its ports, parameters and processor
come from NODE_SPECS[kind]. Only the graph-edit path mutates parameters
and payload; only the scheduler moves the state machine and commits
outputs.
"""

from __future__ import annotations

from typing import Any, Mapping

from soundgraph.audio import AudioBundle, AudioEnvironment, DEFAULT_ENVIRONMENT
from soundgraph.errors import DecodeError, InvalidStateTransition, ParameterError
from soundgraph.nodes.registry import NodeSpec, get_spec
from soundgraph.nodes.states import NodeState, is_valid_transition
from soundgraph.nodes.types import (
    MAIN_OUTPUT,
    NodeKind,
    NodeResult,
    NodeWarning,
    Port,
    ProcessContext,
)


class Node:
    """
    A typed node with ports, parameters and evaluation state.

    Attributes:
        id: Unique within the graph.
        kind: The NodeKind variant.
        params: Current parameter values (already validated).
        state: Scheduler state (starts DIRTY: never evaluated).
        revision: Bumped on every dirty-marking; results computed against an
            older revision are discarded.
        outputs: Last committed bundle per output port.
        last_error: Exception from the last failed evaluation.
        payload: Decoded files (SOURCE only).

    Example:
        node = Node("vol", NodeKind.VOLUME, {"gain": 1.5})
        node.ports_in  # (Port(name='audio', ...),)
    """

    def __init__(
        self,
        node_id: str,
        kind: NodeKind | str,
        params: Mapping[str, Any] | None = None,
    ):
        if not node_id:
            raise ValueError("node_id must be a non-empty string")
        self.id = str(node_id)
        self.spec: NodeSpec = get_spec(kind)
        self.kind = self.spec.kind
        self.params: dict[str, Any] = self.spec.defaults()
        for name, value in (params or {}).items():
            self.set_parameter(name, value)

        self.state = NodeState.DIRTY
        self.revision = 0
        self.outputs: dict[str, AudioBundle] = {}
        self.warning: NodeWarning | None = None
        self.last_error: Exception | None = None
        self.payload = AudioBundle.empty()
        self.load_error: DecodeError | None = None

    # -------------------------------------------------------------------------
    # Declaration
    # -------------------------------------------------------------------------

    @property
    def ports_in(self) -> tuple[Port, ...]:
        return self.spec.inputs

    @property
    def ports_out(self) -> tuple[Port, ...]:
        return self.spec.outputs

    def input_port(self, name: str) -> Port | None:
        return self.spec.input_port(name)

    def output_port(self, name: str) -> Port | None:
        return self.spec.output_port(name)

    # -------------------------------------------------------------------------
    # Parameters
    # -------------------------------------------------------------------------

    def set_parameter(self, name: str, value: Any) -> Any:
        """
        Validate and store a parameter value.

        Returns:
            The stored (possibly clamped) value

        Raises:
            ParameterError: Unknown name, invalid choice or non-finite number
        """
        spec = self.spec.param(name)
        if spec is None:
            known = ", ".join(p.name for p in self.spec.params) or "none"
            raise ParameterError(self.id, name, f"unknown parameter (known: {known})", value)
        try:
            coerced = spec.coerce(value)
        except ValueError as e:
            raise ParameterError(self.id, name, str(e), value) from None
        self.params[name] = coerced
        return coerced

    # -------------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------------

    def transition(self, to_state: NodeState) -> None:
        """
        Move to a new state.

        Raises:
            InvalidStateTransition: If the move is not in VALID_TRANSITIONS
        """
        if not is_valid_transition(self.state, to_state):
            raise InvalidStateTransition(self.id, self.state, to_state)
        self.state = to_state

    def mark_dirty(self) -> None:
        """Invalidate the cached output and bump the revision."""
        self.revision += 1
        if self.state is not NodeState.DIRTY:
            self.transition(NodeState.DIRTY)

    # -------------------------------------------------------------------------
    # Processing
    # -------------------------------------------------------------------------

    def context(
        self,
        env: AudioEnvironment = DEFAULT_ENVIRONMENT,
        group_sizes: Mapping[str, tuple[int, ...]] | None = None,
    ) -> ProcessContext:
        """Freeze the current parameters into a ProcessContext."""
        return ProcessContext(
            node_id=self.id,
            params=dict(self.params),
            env=env,
            payload=self.payload,
            error=self.load_error,
            group_sizes=dict(group_sizes or {}),
        )

    def process(
        self,
        inputs: Mapping[str, AudioBundle],
        env: AudioEnvironment = DEFAULT_ENVIRONMENT,
        context: ProcessContext | None = None,
    ) -> NodeResult:
        """Run this node's processor. Pure: does not touch node state."""
        ctx = context or self.context(env)
        return self.spec.processor(inputs, ctx)

    def commit(self, result: NodeResult) -> None:
        """Store a completed, non-superseded result."""
        self.outputs = dict(result.outputs)
        self.warning = result.warning
        self.last_error = None
        self.transition(NodeState.CLEAN)

    def fail(self, error: Exception) -> None:
        """Record a failed evaluation; the previous outputs stay cached."""
        self.last_error = error
        self.warning = None
        self.transition(NodeState.FAILED)

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    def output(self, port: str = MAIN_OUTPUT) -> AudioBundle:
        """Last committed bundle of an output port (empty if none)."""
        return self.outputs.get(port, AudioBundle.empty())

    def current_warning(self) -> NodeWarning | None:
        return self.warning

    def to_snapshot(self, connections: list[dict[str, Any]] | None = None) -> dict[str, Any]:
        """Serializable record: ``{id, type, parameters, connections}``."""
        return {
            "id": self.id,
            "type": self.kind.value,
            "parameters": dict(self.params),
            "connections": list(connections or []),
        }

    def __repr__(self) -> str:
        return f"Node(id={self.id!r}, kind={self.kind.value}, state={self.state.value})"
