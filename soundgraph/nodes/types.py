"""
Node Types - ports, parameters, warnings and processor I/O.

A node kind is described entirely by data (its ports and ParamSpecs) plus
one processor function. Processors receive an immutable ProcessContext and
return a NodeResult; they never touch the Node object itself.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from soundgraph.audio import AudioBundle, AudioEnvironment, DEFAULT_ENVIRONMENT
from soundgraph.errors import DecodeError

MAIN_OUTPUT = "output"


class NodeKind(str, Enum):
    """The closed set of node kinds."""
    SOURCE = "source"       # Decoded files, no inputs
    VOLUME = "volume"       # Gain + clipping management
    SOFTEN = "soften"       # One-pole low-pass, dry/wet
    JOIN = "join"           # Concatenate two inputs
    CROP = "crop"           # Keep a time range
    FADE = "fade"           # Linear fade in/out
    SPEED = "speed"         # Playback-rate change
    MIX = "mix"             # Sum two inputs
    COMBINE = "combine"     # Gather many inputs into one bundle
    PITCH = "pitch"         # Semitone shift, same duration
    VOLUME_SYNC = "volume_sync"  # Level every file to one peak


class PortDirection(str, Enum):
    INPUT = "input"
    OUTPUT = "output"


@dataclass(frozen=True)
class Port:
    """A connection endpoint on a node.

    Attributes:
        name: Unique within the node.
        direction: INPUT or OUTPUT.
        data_kind: Only "audio" exists today.
        multi_source: Input accepts several connections; their bundles are
            concatenated in connection order.
        required: Processing needs this input to produce output.
    """
    name: str
    direction: PortDirection
    data_kind: str = "audio"
    multi_source: bool = False
    required: bool = True

    @classmethod
    def input(cls, name: str, multi_source: bool = False, required: bool = True) -> Port:
        return cls(name, PortDirection.INPUT, multi_source=multi_source, required=required)

    @classmethod
    def output(cls, name: str = MAIN_OUTPUT) -> Port:
        return cls(name, PortDirection.OUTPUT, required=False)


@dataclass(frozen=True)
class ParamSpec:
    """Declared range or choices of one node parameter.

    Numeric parameters carry ``minimum``/``maximum``; enum parameters carry
    ``choices``; boolean parameters have a bool ``default``.
    """
    name: str
    default: Any
    minimum: float | None = None
    maximum: float | None = None
    choices: tuple[str, ...] | None = None
    description: str = ""

    @property
    def is_choice(self) -> bool:
        return self.choices is not None

    @property
    def is_bool(self) -> bool:
        return isinstance(self.default, bool)

    def coerce(self, value: Any) -> Any:
        """
        Validate and normalize a value for this parameter.

        Numbers outside [minimum, maximum] are clamped.

        Raises:
            ValueError: For an invalid choice or a non-finite/non-numeric value
        """
        if self.is_bool:
            return _coerce_bool(value)

        if self.is_choice:
            text = value.value if isinstance(value, Enum) else str(value)
            text = text.lower()
            if text not in self.choices:
                raise ValueError(f"must be one of {list(self.choices)}, got {value!r}")
            return text

        if isinstance(value, bool):
            raise ValueError(f"expected a number, got {value!r}")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValueError(f"expected a number, got {value!r}") from None
        if not math.isfinite(number):
            raise ValueError(f"must be finite, got {value!r}")
        if self.minimum is not None:
            number = max(number, self.minimum)
        if self.maximum is not None:
            number = min(number, self.maximum)
        return number

    def describe(self) -> str:
        if self.is_bool:
            return f"{self.name}: on/off (default {'on' if self.default else 'off'})"
        if self.is_choice:
            return f"{self.name}: {'/'.join(self.choices)} (default {self.default})"
        return f"{self.name}: {self.minimum:g}-{self.maximum:g} (default {self.default:g})"


_TRUE = {"true", "on", "yes", "1"}
_FALSE = {"false", "off", "no", "0"}


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    text = str(value).lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"expected on/off, got {value!r}")


class WarningKind(str, Enum):
    """Non-fatal conditions reported on a node."""
    CLIPPING_DETECTED = "clipping_detected"
    MULTI_FILE_UNSUPPORTED = "multi_file_unsupported"
    MISSING_REQUIRED_INPUT = "missing_required_input"


@dataclass(frozen=True)
class NodeWarning:
    """Warning surfaced to the UI after an evaluation.

    ``ports`` names the inputs involved, so "connect input 1", "connect
    input 2" and "connect both inputs" compare as different warnings.
    """
    kind: WarningKind
    ports: tuple[str, ...] = ()
    message: str = field(default="", compare=False)

    @classmethod
    def clipping(cls) -> NodeWarning:
        return cls(WarningKind.CLIPPING_DETECTED, message="Output exceeds full scale")

    @classmethod
    def multi_file(cls, *ports: str) -> NodeWarning:
        return cls(
            WarningKind.MULTI_FILE_UNSUPPORTED,
            tuple(ports),
            "single-file input only",
        )

    @classmethod
    def missing_input(cls, *ports: str) -> NodeWarning:
        if len(ports) == 1:
            message = f"connect input '{ports[0]}'"
        else:
            message = "connect inputs " + " and ".join(f"'{p}'" for p in ports)
        return cls(WarningKind.MISSING_REQUIRED_INPUT, tuple(ports), message)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "ports": list(self.ports), "message": self.message}


@dataclass(frozen=True)
class ProcessContext:
    """Everything a processor may read besides its input bundles.

    Attributes:
        node_id: Id of the node being processed (for labels and logs).
        params: Snapshot of the node's parameters taken when evaluation started.
        env: Process-wide audio policy.
        payload: Source nodes only: the decoded files.
        error: Source nodes only: the decode failure of the last load.
        group_sizes: For multi-source inputs, how many buffers each
            connection contributed, in connection order.
    """
    node_id: str
    params: Mapping[str, Any]
    env: AudioEnvironment = DEFAULT_ENVIRONMENT
    payload: AudioBundle = field(default_factory=AudioBundle)
    error: DecodeError | None = None
    group_sizes: Mapping[str, tuple[int, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class NodeResult:
    """Output bundles per output port, plus the warning for this evaluation."""
    outputs: Mapping[str, AudioBundle]
    warning: NodeWarning | None = None

    @classmethod
    def of(cls, bundle: AudioBundle, warning: NodeWarning | None = None) -> NodeResult:
        return cls({MAIN_OUTPUT: bundle}, warning)

    @classmethod
    def null(cls, warning: NodeWarning | None = None) -> NodeResult:
        return cls({MAIN_OUTPUT: AudioBundle.empty()}, warning)

    @property
    def main(self) -> AudioBundle:
        return self.outputs.get(MAIN_OUTPUT, AudioBundle.empty())
