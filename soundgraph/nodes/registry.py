"""
Node registry - the declaration of every NodeKind.

Adding a node kind means adding a NodeKind member, a processor function
and one NodeSpec entry here. The scheduler and graph only ever look kinds
up through NODE_SPECS.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping

from soundgraph.audio import AudioBundle, ChannelPolicy
from soundgraph.dsp import ClippingMode, FadeDirection
from soundgraph.nodes import processors
from soundgraph.nodes.types import (
    NodeKind,
    NodeResult,
    ParamSpec,
    Port,
    ProcessContext,
)

Processor = Callable[[Mapping[str, AudioBundle], ProcessContext], NodeResult]


@dataclass(frozen=True)
class NodeSpec:
    """Ports, parameters and processor of one node kind."""
    kind: NodeKind
    inputs: tuple[Port, ...]
    outputs: tuple[Port, ...]
    params: tuple[ParamSpec, ...]
    processor: Processor
    description: str = ""

    def param(self, name: str) -> ParamSpec | None:
        for spec in self.params:
            if spec.name == name:
                return spec
        return None

    def input_port(self, name: str) -> Port | None:
        for port in self.inputs:
            if port.name == name:
                return port
        return None

    def output_port(self, name: str) -> Port | None:
        for port in self.outputs:
            if port.name == name:
                return port
        return None

    def defaults(self) -> dict[str, Any]:
        return {spec.name: spec.default for spec in self.params}


_OUT = (Port.output(),)
_ONE_IN = (Port.input("audio"),)
_TWO_IN = (Port.input("audio1"), Port.input("audio2"))

_CHANNEL_POLICY = ParamSpec(
    "channel_policy",
    ChannelPolicy.DUPLICATE_LAST.value,
    choices=tuple(p.value for p in ChannelPolicy),
    description="How the narrower input gains channels",
)


NODE_SPECS: dict[NodeKind, NodeSpec] = {
    NodeKind.SOURCE: NodeSpec(
        NodeKind.SOURCE,
        inputs=(),
        outputs=_OUT,
        params=(),
        processor=processors.process_source,
        description="Decoded audio files",
    ),
    NodeKind.VOLUME: NodeSpec(
        NodeKind.VOLUME,
        inputs=_ONE_IN,
        outputs=_OUT,
        params=(
            ParamSpec("gain", 1.0, 0.0, 2.0, description="Gain factor (1 = unity)"),
            ParamSpec(
                "clipping_mode",
                ClippingMode.NONE.value,
                choices=tuple(m.value for m in ClippingMode),
                description="Protection applied when the gain clips",
            ),
        ),
        processor=processors.process_volume,
        description="Gain with clipping management",
    ),
    NodeKind.SOFTEN: NodeSpec(
        NodeKind.SOFTEN,
        inputs=_ONE_IN,
        outputs=_OUT,
        params=(
            ParamSpec("cutoff_hz", 8000.0, 1000.0, 16000.0, description="Low-pass cutoff"),
            ParamSpec("intensity", 50.0, 0.0, 100.0, description="Wet mix in percent"),
        ),
        processor=processors.process_soften,
        description="One-pole low-pass with dry/wet mix",
    ),
    NodeKind.JOIN: NodeSpec(
        NodeKind.JOIN,
        inputs=_TWO_IN,
        outputs=_OUT,
        params=(_CHANNEL_POLICY,),
        processor=processors.process_join,
        description="Concatenate audio1 then audio2",
    ),
    NodeKind.CROP: NodeSpec(
        NodeKind.CROP,
        inputs=_ONE_IN,
        outputs=_OUT,
        params=(
            ParamSpec("start", 0.0, 0.0, 3600.0, description="Start time in seconds"),
            ParamSpec("end", 10.0, 0.0, 3600.0, description="End time in seconds"),
        ),
        processor=processors.process_crop,
        description="Keep a time range",
    ),
    NodeKind.FADE: NodeSpec(
        NodeKind.FADE,
        inputs=_ONE_IN,
        outputs=_OUT,
        params=(
            ParamSpec(
                "direction",
                FadeDirection.IN.value,
                choices=tuple(d.value for d in FadeDirection),
                description="Fade in from or out to silence",
            ),
            ParamSpec("duration", 1.0, 0.0, 60.0, description="Fade length in seconds"),
        ),
        processor=processors.process_fade,
        description="Linear fade",
    ),
    NodeKind.SPEED: NodeSpec(
        NodeKind.SPEED,
        inputs=_ONE_IN,
        outputs=_OUT,
        params=(
            ParamSpec("rate", 1.0, 0.5, 2.0, description="Playback rate (2 = twice as fast)"),
        ),
        processor=processors.process_speed,
        description="Playback-rate change",
    ),
    NodeKind.MIX: NodeSpec(
        NodeKind.MIX,
        inputs=_TWO_IN,
        outputs=_OUT,
        params=(
            ParamSpec("balance", 50.0, 0.0, 100.0, description="Share of audio1 in percent"),
            ParamSpec("auto_normalize", True, description="Rescale the mix when it clips"),
            _CHANNEL_POLICY,
        ),
        processor=processors.process_mix,
        description="Sum audio1 and audio2",
    ),
    NodeKind.COMBINE: NodeSpec(
        NodeKind.COMBINE,
        inputs=(Port.input("audio", multi_source=True),),
        outputs=_OUT,
        params=(),
        processor=processors.process_combine,
        description="Gather every connected input into one multi-file output",
    ),
    NodeKind.PITCH: NodeSpec(
        NodeKind.PITCH,
        inputs=_ONE_IN,
        outputs=_OUT,
        params=(
            ParamSpec("semitones", 0.0, -12.0, 12.0, description="Shift in semitones (0 = unchanged)"),
        ),
        processor=processors.process_pitch,
        description="Pitch shift keeping the duration",
    ),
    NodeKind.VOLUME_SYNC: NodeSpec(
        NodeKind.VOLUME_SYNC,
        inputs=_ONE_IN,
        outputs=_OUT,
        params=(
            ParamSpec("target_peak", -1.0, -60.0, 0.0, description="Target peak in dBFS"),
            ParamSpec("keep_relative", False, description="One shared gain set by the loudest file"),
            ParamSpec("auto_limiter", True, description="Soft-limit above 0.95"),
        ),
        processor=processors.process_volume_sync,
        description="Bring every file to one peak level",
    ),
}


def get_spec(kind: NodeKind | str) -> NodeSpec:
    """
    Look up the declaration of a node kind.

    Raises:
        ValueError: If ``kind`` is not a known NodeKind value
    """
    return NODE_SPECS[NodeKind(kind)]


def is_known_kind(kind: Any) -> bool:
    try:
        NodeKind(kind)
    except ValueError:
        return False
    return True
