"""
Node processors - one pure function per NodeKind.

Signature: ``processor(inputs, ctx) -> NodeResult`` where ``inputs`` maps
each input port name to the AudioBundle that arrived there (empty when the
port is unconnected or upstream produced nothing).

Single-input nodes map their kernel over every buffer of the bundle and
keep labels. Two-input nodes (Join, Mix) accept exactly one buffer per
port and refuse bundles of more.
"""

from __future__ import annotations

import logging
import os
from typing import Mapping

from soundgraph.audio import AudioBundle, SampleBuffer
from soundgraph.dsp import (
    FadeDirection,
    apply_gain,
    change_playback_rate,
    crop,
    fade,
    join,
    mix,
    pitch_shift,
    soften,
    sync_peaks,
)
from soundgraph.nodes.types import NodeResult, NodeWarning, ProcessContext

logger = logging.getLogger(__name__)

Inputs = Mapping[str, AudioBundle]


def _input(inputs: Inputs, port: str) -> AudioBundle:
    return inputs.get(port) or AudioBundle.empty()


def _stem(label: str) -> str:
    return os.path.splitext(label)[0]


def _map_buffers(bundle: AudioBundle, kernel) -> AudioBundle:
    return AudioBundle(
        tuple(kernel(buf) for buf in bundle.buffers),
        bundle.labels,
    )


def _pair(inputs: Inputs) -> tuple[SampleBuffer, SampleBuffer, str, str] | NodeWarning:
    """Resolve audio1/audio2 to one buffer each, or the warning explaining why not."""
    a = _input(inputs, "audio1")
    b = _input(inputs, "audio2")

    # A multi-file port outranks a missing one
    multi = tuple(name for name, bundle in (("audio1", a), ("audio2", b)) if bundle.is_multi)
    if multi:
        return NodeWarning.multi_file(*multi)

    missing = tuple(name for name, bundle in (("audio1", a), ("audio2", b)) if bundle.is_empty)
    if missing:
        return NodeWarning.missing_input(*missing)

    return a.first, b.first, a.first_label, b.first_label


# =============================================================================
# Processors
# =============================================================================

def process_source(inputs: Inputs, ctx: ProcessContext) -> NodeResult:
    if ctx.error is not None:
        raise ctx.error
    return NodeResult.of(ctx.payload)


def process_volume(inputs: Inputs, ctx: ProcessContext) -> NodeResult:
    bundle = _input(inputs, "audio")
    if bundle.is_empty:
        return NodeResult.null(NodeWarning.missing_input("audio"))

    clipped = False
    buffers = []
    for buf in bundle.buffers:
        result = apply_gain(
            buf,
            ctx.params["gain"],
            ctx.params["clipping_mode"],
            knee=ctx.env.soft_clip_knee,
        )
        clipped = clipped or result.clipped
        buffers.append(result.buffer)

    warning = NodeWarning.clipping() if clipped else None
    return NodeResult.of(AudioBundle(tuple(buffers), bundle.labels), warning)


def process_soften(inputs: Inputs, ctx: ProcessContext) -> NodeResult:
    bundle = _input(inputs, "audio")
    if bundle.is_empty:
        return NodeResult.null(NodeWarning.missing_input("audio"))

    cutoff = ctx.params["cutoff_hz"]
    intensity = ctx.params["intensity"]
    return NodeResult.of(_map_buffers(bundle, lambda buf: soften(buf, cutoff, intensity)))


def process_join(inputs: Inputs, ctx: ProcessContext) -> NodeResult:
    pair = _pair(inputs)
    if isinstance(pair, NodeWarning):
        return NodeResult.null(pair)

    first, second, label1, label2 = pair
    out = join(first, second, ctx.params["channel_policy"])
    return NodeResult.of(AudioBundle.single(out, f"joined_{_stem(label1)}_{_stem(label2)}"))


def process_crop(inputs: Inputs, ctx: ProcessContext) -> NodeResult:
    bundle = _input(inputs, "audio")
    if bundle.is_empty:
        return NodeResult.null(NodeWarning.missing_input("audio"))

    start = ctx.params["start"]
    end = ctx.params["end"]
    return NodeResult.of(_map_buffers(bundle, lambda buf: crop(buf, start, end)))


def process_fade(inputs: Inputs, ctx: ProcessContext) -> NodeResult:
    bundle = _input(inputs, "audio")
    if bundle.is_empty:
        return NodeResult.null(NodeWarning.missing_input("audio"))

    direction = FadeDirection(ctx.params["direction"])
    duration = ctx.params["duration"]
    return NodeResult.of(_map_buffers(bundle, lambda buf: fade(buf, duration, direction)))


def process_speed(inputs: Inputs, ctx: ProcessContext) -> NodeResult:
    bundle = _input(inputs, "audio")
    if bundle.is_empty:
        return NodeResult.null(NodeWarning.missing_input("audio"))

    rate = ctx.params["rate"]
    return NodeResult.of(_map_buffers(bundle, lambda buf: change_playback_rate(buf, rate)))


def process_mix(inputs: Inputs, ctx: ProcessContext) -> NodeResult:
    pair = _pair(inputs)
    if isinstance(pair, NodeWarning):
        return NodeResult.null(pair)

    first, second, label1, label2 = pair
    result = mix(
        first,
        second,
        balance=ctx.params["balance"],
        auto_normalize=ctx.params["auto_normalize"],
        policy=ctx.params["channel_policy"],
    )
    if result.normalized:
        logger.debug("Mix %s normalized to full scale", ctx.node_id)

    warning = NodeWarning.clipping() if result.clipped else None
    label = f"mixed_{_stem(label1)}_{_stem(label2)}"
    return NodeResult.of(AudioBundle.single(result.buffer, label), warning)


def process_pitch(inputs: Inputs, ctx: ProcessContext) -> NodeResult:
    bundle = _input(inputs, "audio")
    if bundle.is_empty:
        return NodeResult.null(NodeWarning.missing_input("audio"))

    semitones = ctx.params["semitones"]
    return NodeResult.of(_map_buffers(bundle, lambda buf: pitch_shift(buf, semitones)))


def process_volume_sync(inputs: Inputs, ctx: ProcessContext) -> NodeResult:
    """Level every file of the bundle together; a single file is levelled alone."""
    bundle = _input(inputs, "audio")
    if bundle.is_empty:
        return NodeResult.null(NodeWarning.missing_input("audio"))

    result = sync_peaks(
        bundle.buffers,
        target_db=ctx.params["target_peak"],
        keep_relative=ctx.params["keep_relative"],
        limiter=ctx.params["auto_limiter"],
    )
    logger.debug("Volume sync %s adjustments (dB): %s", ctx.node_id, result.adjustments_db)

    warning = NodeWarning.clipping() if result.clipped else None
    return NodeResult.of(AudioBundle(result.buffers, bundle.labels), warning)


def process_combine(inputs: Inputs, ctx: ProcessContext) -> NodeResult:
    """Gather the per-connection bundles into one bundle.

    The bundles of the multi-source port arrive already concatenated in
    connection order. Labels that are blank or already taken become
    ``input<k>-<j>``.
    """
    bundle = _input(inputs, "audio")
    if bundle.is_empty:
        return NodeResult.null(NodeWarning.missing_input("audio"))

    return NodeResult.of(relabel_combined(bundle, ctx.group_sizes.get("audio")))


def relabel_combined(bundle: AudioBundle, group_sizes: tuple[int, ...] | None = None) -> AudioBundle:
    """Make every label in a combined bundle unique.

    ``group_sizes`` gives how many buffers came from each connection, so
    generated labels can name the connection (``input<k>-<j>``). Without it
    the whole bundle counts as one connection.
    """
    sizes = group_sizes if group_sizes and sum(group_sizes) == len(bundle) else (len(bundle),)
    seen: set[str] = set()
    labels = []
    index = 0
    for k, size in enumerate(sizes, start=1):
        for j in range(1, size + 1):
            label = bundle.labels[index]
            if not label or label in seen:
                label = f"input{k}-{j}"
            seen.add(label)
            labels.append(label)
            index += 1
    return AudioBundle(bundle.buffers, tuple(labels))
