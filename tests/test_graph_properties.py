"""
Property-Based Graph Tests - Invariants across random buffers and graphs.

Uses Hypothesis to generate random sample data and random edit sequences
and verify the invariants the engine relies on.

Invariants tested:
    1. Protected gain modes never leave [-1, 1]
    2. Integer PCM export decodes back to the same samples
    3. Join length is the sum of its inputs; crop never grows
    4. The graph stays acyclic under any sequence of connect attempts
    5. A rejected connection never changes the graph
    6. An edit dirties exactly the edited node and its downstream closure
"""

import numpy as np
from hypothesis import given, settings, strategies as st

from soundgraph.audio import SampleBuffer
from soundgraph.dsp import ClippingMode, apply_gain, crop, join, soften
from soundgraph.errors import CycleRejected
from soundgraph.formats import decode, encode
from soundgraph.graph import AudioGraph
from soundgraph.nodes import NodeState


# =============================================================================
# Hypothesis Strategies
# =============================================================================

sample_strategy = st.floats(min_value=-4.0, max_value=4.0, allow_nan=False)

buffer_strategy = st.builds(
    lambda samples, rate: SampleBuffer(samples, rate),
    st.lists(sample_strategy, min_size=1, max_size=200),
    st.sampled_from([8000, 22050, 44100]),
)

pcm16_strategy = st.lists(st.integers(min_value=-32768, max_value=32767), min_size=1, max_size=200)

NODE_IDS = ["v0", "v1", "v2", "v3", "v4", "v5"]

edge_strategy = st.lists(
    st.tuples(st.sampled_from(NODE_IDS), st.sampled_from(NODE_IDS)),
    max_size=30,
)


def volume_graph() -> AudioGraph:
    graph = AudioGraph()
    for nid in NODE_IDS:
        graph.add_node(nid, "volume")
    return graph


# =============================================================================
# Kernel properties
# =============================================================================

class TestGainProperties:
    """Property: protected clipping modes keep output within full scale."""

    @given(buffer_strategy, st.floats(min_value=0.0, max_value=2.0),
           st.sampled_from([ClippingMode.LIMITER, ClippingMode.SOFTCLIP, ClippingMode.NORMALIZE]))
    @settings(max_examples=200)
    def test_protected_modes_bounded(self, buf, gain, mode):
        result = apply_gain(buf, gain, mode)

        assert not result.clipped
        assert result.buffer.peak() <= 1.0

    @given(buffer_strategy, st.floats(min_value=0.0, max_value=2.0))
    @settings(max_examples=100)
    def test_none_mode_flags_every_overshoot(self, buf, gain):
        result = apply_gain(buf, gain, ClippingMode.NONE)

        assert result.clipped == (result.buffer.peak() > 1.0)


class TestCodecProperties:
    """Property: 16-bit PCM survives export and re-import unchanged."""

    @given(pcm16_strategy, st.sampled_from([8000, 44100, 48000]))
    @settings(max_examples=100)
    def test_pcm16_exact(self, ints, rate):
        buf = SampleBuffer(np.array(ints) / 32768, rate)

        assert decode(encode(buf, 16)) == buf


class TestShapeProperties:
    """Property: output lengths follow from input lengths."""

    @given(buffer_strategy, buffer_strategy)
    @settings(max_examples=100)
    def test_join_length(self, a, b):
        b = SampleBuffer(b.data, a.sample_rate)

        assert len(join(a, b)) == len(a) + len(b)

    @given(buffer_strategy, st.floats(min_value=0, max_value=1), st.floats(min_value=0, max_value=1))
    @settings(max_examples=100)
    def test_crop_never_grows(self, buf, start, end):
        out = crop(buf, start * buf.duration, end * buf.duration)

        assert 0 <= len(out) <= len(buf)
        assert out.channels == buf.channels

    @given(buffer_strategy, st.floats(min_value=1000, max_value=16000))
    @settings(max_examples=50)
    def test_soften_zero_intensity_identity(self, buf, cutoff):
        assert soften(buf, cutoff, 0).tobytes() == buf.tobytes()


# =============================================================================
# Graph properties
# =============================================================================

class TestAcyclicity:
    """Property: no edit sequence can produce a cycle."""

    @given(edge_strategy)
    @settings(max_examples=200)
    def test_random_connects(self, edges):
        graph = volume_graph()

        for source, target in edges:
            before = graph.connections
            try:
                graph.connect(source, target, "audio")
            except CycleRejected:
                assert graph.connections == before

        order = graph.topological_order()
        assert sorted(order) == sorted(NODE_IDS)
        position = {nid: i for i, nid in enumerate(order)}
        for edge in graph.connections:
            assert position[edge.source_id] < position[edge.target_id]

    @given(edge_strategy)
    @settings(max_examples=100)
    def test_single_source_inputs_hold_one_edge(self, edges):
        graph = volume_graph()

        for source, target in edges:
            try:
                graph.connect(source, target, "audio")
            except CycleRejected:
                pass

        for nid in NODE_IDS:
            assert len(graph.incoming(nid, "audio")) <= 1


class TestDirtyClosure:
    """Property: an edit dirties exactly the node and its descendants."""

    @given(edge_strategy, st.sampled_from(NODE_IDS))
    @settings(max_examples=200)
    def test_closure(self, edges, edited):
        graph = volume_graph()
        for source, target in edges:
            try:
                graph.connect(source, target, "audio")
            except CycleRejected:
                pass
        for node in graph.nodes:
            node.state = NodeState.CLEAN

        graph.set_parameter(edited, "gain", 0.5)

        dirty = {n.id for n in graph.nodes if n.state is NodeState.DIRTY}
        assert dirty == {edited} | set(graph.downstream(edited))
        assert edited not in graph.upstream(edited)
