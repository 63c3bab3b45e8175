"""
Tests for the graph scheduler: ordering, caching, discard and previews.
"""

import asyncio

import numpy as np
import pytest

from soundgraph.engine import GraphEngine
from soundgraph.errors import DecodeError, UnknownNodeError
from soundgraph.graph import AddNode, Connect, LoadSource, RemoveNode, SetParameter
from soundgraph.nodes import NodeState, NodeWarning
from soundgraph.runtime import EngineConfig, SchedulerConfig


def build(engine: GraphEngine, wav: bytes, gain: float = 1.0) -> GraphEngine:
    engine.apply_all([
        AddNode("src", "source"),
        LoadSource("src", wav, "take.wav"),
        AddNode("vol", "volume", {"gain": gain}),
        Connect("src", "vol", "audio"),
    ])
    return engine


def starts(capture, node_id: str) -> int:
    return sum(1 for r in capture.events("evaluation_start") if r["node_id"] == node_id)


class TestEvaluation:
    """Tests for evaluate and evaluate_all."""

    def test_evaluates_chain(self, engine, make_wav):
        build(engine, make_wav([0.5, -0.25]), gain=0.5)

        buf = asyncio.run(engine.evaluate("vol"))

        np.testing.assert_array_equal(buf.data[0], [0.25, -0.125])
        assert engine.graph.node("src").state is NodeState.CLEAN
        assert engine.graph.node("vol").state is NodeState.CLEAN

    def test_idempotent(self, engine, capture, make_wav):
        build(engine, make_wav([0.5]))

        async def twice():
            first = await engine.evaluate("vol")
            second = await engine.evaluate("vol")
            return first, second

        first, second = asyncio.run(twice())

        assert first is second
        assert starts(capture, "vol") == 1
        assert starts(capture, "src") == 1

    def test_concurrent_callers_share(self, engine, capture, make_wav):
        build(engine, make_wav([0.5]))

        async def both():
            return await asyncio.gather(engine.evaluate("vol"), engine.evaluate("vol"))

        a, b = asyncio.run(both())

        assert a == b
        assert starts(capture, "vol") == 1

    def test_shared_ancestor_once(self, engine, capture, make_wav):
        build(engine, make_wav([0.5, 0.5]))
        engine.apply_all([
            AddNode("soft", "soften"),
            Connect("src", "soft", "audio"),
            AddNode("mix", "mix"),
            Connect("vol", "mix", "audio1"),
            Connect("soft", "mix", "audio2"),
        ])

        asyncio.run(engine.evaluate("mix"))

        assert starts(capture, "src") == 1
        assert engine.graph.node("mix").state is NodeState.CLEAN

    def test_only_edited_closure_recomputed(self, engine, capture, make_wav):
        build(engine, make_wav([0.5]))
        engine.apply_all([AddNode("fade", "fade"), Connect("vol", "fade", "audio")])
        asyncio.run(engine.evaluate("fade"))

        engine.apply(SetParameter("fade", "duration", 0.0))
        asyncio.run(engine.evaluate("fade"))

        assert starts(capture, "src") == 1
        assert starts(capture, "vol") == 1
        assert starts(capture, "fade") == 2

    def test_evaluate_all(self, engine, make_wav):
        build(engine, make_wav([0.5]))
        engine.apply(AddNode("lonely", "crop"))

        asyncio.run(engine.scheduler.evaluate_all())

        assert all(n.state is NodeState.CLEAN for n in engine.graph.nodes)
        assert engine.warnings() == {"lonely": NodeWarning.missing_input("audio")}

    def test_unknown_node(self, engine):
        with pytest.raises(UnknownNodeError):
            asyncio.run(engine.evaluate("ghost"))


class TestWarningsAndFailures:
    """Tests for null outputs, warnings and failed nodes."""

    def test_join_missing_second_input(self, engine, capture, make_wav):
        engine.apply_all([
            AddNode("src", "source"),
            LoadSource("src", make_wav(np.zeros(16000)), "two_seconds.wav"),
            AddNode("join", "join"),
            Connect("src", "join", "audio1"),
        ])

        out = asyncio.run(engine.evaluate("join"))

        assert out is None
        assert engine.warnings()["join"] == NodeWarning.missing_input("audio2")
        assert engine.graph.node("join").state is NodeState.CLEAN
        assert capture.events("node_warning")[0]["ports"] == ["audio2"]

    def test_clipping_warning_cleared_by_edit(self, engine, make_wav):
        build(engine, make_wav([0.9]), gain=2.0)

        asyncio.run(engine.evaluate("vol"))
        assert engine.warnings() == {"vol": NodeWarning.clipping()}

        engine.apply(SetParameter("vol", "clipping_mode", "limiter"))
        buf = asyncio.run(engine.evaluate("vol"))

        assert engine.warnings() == {}
        assert buf.data[0, 0] == 1.0

    def test_decode_failure_fails_source_only(self, engine, capture):
        engine.apply_all([
            AddNode("src", "source"),
            LoadSource("src", b"definitely not a wav", "bad.wav"),
            AddNode("vol", "volume"),
            Connect("src", "vol", "audio"),
        ])

        out = asyncio.run(engine.evaluate("vol"))

        assert out is None
        assert engine.graph.node("src").state is NodeState.FAILED
        assert isinstance(engine.scheduler.errors()["src"], DecodeError)
        assert engine.warnings()["vol"] == NodeWarning.missing_input("audio")
        assert capture.events("node_failed")[0]["error_type"] == "DecodeError"

    def test_failure_keeps_previous_output(self, engine, make_wav):
        build(engine, make_wav([0.5]))
        before = asyncio.run(engine.evaluate("vol"))
        node = engine.graph.node("vol")

        def boom(*args, **kwargs):
            raise RuntimeError("kernel exploded")

        node.process = boom
        engine.apply(SetParameter("vol", "gain", 0.5))
        after = asyncio.run(engine.evaluate("vol"))

        assert node.state is NodeState.FAILED
        assert after is before
        assert isinstance(engine.scheduler.errors()["vol"], RuntimeError)

        del node.process
        engine.apply(SetParameter("vol", "gain", 0.25))
        recovered = asyncio.run(engine.evaluate("vol"))

        assert node.state is NodeState.CLEAN
        assert recovered.data[0, 0] == 0.125
        assert engine.scheduler.errors() == {}


class TestRevisionDiscard:
    """Tests for results superseded mid-evaluation."""

    def test_edit_during_compute_discards(self, engine, capture, make_wav):
        build(engine, make_wav([0.5]))
        node = engine.graph.node("vol")

        async def scenario():
            task = asyncio.create_task(engine.evaluate("vol"))
            for _ in range(1000):
                if node.state is NodeState.COMPUTING:
                    break
                await asyncio.sleep(0)
            assert node.state is NodeState.COMPUTING
            engine.apply(SetParameter("vol", "gain", 0.5))
            return await task

        buf = asyncio.run(scenario())

        assert buf.data[0, 0] == 0.25
        discarded = capture.events("evaluation_discarded")
        assert [r["node_id"] for r in discarded] == ["vol"]
        assert discarded[0]["current_revision"] > discarded[0]["revision"]
        assert node.state is NodeState.CLEAN

    def test_node_removed_during_compute(self, engine, capture, make_wav):
        build(engine, make_wav([0.5]))
        node = engine.graph.node("vol")

        async def scenario():
            task = asyncio.create_task(engine.evaluate("vol"))
            for _ in range(1000):
                if node.state is NodeState.COMPUTING:
                    break
                await asyncio.sleep(0)
            engine.apply(RemoveNode("vol"))
            with pytest.raises(UnknownNodeError):
                await task

        asyncio.run(scenario())

        assert [r["node_id"] for r in capture.events("evaluation_discarded")] == ["vol"]
        assert node.outputs == {}

    def test_parent_removed_during_compute(self, engine, capture, make_wav):
        build(engine, make_wav([0.5]))
        source = engine.graph.node("src")

        async def scenario():
            task = asyncio.create_task(engine.evaluate("vol"))
            for _ in range(1000):
                if source.state is NodeState.COMPUTING:
                    break
                await asyncio.sleep(0)
            assert source.state is NodeState.COMPUTING
            engine.apply(RemoveNode("src"))
            return await task

        buf = asyncio.run(scenario())

        assert buf is None
        assert engine.warnings()["vol"] == NodeWarning.missing_input("audio")
        assert [r["node_id"] for r in capture.events("evaluation_discarded")] == ["src"]
        assert engine.graph.node("vol").state is NodeState.CLEAN


class TestPreview:
    """Tests for debounced previews."""

    def make_engine(self, capture, delivered: list, debounce_ms: float = 20) -> GraphEngine:
        config = EngineConfig(scheduler=SchedulerConfig(debounce_ms=debounce_ms))
        return GraphEngine(config, on_preview=delivered.append, event_logger=capture.logger)

    def test_burst_delivers_newest_only(self, capture, make_wav):
        delivered = []
        engine = build(self.make_engine(capture, delivered), make_wav([0.5]))

        async def drag():
            for gain in (1.2, 1.4, 1.6):
                engine.apply(SetParameter("vol", "gain", gain))
                engine.request_preview("vol")
                await asyncio.sleep(0)
            await engine.scheduler.wait_previews()

        asyncio.run(drag())

        assert len(delivered) == 1
        result = delivered[0]
        assert result.node_id == "vol"
        assert result.revision == engine.graph.node("vol").revision
        assert result.buffer.data[0, 0] == 0.5 * 1.6
        assert starts(capture, "vol") == 1
        assert len(capture.events("preview_delivered")) == 1

    def test_separate_nodes_both_delivered(self, capture, make_wav):
        delivered = []
        engine = build(self.make_engine(capture, delivered), make_wav([0.5]))

        async def run():
            engine.request_preview("src")
            engine.request_preview("vol")
            await engine.scheduler.wait_previews()

        asyncio.run(run())

        assert sorted(r.node_id for r in delivered) == ["src", "vol"]

    def test_preview_task_result(self, capture, make_wav):
        delivered = []
        engine = build(self.make_engine(capture, delivered, debounce_ms=0), make_wav([0.5]))

        async def run():
            return await engine.request_preview("vol")

        result = asyncio.run(run())

        assert result is delivered[0]
        assert result.warning is None
        assert result.error is None

    def test_cancel_previews(self, capture, make_wav):
        delivered = []
        engine = build(self.make_engine(capture, delivered, debounce_ms=1000), make_wav([0.5]))

        async def run():
            engine.request_preview("vol")
            await asyncio.sleep(0)
            engine.scheduler.cancel_previews()
            await engine.scheduler.wait_previews()

        asyncio.run(run())

        assert delivered == []

    def test_unknown_node(self, engine):
        with pytest.raises(UnknownNodeError):
            engine.request_preview("ghost")
