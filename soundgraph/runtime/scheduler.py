"""
Graph scheduler - cancellation-aware evaluation over an AudioGraph.

Evaluation contract:
    - A node is computed only after every upstream node is settled
      (CLEAN or FAILED), from the outputs those nodes committed.
    - At most one computation per node is in flight. Concurrent callers
      share it.
    - A computation commits only if the node's revision is unchanged when
      it finishes. Otherwise the result is discarded and, if someone is
      still waiting for the node, it is computed again.
    - Unrelated ancestors are settled concurrently with asyncio.gather.

Preview contract:
    request_preview() debounces per node: a new request cancels the pending
    one, and only the newest request can deliver a PreviewResult.
    Compute tasks are shielded, so cancelling a preview never tears down a
    kernel mid-buffer.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable

from soundgraph.audio import AudioBundle, SampleBuffer
from soundgraph.errors import SoundGraphError, UnknownNodeError
from soundgraph.graph import AudioGraph
from soundgraph.monitoring import StructuredLogger, get_logger
from soundgraph.nodes import Node, NodeState, NodeWarning, is_settled
from soundgraph.runtime.config import SchedulerConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreviewResult:
    """What the preview callback receives once a debounced request settles."""
    node_id: str
    revision: int
    bundle: AudioBundle
    warning: NodeWarning | None = None
    error: Exception | None = None

    @property
    def buffer(self) -> SampleBuffer | None:
        return self.bundle.first


PreviewCallback = Callable[[PreviewResult], None]


class GraphScheduler:
    """
    Evaluates dirty nodes of a graph in dependency order.

    Example:
        scheduler = GraphScheduler(graph, on_preview=show_waveform)
        bundle = await scheduler.evaluate("vol")

        # Slider drag: many requests, one delivery
        for gain in (1.1, 1.2, 1.3):
            graph.set_parameter("vol", "gain", gain)
            scheduler.request_preview("vol")
    """

    def __init__(
        self,
        graph: AudioGraph,
        config: SchedulerConfig | None = None,
        on_preview: PreviewCallback | None = None,
        event_logger: StructuredLogger | None = None,
    ):
        self.graph = graph
        self.config = config or SchedulerConfig()
        self.on_preview = on_preview
        self._events = event_logger or get_logger()

        self._inflight: dict[str, asyncio.Task] = {}
        self._previews: dict[str, asyncio.Task] = {}
        self._preview_seq: dict[str, int] = {}

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    async def evaluate(self, node_id: str) -> AudioBundle:
        """
        Settle a node and everything upstream of it.

        Returns:
            The node's main output bundle (empty for a null output)

        Raises:
            UnknownNodeError: If the node does not exist (or was removed)
        """
        await self._ensure(node_id)
        return self.graph.node(node_id).output()

    async def evaluate_all(self) -> None:
        """Settle every node in the graph."""
        order = self.graph.topological_order()
        await asyncio.gather(*(self._ensure(nid) for nid in order))

    async def _ensure(self, node_id: str) -> None:
        # A removed node counts as settled; the caller re-reads its edges
        while True:
            node = self.graph.get(node_id)
            if node is None or is_settled(node.state):
                return

            parents = list(dict.fromkeys(e.source_id for e in self.graph.incoming(node_id)))
            if parents:
                await asyncio.gather(*(self._ensure(p) for p in parents))

            node = self.graph.get(node_id)
            if node is None or is_settled(node.state):
                return
            await self._compute(node)

    async def _compute(self, node: Node) -> None:
        task = self._inflight.get(node.id)
        if task is None or task.done():
            task = asyncio.get_running_loop().create_task(self._run(node))
            self._inflight[node.id] = task
            task.add_done_callback(lambda t, nid=node.id: self._forget(nid, t))
        await asyncio.shield(task)

    def _forget(self, node_id: str, task: asyncio.Task) -> None:
        if self._inflight.get(node_id) is task:
            del self._inflight[node_id]

    def _parents_settled(self, node_id: str) -> bool:
        return all(
            is_settled(self.graph.node(e.source_id).state)
            for e in self.graph.incoming(node_id)
        )

    async def _run(self, node: Node) -> None:
        graph = self.graph
        with graph.lock:
            if graph.get(node.id) is not node or node.state is not NodeState.DIRTY:
                return
            if not self._parents_settled(node.id):
                return
            inputs, groups = graph.gather_inputs(node.id)
            ctx = node.context(graph.env, groups)
            revision = node.revision
            node.transition(NodeState.COMPUTING)

        self._events.evaluation_start(node.id, revision, kind=node.kind.value)
        started = time.perf_counter()

        result = None
        error: Exception | None = None
        try:
            if self.config.offload_kernels:
                loop = asyncio.get_running_loop()
                result = await loop.run_in_executor(None, node.process, inputs, graph.env, ctx)
            else:
                await asyncio.sleep(0)
                result = node.process(inputs, context=ctx)
        except asyncio.CancelledError:
            # Loop shutdown; leave the node recomputable
            with graph.lock:
                if node.state is NodeState.COMPUTING:
                    node.transition(NodeState.DIRTY)
            raise
        except SoundGraphError as e:
            logger.warning("Node %s failed: %s", node.id, e.message)
            error = e
        except Exception as e:
            logger.exception("Node %s raised during processing", node.id)
            error = e

        with graph.lock:
            if graph.get(node.id) is not node or node.revision != revision:
                self._events.evaluation_discarded(node.id, revision, node.revision)
                return

            if error is not None:
                node.fail(error)
                self._events.node_failed(node.id, error)
                return

            node.commit(result)

        duration_ms = (time.perf_counter() - started) * 1000
        self._events.evaluation_complete(
            node.id, revision, duration_ms, buffers=len(result.main)
        )
        if result.warning is not None:
            self._events.node_warning(
                node.id, result.warning.kind.value, result.warning.message,
                ports=list(result.warning.ports),
            )

    # -------------------------------------------------------------------------
    # Preview
    # -------------------------------------------------------------------------

    def request_preview(self, node_id: str) -> asyncio.Task:
        """
        Ask for a debounced preview of a node.

        Any pending preview of the same node is cancelled. Must be called
        from inside the running event loop.

        Returns:
            Task resolving to the PreviewResult, or None if superseded
        """
        if node_id not in self.graph:
            raise UnknownNodeError(node_id)

        seq = self._preview_seq.get(node_id, 0) + 1
        self._preview_seq[node_id] = seq

        pending = self._previews.get(node_id)
        if pending is not None and not pending.done():
            pending.cancel()

        task = asyncio.get_running_loop().create_task(self._preview(node_id, seq))
        self._previews[node_id] = task
        return task

    async def _preview(self, node_id: str, seq: int) -> PreviewResult | None:
        await asyncio.sleep(self.config.debounce_s)
        bundle = await self.evaluate(node_id)

        if self._preview_seq.get(node_id) != seq:
            return None

        node = self.graph.node(node_id)
        result = PreviewResult(
            node_id=node_id,
            revision=node.revision,
            bundle=bundle,
            warning=node.current_warning(),
            error=node.last_error,
        )
        self._events.preview_delivered(node_id, node.revision, buffers=len(bundle))
        if self.on_preview is not None:
            self.on_preview(result)
        return result

    async def wait_previews(self) -> None:
        """Wait for every pending preview to deliver or be cancelled."""
        pending = [t for t in self._previews.values() if not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def cancel_previews(self) -> None:
        for task in self._previews.values():
            if not task.done():
                task.cancel()

    # -------------------------------------------------------------------------
    # Warning surface
    # -------------------------------------------------------------------------

    def warnings(self) -> dict[str, NodeWarning]:
        """Current warning of every node that has one."""
        return {
            node.id: node.current_warning()
            for node in self.graph.nodes
            if node.current_warning() is not None
        }

    def errors(self) -> dict[str, Exception]:
        """Last error of every FAILED node."""
        return {
            node.id: node.last_error
            for node in self.graph.nodes
            if node.state is NodeState.FAILED and node.last_error is not None
        }
