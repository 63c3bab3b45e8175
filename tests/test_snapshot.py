"""
Tests for graph snapshots and their YAML/JSON files.
"""

import json

import pytest
import yaml

from soundgraph.errors import GraphError, ParameterError, UnsupportedNodeType
from soundgraph.graph import AudioGraph, SNAPSHOT_VERSION, load_snapshot, save_snapshot
from soundgraph.testing import create_test_graph


def snapshot_with_unknown() -> dict:
    return {
        "version": 1,
        "nodes": [
            {"id": "src", "type": "source", "parameters": {}},
            {"id": "verb", "type": "reverb", "parameters": {"room": 0.7}},
            {"id": "vol", "type": "volume", "parameters": {"gain": 1.2}},
        ],
        "edges": [
            {"source": "src", "source_port": "output", "target": "verb", "target_port": "audio"},
            {"source": "src", "source_port": "output", "target": "vol", "target_port": "audio"},
        ],
    }


class TestSnapshotShape:
    """Tests for to_snapshot."""

    def test_records(self):
        snap = create_test_graph(gain=1.5).to_snapshot()

        assert snap["version"] == SNAPSHOT_VERSION
        assert [n["id"] for n in snap["nodes"]] == ["src", "vol", "soft"]
        vol = snap["nodes"][1]
        assert vol["type"] == "volume"
        assert vol["parameters"] == {"gain": 1.5, "clipping_mode": "none"}
        assert vol["connections"] == [
            {"source": "vol", "source_port": "output", "target": "soft", "target_port": "audio"}
        ]
        assert len(snap["edges"]) == 2

    def test_round_trip(self):
        graph = create_test_graph(gain=0.7)

        restored = AudioGraph.from_snapshot(graph.to_snapshot())

        assert restored.to_snapshot() == graph.to_snapshot()
        assert restored.connections == graph.connections


class TestStrictLoad:
    """Tests for strict snapshot loading."""

    def test_unknown_type_raises(self):
        with pytest.raises(UnsupportedNodeType) as exc_info:
            AudioGraph.from_snapshot(snapshot_with_unknown())

        assert exc_info.value.types == ["reverb"]

    def test_bad_parameter_raises(self):
        data = {"nodes": [{"id": "vol", "type": "volume", "parameters": {"gain": "loud"}}]}

        with pytest.raises(ParameterError):
            AudioGraph.from_snapshot(data)

    def test_malformed_edge_raises(self):
        data = {
            "nodes": [{"id": "src", "type": "source"}],
            "edges": [{"source": "src"}],
        }

        with pytest.raises(GraphError, match="Malformed edge"):
            AudioGraph.from_snapshot(data)

    @pytest.mark.parametrize("data", [[], {"version": 99}, {"version": "one"}])
    def test_rejects_bad_document(self, data):
        with pytest.raises(GraphError):
            AudioGraph.from_snapshot(data)


class TestLenientLoad:
    """Tests for non-strict loading with a LoadReport."""

    def test_skips_unknown_nodes_and_their_edges(self):
        graph, report = AudioGraph.from_snapshot(snapshot_with_unknown(), strict=False)

        assert [n.id for n in graph.nodes] == ["src", "vol"]
        assert [e.target_id for e in graph.connections] == ["vol"]
        assert [n["id"] for n in report.skipped_nodes] == ["verb"]
        assert [e["target"] for e in report.skipped_edges] == ["verb"]
        assert not report.complete
        assert "verb" in str(report)

    def test_bad_parameter_left_default(self):
        data = {"nodes": [{"id": "vol", "type": "volume", "parameters": {"gain": "loud", "pitch": 2}}]}

        graph, report = AudioGraph.from_snapshot(data, strict=False)

        assert graph.node("vol").params["gain"] == 1.0
        assert len(report.parameter_errors) == 2

    def test_duplicate_id_skipped(self):
        data = {"nodes": [{"id": "a", "type": "volume"}, {"id": "a", "type": "soften"}]}

        graph, report = AudioGraph.from_snapshot(data, strict=False)

        assert [(n.id, n.kind.value) for n in graph.nodes] == [("a", "volume")]
        assert report.skipped_nodes[0]["type"] == "soften"
        assert "already exists" in report.skipped_nodes[0]["reason"]

    def test_malformed_node_records_skipped(self):
        data = {
            "nodes": [
                {"type": "volume"},
                "vol",
                {"id": "ok", "type": "volume", "parameters": ["gain"]},
                {"id": "fine", "type": "fade"},
            ],
            "edges": ["src->fine"],
        }

        graph, report = AudioGraph.from_snapshot(data, strict=False)

        assert [n.id for n in graph.nodes] == ["fine"]
        assert len(report.skipped_nodes) == 3
        assert report.skipped_nodes[1] == {"record": "vol", "reason": report.skipped_nodes[1]["reason"]}
        assert len(report.skipped_edges) == 1

    def test_malformed_node_record_strict(self):
        with pytest.raises(GraphError, match="Malformed node record"):
            AudioGraph.from_snapshot({"nodes": [{"type": "volume"}]})

    def test_complete_report(self):
        _, report = AudioGraph.from_snapshot(create_test_graph().to_snapshot(), strict=False)

        assert report.complete
        assert str(report) == "Snapshot loaded completely"


class TestSnapshotFiles:
    """Tests for save_snapshot / load_snapshot."""

    def test_yaml(self, tmp_path):
        graph = create_test_graph(gain=1.25)
        path = tmp_path / "graph.yaml"

        save_snapshot(graph, path)

        assert yaml.safe_load(path.read_text())["nodes"][1]["parameters"]["gain"] == 1.25
        assert load_snapshot(path).to_snapshot() == graph.to_snapshot()

    def test_json(self, tmp_path):
        graph = create_test_graph()
        path = tmp_path / "graph.json"

        save_snapshot(graph, path)

        assert json.loads(path.read_text())["version"] == 1
        assert load_snapshot(path).to_snapshot() == graph.to_snapshot()

    def test_lenient_file_load(self, tmp_path):
        path = tmp_path / "graph.json"
        path.write_text(json.dumps(snapshot_with_unknown()))

        graph, report = load_snapshot(path, strict=False)

        assert "vol" in graph
        assert report.skipped_nodes

    def test_unsupported_suffix(self, tmp_path):
        with pytest.raises(ValueError, match="Unsupported file format"):
            save_snapshot(create_test_graph(), tmp_path / "graph.txt")
        with pytest.raises(ValueError, match="Unsupported file format"):
            load_snapshot(tmp_path / "graph.toml")
