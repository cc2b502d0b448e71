"""Tests for diagram snapshot validation and file I/O."""

import copy
import json
import logging

import pytest

from pxgraph.io.loader import (
    build_store,
    diagram_schema,
    dump_snapshot,
    load_diagram_file,
    parse_controllers,
    parse_diagram_text,
    save_diagram_file,
    schema_errors,
)
from pxgraph.model.store import EntityStore
from pxgraph.types.errors import MalformedSnapshot


def _conn(payload, source, target):
    return next(
        c
        for c in payload["connections"]
        if c["source"] == source and c["target"] == target
    )


class TestSchema:
    def test_schema_is_packaged(self):
        schema = diagram_schema()
        assert schema["type"] == "object"
        assert "connections" in schema["properties"]

    def test_sample_payload_is_schema_valid(self, sample_payload):
        assert schema_errors(sample_payload) == []

    def test_unknown_top_level_key(self):
        errors = schema_errors({"nodes": []})
        assert errors and "nodes" in errors[0]

    def test_bad_wire_color(self, sample_payload):
        sample_payload["connections"][0]["wireColor"] = "plaid"
        with pytest.raises(MalformedSnapshot) as exc_info:
            build_store(sample_payload)
        assert any("wireColor" in e for e in exc_info.value.errors)


class TestBuildStore:
    def test_empty_payload_builds_empty_store(self):
        assert build_store({}).is_empty()

    def test_non_object_rejected(self):
        with pytest.raises(MalformedSnapshot):
            build_store([])

    def test_round_trip(self, sample_payload):
        store = build_store(sample_payload)
        assert dump_snapshot(store) == sample_payload

    def test_duplicate_ids(self, sample_payload):
        sample_payload["models"].append(copy.deepcopy(sample_payload["models"][0]))
        with pytest.raises(MalformedSnapshot, match="duplicate id"):
            build_store(sample_payload)

    def test_wrong_board_size(self, sample_payload):
        sample_payload["differentials"][0]["differentialPorts"].pop()
        with pytest.raises(MalformedSnapshot, match="exactly 4 ports"):
            build_store(sample_payload)

    def test_orphan_differential_port(self, sample_payload, sample):
        dp = copy.deepcopy(sample_payload["differentialPorts"][0])
        dp.update(id="dp-orphan", differentialId="diff-9", connectedReceivers=[])
        sample_payload["differentialPorts"].append(dp)
        with pytest.raises(MalformedSnapshot) as exc_info:
            build_store(sample_payload)
        assert any("dp-orphan" in e for e in exc_info.value.errors)

    def test_receiver_list_must_match_wiring(self, sample_payload, sample):
        dp = next(
            d for d in sample_payload["differentialPorts"] if d["id"] == sample.dp2.id
        )
        dp["connectedReceivers"] = [sample.receiver.id]
        with pytest.raises(MalformedSnapshot, match="connectedReceivers"):
            build_store(sample_payload)

    def test_receiver_list_optional(self, sample_payload):
        for dp in sample_payload["differentialPorts"]:
            del dp["connectedReceivers"]
        store = build_store(sample_payload)
        assert len(store.connections) == len(sample_payload["connections"])

    def test_second_feed_rejected(self, sample_payload, sample):
        """A receiver fed twice is invalid, not silently merged."""
        extra = dict(
            _conn(sample_payload, sample.dp1.id, sample.receiver.id),
            id="extra",
            source=sample.dp2.id,
        )
        sample_payload["connections"].append(extra)
        with pytest.raises(MalformedSnapshot, match="TargetOccupied"):
            build_store(sample_payload)

    def test_model_edge_must_match_port_id(self, sample_payload, sample):
        model = next(m for m in sample_payload["models"] if m["id"] == sample.arch.id)
        model["portId"] = sample.receiver.ports[1].id
        with pytest.raises(MalformedSnapshot, match="portId"):
            build_store(sample_payload)

    def test_current_pixels_normalized(self, sample_payload):
        sample_payload["receivers"][0]["ports"][0]["currentPixels"] = 9999
        store = build_store(sample_payload)
        assert store.receivers["rx-1"].ports[0].current_pixels == 120

    def test_dangling_connection_kept(self, sample_payload, sample, caplog):
        """Wires into a controller missing from the payload survive a load."""
        sample_payload["controllers"] = []
        with caplog.at_level(logging.WARNING, logger="pxgraph"):
            store = build_store(sample_payload)
        assert len(store.connections) == len(sample_payload["connections"])
        assert "dangling" in caplog.text

    def test_errors_are_collected(self, sample_payload):
        sample_payload["models"].append(copy.deepcopy(sample_payload["models"][0]))
        sample_payload["receivers"].append(copy.deepcopy(sample_payload["receivers"][0]))
        with pytest.raises(MalformedSnapshot) as exc_info:
            build_store(sample_payload)
        assert len(exc_info.value.errors) == 2

    def test_store_load_is_atomic(self, sample, sample_payload):
        store = sample.diagram.store
        broken = copy.deepcopy(sample_payload)
        broken["connections"][0]["target"] = sample.dp1.id
        before = dump_snapshot(store)
        with pytest.raises(MalformedSnapshot):
            store.load_snapshot(broken)
        assert dump_snapshot(store) == before


class TestParseControllers:
    def test_valid(self):
        ctls = parse_controllers(
            [
                {
                    "id": "c1",
                    "name": "F16",
                    "ports": [{"id": "p1", "name": "1", "maxPixels": 680}],
                }
            ]
        )
        assert ctls[0].ports[0].max_pixels == 680

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            "x",
            [{"name": "no id"}],
            [{"id": "c1", "name": "A", "ports": [{"id": "p"}]}],
        ],
    )
    def test_invalid(self, raw):
        with pytest.raises(MalformedSnapshot):
            parse_controllers(raw)


class TestFiles:
    def test_parse_text(self):
        assert parse_diagram_text("") == {}
        assert parse_diagram_text("", fmt="yaml") == {}
        assert parse_diagram_text('{"models": []}') == {"models": []}
        with pytest.raises(MalformedSnapshot):
            parse_diagram_text("{not json")
        with pytest.raises(MalformedSnapshot):
            parse_diagram_text("- a\n- b\n", fmt="yaml")

    @pytest.mark.parametrize("name", ["diagram.json", "diagram.yaml"])
    def test_save_and_load(self, tmp_path, sample, sample_payload, name):
        path = save_diagram_file(sample.diagram.store, tmp_path / "out" / name)
        assert path.is_file()
        assert load_diagram_file(path) == sample_payload
        fresh = EntityStore()
        fresh.load_snapshot(load_diagram_file(path))
        assert dump_snapshot(fresh) == sample_payload

    def test_json_file_is_plain_json(self, tmp_path, sample):
        path = save_diagram_file(sample.diagram.store, tmp_path / "d.json")
        data = json.loads(path.read_text())
        assert set(data) == {
            "controllers",
            "differentials",
            "differentialPorts",
            "receivers",
            "models",
            "connections",
        }
