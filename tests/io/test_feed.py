"""Tests for the controller-discovery feed."""

import json
import logging

from pxgraph.io.feed import ControllerFeed, decode_message, iter_sse_data
from pxgraph.model.entities import DIFF_BOARD_INPUT, Endpoint


def _update(*controllers) -> str:
    return json.dumps({"type": "update", "controllers": list(controllers)})


def _controller(cid, name, ports=()):
    return {
        "id": cid,
        "name": name,
        "type": "E1.31",
        "ports": [{"id": pid, "name": pid, "maxPixels": 680} for pid in ports],
    }


class TestDecoding:
    def test_sse_lines(self):
        lines = ["data: a", "", ": comment", "id: 7"]
        lines += ["data:b", "data: c", "", "data: cut"]
        assert list(iter_sse_data(lines)) == ["a", "b\nc"]

    def test_decode_message(self):
        msg = decode_message(_update())
        assert msg.type == "update" and msg.controllers == []
        assert decode_message("not json") is None
        assert decode_message("[1]") is None
        assert decode_message('{"controllers": []}') is None


class TestApply:
    def test_update_replaces_controllers_only(self, sample):
        """User edits to boards, receivers, and models survive an update."""
        store = sample.diagram.store
        sample.diagram.rename(sample.receiver.id, "Garage")
        feed = ControllerFeed(store)
        port_id = sample.controller.ports[0].id
        update = _update(_controller(sample.controller.id, "F16 v2", [port_id]))
        assert feed.apply(update)
        assert store.controllers[sample.controller.id].name == "F16 v2"
        assert store.receivers[sample.receiver.id].name == "Garage"
        assert sample.diagram.parent_of(sample.board.id).name == "F16 v2"
        assert feed.applied == 1

    def test_vanished_controller_leaves_dangling_wires(self, sample):
        store = sample.diagram.store
        feed = ControllerFeed(store)
        feed.apply(_update(_controller("ctl-9", "Other", ["p9"])))
        assert sample.diagram.parent_of(sample.board.id) is None
        wires = sample.diagram.resolver.connections_touching(sample.controller.id)
        assert len(wires) == 2
        assert sample.diagram.get(sample.roof.id).port_id == sample.controller.ports[1].id

    def test_update_recomputes_demand(self, sample):
        """Port demand on fresh controller objects comes from assigned models."""
        ports = [p.id for p in sample.controller.ports]
        ControllerFeed(sample.diagram.store).apply(
            _update(_controller(sample.controller.id, "F16", ports))
        )
        ctl = sample.diagram.store.controllers[sample.controller.id]
        assert ctl.ports[1].current_pixels == 300

    def test_non_update_ignored(self, sample, caplog):
        feed = ControllerFeed(sample.diagram.store)
        with caplog.at_level(logging.DEBUG, logger="pxgraph"):
            assert not feed.apply(json.dumps({"type": "hello"}))
        assert feed.ignored == 1
        assert "hello" in caplog.text
        assert sample.controller.id in sample.diagram.store.controllers

    def test_malformed_update_ignored(self, sample, caplog):
        feed = ControllerFeed(sample.diagram.store)
        with caplog.at_level(logging.WARNING, logger="pxgraph"):
            assert not feed.apply(json.dumps({"type": "update", "controllers": "x"}))
            assert not feed.apply("{{{")
        assert feed.ignored == 2
        assert "Ignoring" in caplog.text
        assert list(sample.diagram.store.controllers) == [sample.controller.id]

    def test_colliding_update_ignored(self, sample):
        """A controller reusing a receiver's port id is rejected whole."""
        feed = ControllerFeed(sample.diagram.store)
        rx_port = sample.receiver.ports[0].id
        assert not feed.apply(_update(_controller("ctl-9", "Other", [rx_port])))
        assert list(sample.diagram.store.controllers) == [sample.controller.id]


class TestOrdering:
    def test_fifo_last_update_wins(self, diagram):
        feed = ControllerFeed(diagram.store)
        feed.submit(_update(_controller("a", "A")))
        feed.submit(_update(_controller("b", "B")))
        assert feed.pending == 2
        assert feed.drain() == 2
        assert list(diagram.store.controllers) == ["b"]
        assert feed.pending == 0

    def test_consume_stops_when_closed(self, diagram):
        feed = ControllerFeed(diagram.store)

        def events():
            yield _update(_controller("a", "A"))
            feed.close()
            yield _update(_controller("b", "B"))

        assert feed.consume(events()) == 1
        assert list(diagram.store.controllers) == ["a"]
        assert feed.closed

    def test_submit_after_close_dropped(self, diagram):
        feed = ControllerFeed(diagram.store)
        feed.close()
        feed.submit(_update(_controller("a", "A")))
        assert feed.pending == 0
        assert feed.drain() == 0

    def test_new_controller_can_feed_board(self, sample):
        """After an update the board's input accepts the new controller."""
        d = sample.diagram
        ControllerFeed(d.store).apply(_update(_controller("ctl-9", "New", ["p9"])))
        d.connect(
            Endpoint("ctl-9", "port:p9"), Endpoint(sample.board.id, DIFF_BOARD_INPUT)
        )
        assert d.parent_of(sample.board.id).id == "ctl-9"
