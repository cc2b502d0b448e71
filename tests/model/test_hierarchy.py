"""Tests for HierarchyResolver navigation."""

import logging

from pxgraph.model.entities import DIFF_PORT_OUTPUT, RECEIVER_INPUT, Endpoint


class TestParents:
    def test_parent_chain(self, sample):
        """Model -> Receiver -> DifferentialPort -> Differential -> Controller."""
        r = sample.diagram.resolver
        assert r.parent_of(sample.arch.id) is sample.receiver
        assert r.parent_of(sample.receiver.id) is sample.dp1
        assert r.parent_of(sample.dp1.id) is sample.board
        assert r.parent_of(sample.board.id) is sample.controller
        assert r.parent_of(sample.controller.id) is None

    def test_ancestors_and_root(self, sample):
        r = sample.diagram.resolver
        chain = [e.id for e in r.ancestors(sample.arch.id)]
        assert chain == [
            sample.receiver.id,
            sample.dp1.id,
            sample.board.id,
            sample.controller.id,
        ]
        assert r.root_controller(sample.arch.id) is sample.controller
        assert r.root_controller(sample.controller.id) is sample.controller

    def test_unwired_entities_have_no_parent(self, sample):
        r = sample.diagram.resolver
        assert r.parent_of(sample.dp2.id) is sample.board
        assert r.receivers_of(sample.dp2.id) == []
        assert r.parent_of("missing") is None
        assert r.children_of("missing") == []


class TestChildren:
    def test_controller_children_per_port(self, sample):
        """Boards on port 1 come before models on port 2."""
        children = sample.diagram.resolver.children_of(sample.controller.id)
        assert children == [sample.board.id, sample.roof.id]

    def test_differential_children_in_port_order(self, sample):
        children = sample.diagram.resolver.children_of(sample.board.id)
        assert children == sample.board.differential_ports
        assert len(children) == 4

    def test_receiver_children_are_models(self, sample):
        assert sample.diagram.resolver.children_of(sample.receiver.id) == [
            sample.arch.id,
            sample.tree.id,
        ]

    def test_receivers_of_follows_wiring_order(self, sample):
        d = sample.diagram
        rx2 = d.add_receiver("Rx2", ports=[("P1", 100)])
        d.connect(
            Endpoint(sample.dp1.id, DIFF_PORT_OUTPUT), Endpoint(rx2.id, RECEIVER_INPUT)
        )
        assert d.resolver.receivers_of(sample.dp1.id) == [sample.receiver.id, rx2.id]
        assert d.resolver.children_of(sample.dp1.id) == [sample.receiver.id, rx2.id]


class TestDangling:
    def test_missing_controller_is_skipped(self, sample, caplog):
        """A removed controller leaves the board parentless, not an error."""
        store = sample.diagram.store
        store.replace_controllers([])
        r = sample.diagram.resolver
        with caplog.at_level(logging.DEBUG, logger="pxgraph"):
            assert r.parent_of(sample.board.id) is None
        assert any("dangling" in rec.message for rec in caplog.records)
        assert r.parent_of(sample.roof.id) is None
        assert len(r.connections_touching(sample.controller.id)) == 2

    def test_missing_receiver_dropped_from_receivers_of(self, sample):
        from pxgraph.types.base import EntityKind

        sample.diagram.store.remove(EntityKind.RECEIVER, sample.receiver.id)
        assert sample.diagram.resolver.receivers_of(sample.dp1.id) == []

    def test_is_dangling(self, sample):
        r = sample.diagram.resolver
        conns = r.connections_touching(sample.controller.id)
        assert not any(r.is_dangling(c) for c in conns)
        sample.diagram.store.replace_controllers([])
        assert all(r.is_dangling(c) for c in conns)
