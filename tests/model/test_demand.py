"""Tests for derived port demand."""

from pxgraph.model.demand import port_demand, recompute_port_demand
from pxgraph.model.entities import Controller, Model, Port
from pxgraph.model.store import EntityStore


def _store():
    store = EntityStore()
    store.upsert(Controller("c1", "A", ports=[Port("p1", "1", 500), Port("p2", "2", 500)]))
    store.upsert(Model("m1", "Arch", 100, port_id="p1"))
    store.upsert(Model("m2", "Tree", 50, port_id="p1"))
    store.upsert(Model("m3", "Loose", 70))
    return store


def test_port_demand_sums_assigned_models():
    assert port_demand(_store()) == {"p1": 150}


def test_recompute_all_ports():
    store = _store()
    store.port("p2").current_pixels = 999
    assert recompute_port_demand(store) == 2
    assert store.port("p1").current_pixels == 150
    assert store.port("p2").current_pixels == 0
    assert recompute_port_demand(store) == 0


def test_recompute_selected_ports_skips_unknown():
    store = _store()
    assert recompute_port_demand(store, ["p2", None, "ghost"]) == 0
    assert store.port("p1").current_pixels == 0
    assert recompute_port_demand(store, ["p1"]) == 1
