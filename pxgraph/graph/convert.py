"""Project the entity store onto a NetworkX ``DiGraph``.

Nodes are entity ids (attribute ``kind``). Edges run upstream to downstream
and come from two sources:

- structural ownership (board -> its ports, port owner -> assigned models),
  marked ``structural=True``;
- stored connections whose two ends both exist, carrying the connection ids
  in ``connections``.

The graph is rebuilt on each call and is used for reachability questions
such as cycle detection.
"""

from __future__ import annotations

from typing import List

import networkx as nx

from pxgraph.model.store import EntityStore
from pxgraph.types.base import EntityKind


def to_networkx(store: EntityStore) -> nx.DiGraph:
    """Build the directed topology graph of ``store``."""
    graph = nx.DiGraph()
    for kind in EntityKind:
        for entity_id, entity in store.collection(kind).items():
            graph.add_node(entity_id, kind=kind.value, name=entity.name)

    for dp in store.differential_ports.values():
        if dp.differential_id in graph:
            graph.add_edge(dp.differential_id, dp.id, structural=True, connections=[])

    for model in store.models.values():
        owner = store.port_owner(model.port_id) if model.port_id else None
        if owner is not None:
            graph.add_edge(owner[0].id, model.id, structural=True, connections=[])

    for conn in store.connections.values():
        u, v = conn.source.entity_id, conn.target.entity_id
        if u not in graph or v not in graph:
            continue
        if graph.has_edge(u, v):
            graph[u][v]["connections"].append(conn.id)
        else:
            graph.add_edge(u, v, structural=False, connections=[conn.id])
    return graph


def would_create_cycle(graph: nx.DiGraph, source_id: str, target_id: str) -> bool:
    """True if adding ``source_id -> target_id`` closes a directed cycle."""
    if source_id == target_id:
        return True
    if source_id not in graph or target_id not in graph:
        return False
    return nx.has_path(graph, target_id, source_id)


def find_cycles(store: EntityStore) -> List[List[str]]:
    """All simple cycles in the topology; empty for a well-formed diagram."""
    return [list(c) for c in nx.simple_cycles(to_networkx(store))]
