"""Graph views of the topology built with NetworkX."""

from pxgraph.graph.convert import find_cycles, to_networkx, would_create_cycle

__all__ = ["to_networkx", "would_create_cycle", "find_cycles"]
