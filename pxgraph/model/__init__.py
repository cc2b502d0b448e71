"""Topology model package.

Entities and their store, the hierarchy resolver, capacity aggregation, the
connection engine with auto-snap, and the edit operations. ``Diagram`` in
``pxgraph.model.diagram`` bundles all of them behind one object.
"""

from pxgraph.model.capacity import (
    CapacityAggregator,
    OverCapacityEntry,
    PortUtilization,
    SharedPortUtilization,
    UtilizationTotal,
    utilization_pct,
)
from pxgraph.model.connections import ConnectionEngine, ResolvedHandle
from pxgraph.model.edits import TopologyEditor
from pxgraph.model.entities import (
    DIFF_BOARD_INPUT,
    DIFF_BOARD_OUTPUT,
    DIFF_PORT_INPUT,
    DIFF_PORT_OUTPUT,
    MODEL_INPUT,
    MODEL_OUTPUT,
    RECEIVER_INPUT,
    Connection,
    Controller,
    Differential,
    DifferentialPort,
    Endpoint,
    Model,
    Port,
    Receiver,
    SharedPort,
    port_handle,
)
from pxgraph.model.hierarchy import HierarchyResolver
from pxgraph.model.snap import HandleAnchor, find_snap_target, snap_connect
from pxgraph.model.store import EntityStore

__all__ = [
    # Entities
    "Controller",
    "Differential",
    "DifferentialPort",
    "Receiver",
    "Model",
    "Port",
    "SharedPort",
    "Connection",
    "Endpoint",
    # Handles
    "DIFF_BOARD_INPUT",
    "DIFF_BOARD_OUTPUT",
    "DIFF_PORT_INPUT",
    "DIFF_PORT_OUTPUT",
    "RECEIVER_INPUT",
    "MODEL_INPUT",
    "MODEL_OUTPUT",
    "port_handle",
    # Store and navigation
    "EntityStore",
    "HierarchyResolver",
    # Capacity
    "CapacityAggregator",
    "PortUtilization",
    "SharedPortUtilization",
    "UtilizationTotal",
    "OverCapacityEntry",
    "utilization_pct",
    # Wiring and edits
    "ConnectionEngine",
    "ResolvedHandle",
    "HandleAnchor",
    "find_snap_target",
    "snap_connect",
    "TopologyEditor",
]
