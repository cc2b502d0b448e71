"""PixelGraph: lighting-control topology and pixel-capacity modeling.

PixelGraph models how pixel controllers feed differential boards, receivers,
and lighting models, and reports how much of each port's pixel budget is in
use.

Primary API:
    Diagram - Topology with wiring, edits, and capacity reads
    EntityStore - Keyed entity collections behind a Diagram
    DiagramClient - HTTP access to the diagram service
    ControllerFeed - Apply controller-discovery updates in order

Example:
    from pxgraph import Diagram, Endpoint, DIFF_BOARD_INPUT, port_handle

    diagram = Diagram()
    ctl = diagram.add_controller("F16", ports=[("Port 1", 680)])
    board = diagram.add_differential("DB1")
    diagram.connect(
        Endpoint(ctl.id, port_handle(ctl.ports[0].id)),
        Endpoint(board.id, DIFF_BOARD_INPUT),
    )
    print(diagram.controller_total_utilization(ctl.id).utilization_pct)
"""

from __future__ import annotations

from pxgraph import cli, logging
from pxgraph._version import __version__
from pxgraph.config import SnapConfig, TopologyConfig
from pxgraph.io import ControllerFeed, DiagramClient, ServiceError
from pxgraph.model import (
    DIFF_BOARD_INPUT,
    DIFF_PORT_OUTPUT,
    MODEL_INPUT,
    RECEIVER_INPUT,
    Connection,
    Controller,
    Differential,
    DifferentialPort,
    Endpoint,
    EntityStore,
    HandleAnchor,
    Model,
    Port,
    Receiver,
    SharedPort,
    port_handle,
)
from pxgraph.model.diagram import Diagram
from pxgraph.types.base import EntityKind, WireColor
from pxgraph.types.errors import (
    IncompatibleKinds,
    InvalidCapacity,
    MalformedSnapshot,
    NotFound,
    SourceSaturated,
    TargetOccupied,
    TopologyError,
    UnknownHandle,
    WouldCreateCycle,
)

__all__ = [
    # Version
    "__version__",
    # Primary API
    "Diagram",
    "EntityStore",
    "TopologyConfig",
    "SnapConfig",
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
    "HandleAnchor",
    # Handles
    "DIFF_BOARD_INPUT",
    "DIFF_PORT_OUTPUT",
    "RECEIVER_INPUT",
    "MODEL_INPUT",
    "port_handle",
    # Types
    "EntityKind",
    "WireColor",
    # Errors
    "TopologyError",
    "UnknownHandle",
    "IncompatibleKinds",
    "TargetOccupied",
    "SourceSaturated",
    "WouldCreateCycle",
    "InvalidCapacity",
    "NotFound",
    "MalformedSnapshot",
    # Service access
    "DiagramClient",
    "ControllerFeed",
    "ServiceError",
    # Utilities
    "cli",
    "logging",
]
