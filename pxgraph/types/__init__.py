"""Enums and error types shared across PixelGraph.

Contains no runtime logic beyond enum parsing.
"""

from pxgraph.types.base import EntityKind, HandleRole, RejectionReason, WireColor
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
    # Enums
    "EntityKind",
    "HandleRole",
    "RejectionReason",
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
]
