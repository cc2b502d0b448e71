"""Auto-snap: finish a dragged wire on the nearest compatible handle.

The canvas reports where each handle is drawn (``HandleAnchor``) and where the
user let go of the free end of a wire. If snapping is enabled and a
compatible handle lies within the configured radius, the wire is connected
to it exactly as if the user had dropped onto it. Otherwise nothing happens
and the free end stays detached.

Compatibility is the connection engine's allow-list only; occupancy and cycle
rules are enforced by the ``connect`` call that follows, so a snap onto an
occupied input raises ``TargetOccupied`` like an explicit drop would.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple, Union

from pxgraph.config import SNAP_CONFIG, SnapConfig
from pxgraph.logging import get_logger
from pxgraph.model.connections import ConnectionEngine, ResolvedHandle, is_compatible
from pxgraph.model.entities import Connection, Endpoint
from pxgraph.types.base import HandleRole, WireColor
from pxgraph.types.errors import UnknownHandle

LOGGER = get_logger(__name__)

Point = Tuple[float, float]


@dataclass(frozen=True)
class HandleAnchor:
    """Canvas position of a handle."""

    endpoint: Endpoint
    x: float
    y: float

    def distance_to(self, point: Point) -> float:
        return math.hypot(self.x - point[0], self.y - point[1])


def _oriented(
    fixed: ResolvedHandle, candidate: ResolvedHandle
) -> Tuple[ResolvedHandle, ResolvedHandle]:
    if fixed.role is HandleRole.OUTPUT:
        return fixed, candidate
    return candidate, fixed


def find_snap_target(
    engine: ConnectionEngine,
    fixed: Endpoint,
    release: Point,
    anchors: Iterable[HandleAnchor],
    radius: float,
) -> Optional[HandleAnchor]:
    """Pick the handle a wire dropped at ``release`` should snap to.

    Args:
        engine: Engine used to resolve handles and check compatibility.
        fixed: The attached end of the wire being dragged.
        release: Point where the free end was released.
        anchors: Candidate handles with their canvas positions.
        radius: Maximum distance from ``release`` to a handle anchor.

    Returns:
        The nearest compatible anchor within ``radius`` (ties go to the lowest
        entity id), or None.
    """
    fixed_handle = engine.resolve_handle(fixed)
    if fixed_handle.role is HandleRole.OUTPUT:
        wanted = HandleRole.INPUT
    else:
        wanted = HandleRole.OUTPUT

    best: Optional[Tuple[float, str, HandleAnchor]] = None
    for anchor in anchors:
        if anchor.endpoint.entity_id == fixed.entity_id:
            continue
        distance = anchor.distance_to(release)
        if distance > radius:
            continue
        try:
            candidate = engine.resolve_handle(anchor.endpoint)
        except UnknownHandle:
            continue
        if candidate.role is not wanted:
            continue
        if not is_compatible(*_oriented(fixed_handle, candidate)):
            continue
        key = (distance, anchor.endpoint.entity_id, anchor)
        if best is None or key[:2] < best[:2]:
            best = key
    return None if best is None else best[2]


def snap_connect(
    engine: ConnectionEngine,
    fixed: Endpoint,
    release: Point,
    anchors: Iterable[HandleAnchor],
    config: SnapConfig = SNAP_CONFIG,
    wire_color: Union[WireColor, str, None] = None,
) -> Optional[Connection]:
    """Connect a dropped wire to the snap target, if there is one.

    Returns:
        The new connection, or None when snapping is disabled or no
        compatible handle is in range.
    """
    if not config.enabled:
        return None
    anchor = find_snap_target(engine, fixed, release, anchors, config.radius)
    if anchor is None:
        LOGGER.debug("No snap target near %s for %s", release, fixed)
        return None

    fixed_role = engine.resolve_handle(fixed).role
    if fixed_role is HandleRole.OUTPUT:
        source, target = fixed, anchor.endpoint
    else:
        source, target = anchor.endpoint, fixed
    LOGGER.debug("Snapping %s -> %s", source, target)
    return engine.connect(source, target, wire_color=wire_color)
