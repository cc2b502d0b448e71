"""Keep ``Port.current_pixels`` equal to the pixels of the models assigned to it."""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from pxgraph.logging import get_logger
from pxgraph.model.store import EntityStore

LOGGER = get_logger(__name__)


def port_demand(store: EntityStore) -> Dict[str, int]:
    """Sum model pixels per assigned port id (unassigned models are ignored)."""
    totals: Dict[str, int] = {}
    for model in store.models.values():
        if model.port_id is not None:
            totals[model.port_id] = totals.get(model.port_id, 0) + model.pixels
    return totals


def recompute_port_demand(
    store: EntityStore, port_ids: Optional[Iterable[Optional[str]]] = None
) -> int:
    """Rewrite ``current_pixels`` on the given ports, or on every port.

    Ids that are None or do not resolve to a port are skipped.

    Returns:
        Number of ports whose value changed.
    """
    totals = port_demand(store)
    if port_ids is None:
        targets = [port for _, port in store.iter_ports()]
    else:
        targets = [p for p in (store.port(pid) for pid in set(port_ids) if pid) if p]

    changed = 0
    for port in targets:
        value = totals.get(port.id, 0)
        if port.current_pixels != value:
            LOGGER.debug(
                "Port '%s' demand %d -> %d", port.id, port.current_pixels, value
            )
            port.current_pixels = value
            changed += 1
    return changed
