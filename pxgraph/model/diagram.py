"""The ``Diagram`` facade: one object exposing the read and write API of the model.

A ``Diagram`` owns an ``EntityStore`` and wires the resolver, capacity
aggregator, connection engine and editor to it. The UI layer talks only to
this class; every method runs synchronously and completes its mutation in a
single call, so no reader can observe a half-applied edit.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Union

from pxgraph.config import SNAP_CONFIG, TOPOLOGY_CONFIG, SnapConfig, TopologyConfig
from pxgraph.io.loader import dump_snapshot
from pxgraph.logging import get_logger
from pxgraph.model.capacity import (
    CapacityAggregator,
    OverCapacityEntry,
    PortUtilization,
    SharedPortUtilization,
    UtilizationTotal,
)
from pxgraph.model.connections import ConnectionEngine
from pxgraph.model.edits import TopologyEditor
from pxgraph.model.entities import (
    Connection,
    Controller,
    Differential,
    DifferentialPort,
    Endpoint,
    Entity,
    Model,
    Port,
    Receiver,
)
from pxgraph.model.hierarchy import HierarchyResolver
from pxgraph.model.snap import HandleAnchor, Point, snap_connect
from pxgraph.model.store import EntityStore
from pxgraph.types.base import WireColor

LOGGER = get_logger(__name__)


class Diagram:
    """A lighting-control topology with derived capacity views.

    Example:
        diagram = Diagram()
        ctl = diagram.add_controller("F16", ports=[("P1", 680)])
        board = diagram.add_differential("DB1")
        diagram.connect(
            Endpoint(ctl.id, port_handle(ctl.ports[0].id)),
            Endpoint(board.id, DIFF_BOARD_INPUT),
        )
        diagram.differential_total_utilization(board.id)

    Args:
        config: Structural rules and construction defaults.
        snap: Auto-snap settings used by ``drop_wire``.
        store: Existing store to wrap; a new empty one by default.
    """

    def __init__(
        self,
        config: TopologyConfig = TOPOLOGY_CONFIG,
        snap: SnapConfig = SNAP_CONFIG,
        store: Optional[EntityStore] = None,
    ) -> None:
        self.config = config
        self.snap = snap
        self.store = store if store is not None else EntityStore(config=config)
        self.resolver = HierarchyResolver(self.store)
        self.capacity = CapacityAggregator(self.store, self.resolver)
        self.engine = ConnectionEngine(self.store, self.resolver, config)
        self.editor = TopologyEditor(self.store, self.engine, config)

    @classmethod
    def from_snapshot(
        cls, payload: Dict[str, Any], config: TopologyConfig = TOPOLOGY_CONFIG
    ) -> Diagram:
        diagram = cls(config=config)
        diagram.load_snapshot(payload)
        return diagram

    #
    # Persistence
    #
    def load_snapshot(self, payload: Dict[str, Any]) -> None:
        """Replace everything with a saved payload (all-or-nothing)."""
        self.store.load_snapshot(payload)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the saved payload format."""
        return dump_snapshot(self.store)

    #
    # Reads
    #
    def get(self, entity_id: str) -> Optional[Entity]:
        return self.store.find(entity_id)

    @property
    def controllers(self) -> List[Controller]:
        return list(self.store.controllers.values())

    @property
    def differentials(self) -> List[Differential]:
        return list(self.store.differentials.values())

    @property
    def receivers(self) -> List[Receiver]:
        return list(self.store.receivers.values())

    @property
    def models(self) -> List[Model]:
        return list(self.store.models.values())

    @property
    def connections(self) -> List[Connection]:
        return list(self.store.connections.values())

    def parent_of(self, entity_id: str) -> Optional[Entity]:
        return self.resolver.parent_of(entity_id)

    def children_of(self, entity_id: str) -> List[str]:
        return self.resolver.children_of(entity_id)

    def receivers_of(self, differential_port_id: str) -> List[str]:
        return self.resolver.receivers_of(differential_port_id)

    def port_utilization(self, port: Union[Port, str]) -> PortUtilization:
        return self.capacity.port_utilization(port)

    def differential_port_utilization(
        self, dp: Union[DifferentialPort, str]
    ) -> List[SharedPortUtilization]:
        return self.capacity.differential_port_utilization(dp)

    def differential_total_utilization(
        self, differential: Union[Differential, str]
    ) -> UtilizationTotal:
        return self.capacity.differential_total_utilization(differential)

    def controller_total_utilization(
        self, controller: Union[Controller, str]
    ) -> UtilizationTotal:
        return self.capacity.controller_total_utilization(controller)

    def receiver_total_utilization(
        self, receiver: Union[Receiver, str]
    ) -> UtilizationTotal:
        return self.capacity.receiver_total_utilization(receiver)

    def over_capacity_report(self) -> List[OverCapacityEntry]:
        return self.capacity.over_capacity_report()

    #
    # Wiring
    #
    def connect(
        self,
        source: Endpoint,
        target: Endpoint,
        wire_color: Union[WireColor, str, None] = None,
    ) -> Connection:
        return self.engine.connect(source, target, wire_color=wire_color)

    def disconnect(self, connection_id: str) -> Connection:
        return self.engine.disconnect(connection_id)

    def drop_wire(
        self,
        fixed: Endpoint,
        release: Point,
        anchors: Iterable[HandleAnchor],
        wire_color: Union[WireColor, str, None] = None,
    ) -> Optional[Connection]:
        """Finish a dragged wire by auto-snap; None leaves it detached."""
        return snap_connect(
            self.engine,
            fixed,
            release,
            anchors,
            config=self.snap,
            wire_color=wire_color,
        )

    #
    # Construction and edits
    #
    def add_controller(self, name: str, **kwargs: Any) -> Controller:
        return self.editor.add_controller(name, **kwargs)

    def add_differential(self, name: str, **kwargs: Any) -> Differential:
        return self.editor.add_differential(name, **kwargs)

    def add_receiver(self, name: str, **kwargs: Any) -> Receiver:
        return self.editor.add_receiver(name, **kwargs)

    def add_model(self, name: str, pixels: int, **kwargs: Any) -> Model:
        return self.editor.add_model(name, pixels, **kwargs)

    def update_model(self, model_id: str, **kwargs: Any) -> Model:
        return self.editor.update_model(model_id, **kwargs)

    def reassign_model(self, model_id: str, port_id: Optional[str]) -> Model:
        return self.editor.reassign_model(model_id, port_id)

    def rename(self, entity_id: str, new_name: str) -> None:
        self.editor.rename(entity_id, new_name)

    def rename_port(self, entity_id: str, port_index: int, new_name: str) -> None:
        self.editor.rename_port(entity_id, port_index, new_name)

    def set_port_capacity(self, entity_id: str, port_index: int, new_max: int) -> None:
        self.editor.set_port_capacity(entity_id, port_index, new_max)

    def delete(self, entity_id: str) -> Entity:
        """Delete an entity with the cascade its kind requires."""
        removed = self.engine.delete(entity_id)
        LOGGER.debug("Deleted %s '%s'", removed.kind.name.lower(), entity_id)
        return removed

    def delete_controller(self, controller_id: str) -> Controller:
        return self.engine.delete_controller(controller_id)

    def delete_differential(self, differential_id: str) -> Differential:
        return self.engine.delete_differential(differential_id)

    def delete_receiver(self, receiver_id: str) -> Receiver:
        return self.engine.delete_receiver(receiver_id)

    def delete_model(self, model_id: str) -> Model:
        return self.engine.delete_model(model_id)
