"""Entity construction and small edit transactions.

Edits are plain field writes on the store. None of them refreshes cached
utilization because there is none: the capacity aggregator reads the store
on every call. Model edits do refresh the derived ``current_pixels`` of the
ports involved.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple, Union

from pxgraph.config import TopologyConfig
from pxgraph.logging import get_logger
from pxgraph.model.connections import ConnectionEngine
from pxgraph.model.demand import recompute_port_demand
from pxgraph.model.entities import (
    MODEL_INPUT,
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
from pxgraph.model.store import EntityStore
from pxgraph.types.errors import InvalidCapacity, NotFound
from pxgraph.utils.ids import new_entity_id

LOGGER = get_logger(__name__)

PortSpec = Union[Port, Tuple[str, int]]
SharedPortSpec = Union[SharedPort, Tuple[str, int]]


def _check_capacity(value: object, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidCapacity(f"{label} must be a non-negative integer, got {value!r}")
    return value


class TopologyEditor:
    """Create entities and apply rename/capacity/model edits.

    Args:
        store: Store to edit.
        engine: Connection engine over the same store, used for model wiring.
        config: Construction defaults; defaults to the store's config.
    """

    def __init__(
        self,
        store: EntityStore,
        engine: Optional[ConnectionEngine] = None,
        config: Optional[TopologyConfig] = None,
    ) -> None:
        self.store = store
        self.engine = engine or ConnectionEngine(store)
        self.config = config or store.config

    #
    # Construction
    #
    def _fresh_id(self, given: Optional[str], prefix: str) -> str:
        if given is None:
            return new_entity_id(prefix)
        if self.store.kind_of(given) is not None:
            raise ValueError(f"Id '{given}' is already in use")
        return given

    def _ports(self, owner_prefix: str, specs: Iterable[PortSpec]) -> List[Port]:
        ports = []
        for spec in specs:
            if isinstance(spec, Port):
                ports.append(spec)
            else:
                name, max_pixels = spec
                _check_capacity(max_pixels, f"Port '{name}' maxPixels")
                port_id = new_entity_id(f"{owner_prefix}-port")
                ports.append(Port(port_id, name, max_pixels))
        return ports

    def add_controller(
        self,
        name: str,
        type: str = "Ethernet",
        ports: Iterable[PortSpec] = (),
        controller_id: Optional[str] = None,
    ) -> Controller:
        """Create and store a Controller. Ports may be ``Port`` objects or
        ``(name, max_pixels)`` pairs."""
        controller = Controller(
            id=self._fresh_id(controller_id, "ctl"),
            name=name,
            type=type,
            ports=self._ports("ctl", ports),
        )
        self.store.upsert(controller)
        return controller

    def add_receiver(
        self,
        name: str,
        ports: Iterable[PortSpec] = (),
        receiver_id: Optional[str] = None,
    ) -> Receiver:
        """Create and store a Receiver whose port ``i`` maps to shared slot ``i``."""
        receiver = Receiver(
            id=self._fresh_id(receiver_id, "rx"),
            name=name,
            ports=self._ports("rx", ports),
        )
        self.store.upsert(receiver)
        return receiver

    def default_shared_ports(self) -> List[SharedPort]:
        """Shared slots "A", "B", ... sized from the topology config."""
        return [
            SharedPort(chr(ord("A") + i), self.config.default_shared_port_max_pixels)
            for i in range(self.config.default_shared_port_count)
        ]

    def add_differential(
        self,
        name: str,
        shared_ports: Optional[Sequence[SharedPortSpec]] = None,
        differential_id: Optional[str] = None,
    ) -> Differential:
        """Create a Differential board and its configured number of ports.

        Every port gets its own copy of ``shared_ports`` (or the configured
        default slots) and the name "Port N".
        """
        board_id = self._fresh_id(differential_id, "diff")
        if shared_ports is None:
            template = [(s.name, s.max_pixels) for s in self.default_shared_ports()]
        else:
            template = [
                (s.name, s.max_pixels) if isinstance(s, SharedPort) else tuple(s)
                for s in shared_ports
            ]
        for slot_name, max_pixels in template:
            _check_capacity(max_pixels, f"Shared port '{slot_name}' maxPixels")

        ports = [
            DifferentialPort(
                id=new_entity_id("dp"),
                differential_id=board_id,
                port_number=number,
                shared_ports=[SharedPort(n, m) for n, m in template],
            )
            for number in range(1, self.config.differential_port_count + 1)
        ]
        board = Differential(
            id=board_id, name=name, differential_ports=[dp.id for dp in ports]
        )
        self.store.upsert(board)
        for dp in ports:
            self.store.upsert(dp)
        return board

    def add_model(
        self,
        name: str,
        pixels: int,
        port_id: Optional[str] = None,
        model_id: Optional[str] = None,
    ) -> Model:
        """Create a Model, wiring it to ``port_id`` when one is given.

        Raises:
            InvalidCapacity: If ``pixels`` is negative or not an int.
            NotFound: If ``port_id`` does not name a Controller/Receiver port.
        """
        _check_capacity(pixels, f"Model '{name}' pixels")
        owner = self._port_owner(port_id) if port_id is not None else None
        model = Model(
            id=self._fresh_id(model_id, "model"), name=name, pixels=pixels
        )
        self.store.upsert(model)
        if owner is not None:
            self.engine.connect(
                Endpoint(owner.id, port_handle(port_id)),
                Endpoint(model.id, MODEL_INPUT),
            )
        return model

    #
    # Edits
    #
    def rename(self, entity_id: str, new_name: str) -> None:
        """Rename any entity.

        Raises:
            NotFound: If ``entity_id`` is unknown.
        """
        entity = self.store.find(entity_id)
        if entity is None:
            raise NotFound(f"No entity with id '{entity_id}'")
        entity.name = new_name

    def rename_port(self, entity_id: str, port_index: int, new_name: str) -> None:
        """Rename port ``port_index`` of a Controller/Receiver, or shared slot
        ``port_index`` of a DifferentialPort."""
        self._slot(entity_id, port_index).name = new_name

    def set_port_capacity(self, entity_id: str, port_index: int, new_max: int) -> None:
        """Set ``max_pixels`` of a port or shared slot.

        Raises:
            InvalidCapacity: If ``new_max`` is negative or not an int.
            NotFound: If the entity or index does not exist.
        """
        _check_capacity(new_max, "maxPixels")
        slot = self._slot(entity_id, port_index)
        slot.max_pixels = new_max

    def update_model(
        self,
        model_id: str,
        name: Optional[str] = None,
        pixels: Optional[int] = None,
    ) -> Model:
        """Change a Model's name and/or pixel demand."""
        model = self._model(model_id)
        if pixels is not None:
            _check_capacity(pixels, f"Model '{model_id}' pixels")
        if name is not None:
            model.name = name
        if pixels is not None:
            model.pixels = pixels
            recompute_port_demand(self.store, [model.port_id])
        return model

    def reassign_model(self, model_id: str, port_id: Optional[str]) -> Model:
        """Move a Model to another port (or unassign it with ``None``).

        The new port is checked before the old wire is removed.
        """
        model = self._model(model_id)
        owner = self._port_owner(port_id) if port_id is not None else None
        if model.port_id == port_id:
            return model

        old_port = model.port_id
        for conn in self.engine.resolver.incoming(
            Endpoint(model_id, MODEL_INPUT), include_dangling=True
        ):
            self.engine.disconnect(conn.id, restore=False)
        if model.port_id is not None:
            model.port_id = None
            recompute_port_demand(self.store, [old_port])

        if owner is not None:
            self.engine.connect(
                Endpoint(owner.id, port_handle(port_id)),
                Endpoint(model_id, MODEL_INPUT),
            )
        LOGGER.debug("Model '%s' moved from %s to %s", model_id, old_port, port_id)
        return model

    #
    # Helpers
    #
    def _model(self, model_id: str) -> Model:
        model = self.store.models.get(model_id)
        if model is None:
            raise NotFound(f"No model with id '{model_id}'")
        return model

    def _port_owner(self, port_id: str):
        found = self.store.port_owner(port_id)
        if found is None:
            raise NotFound(f"No port with id '{port_id}'")
        return found[0]

    def _slot(self, entity_id: str, port_index: int) -> Union[Port, SharedPort]:
        entity = self.store.find(entity_id)
        if entity is None:
            raise NotFound(f"No entity with id '{entity_id}'")
        if isinstance(entity, (Controller, Receiver)):
            slots = entity.ports
        elif isinstance(entity, DifferentialPort):
            slots = entity.shared_ports
        else:
            raise NotFound(f"{entity.kind.name.lower()} '{entity_id}' has no ports")
        if isinstance(port_index, bool) or not 0 <= port_index < len(slots):
            raise NotFound(f"'{entity_id}' has no port at index {port_index}")
        return slots[port_index]
