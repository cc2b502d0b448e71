"""Topology entities: controllers, differential boards, receivers, and models.

Each entity is a plain dataclass keyed by a process-stable ``id``. Entities
hold only authored data; derived values such as the receivers wired to a
DifferentialPort are computed by ``HierarchyResolver`` from the connection
list, and ``Port.current_pixels`` is maintained by ``pxgraph.model.demand``.

``to_dict``/``from_dict`` use the camelCase keys of the saved diagram payload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Union

from pxgraph.types.base import EntityKind, WireColor
from pxgraph.utils.ids import new_base64_uuid

# Handle identifiers. Port outputs are per port: "port:<port id>".
PORT_HANDLE_PREFIX = "port:"
DIFF_BOARD_INPUT = "diff-board-input"
DIFF_BOARD_OUTPUT = "diff-board-output"
DIFF_PORT_INPUT = "diff-port-input"
DIFF_PORT_OUTPUT = "diff-port-output"
RECEIVER_INPUT = "receiver-input"
MODEL_INPUT = "model-input"
MODEL_OUTPUT = "model-output"


def port_handle(port_id: str) -> str:
    """Return the output handle name of a Controller or Receiver port."""
    return f"{PORT_HANDLE_PREFIX}{port_id}"


def _check_pixels(value: Any, label: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{label} must be a non-negative integer, got {value!r}")


@dataclass
class Port:
    """A pixel-addressable output of a Controller or Receiver.

    ``current_pixels`` may exceed ``max_pixels``; that is a warning state
    reported by the capacity aggregator, not an error.
    """

    id: str
    name: str
    max_pixels: int = 0
    current_pixels: int = 0

    def __post_init__(self) -> None:
        _check_pixels(self.max_pixels, f"Port '{self.id}' maxPixels")
        _check_pixels(self.current_pixels, f"Port '{self.id}' currentPixels")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "maxPixels": self.max_pixels,
            "currentPixels": self.current_pixels,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Port:
        return cls(
            id=data["id"],
            name=data["name"],
            max_pixels=data.get("maxPixels", 0),
            current_pixels=data.get("currentPixels", 0),
        )


@dataclass
class SharedPort:
    """One budget slot (physical lane) on a DifferentialPort."""

    name: str
    max_pixels: int = 0

    def __post_init__(self) -> None:
        _check_pixels(self.max_pixels, f"Shared port '{self.name}' maxPixels")

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "maxPixels": self.max_pixels}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SharedPort:
        return cls(name=data["name"], max_pixels=data.get("maxPixels", 0))


@dataclass
class Controller:
    """A pixel controller with an ordered list of output ports.

    Attributes:
        id: Unique entity id.
        name: Display name.
        type: Controller model/class as reported by discovery (e.g. "Ethernet").
        ports: Output ports in physical order.
    """

    kind: ClassVar[EntityKind] = EntityKind.CONTROLLER

    id: str
    name: str
    type: str = "Ethernet"
    ports: List[Port] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "ports": [p.to_dict() for p in self.ports],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Controller:
        return cls(
            id=data["id"],
            name=data["name"],
            type=data.get("type", "Ethernet"),
            ports=[Port.from_dict(p) for p in data.get("ports", [])],
        )


@dataclass
class Differential:
    """A differential board fanning one controller output out to its ports.

    The number of ports is fixed per board and checked against
    ``TopologyConfig.differential_port_count`` when the board is stored.
    """

    kind: ClassVar[EntityKind] = EntityKind.DIFFERENTIAL

    id: str
    name: str
    differential_ports: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if len(set(self.differential_ports)) != len(self.differential_ports):
            raise ValueError(
                f"Differential '{self.id}' lists a DifferentialPort more than once"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "differentialPorts": list(self.differential_ports),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Differential:
        return cls(
            id=data["id"],
            name=data["name"],
            differential_ports=list(data.get("differentialPorts", [])),
        )


@dataclass
class DifferentialPort:
    """One channel of a Differential board.

    Receivers wired to this port are not stored here; they are the targets of
    connections leaving the ``diff-port-output`` handle.

    Attributes:
        id: Unique entity id.
        differential_id: Owning board.
        port_number: 1-based position on the board.
        name: User-editable label, "Port N" when left empty.
        shared_ports: Budget slots; slot ``i`` is consumed by port ``i`` of
            every receiver connected to this channel.
    """

    kind: ClassVar[EntityKind] = EntityKind.DIFFERENTIAL_PORT

    id: str
    differential_id: str
    port_number: int
    name: str = ""
    shared_ports: List[SharedPort] = field(default_factory=list)

    def __post_init__(self) -> None:
        if isinstance(self.port_number, bool) or not isinstance(self.port_number, int):
            raise ValueError(f"DifferentialPort '{self.id}' portNumber must be an int")
        if self.port_number < 1:
            raise ValueError(
                f"DifferentialPort '{self.id}' portNumber must be >= 1, "
                f"got {self.port_number}"
            )
        if not self.name:
            self.name = f"Port {self.port_number}"

    def to_dict(
        self, connected_receivers: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        return {
            "id": self.id,
            "differentialId": self.differential_id,
            "portNumber": self.port_number,
            "name": self.name,
            "sharedPorts": [s.to_dict() for s in self.shared_ports],
            "connectedReceivers": list(connected_receivers or []),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> DifferentialPort:
        return cls(
            id=data["id"],
            differential_id=data["differentialId"],
            port_number=data["portNumber"],
            name=data.get("name", ""),
            shared_ports=[SharedPort.from_dict(s) for s in data.get("sharedPorts", [])],
        )


@dataclass
class Receiver:
    """A remote receiver whose port ``i`` draws from shared slot ``i``."""

    kind: ClassVar[EntityKind] = EntityKind.RECEIVER

    id: str
    name: str
    ports: List[Port] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "ports": [p.to_dict() for p in self.ports],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Receiver:
        return cls(
            id=data["id"],
            name=data["name"],
            ports=[Port.from_dict(p) for p in data.get("ports", [])],
        )


@dataclass
class Model:
    """A lighting model consuming a fixed number of pixels from one port.

    ``port_id`` is None while the model is not wired to any port.
    """

    kind: ClassVar[EntityKind] = EntityKind.MODEL

    id: str
    name: str
    pixels: int = 0
    port_id: Optional[str] = None

    def __post_init__(self) -> None:
        _check_pixels(self.pixels, f"Model '{self.id}' pixels")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "pixels": self.pixels,
            "portId": self.port_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Model:
        return cls(
            id=data["id"],
            name=data["name"],
            pixels=data.get("pixels", 0),
            port_id=data.get("portId"),
        )


Entity = Union[Controller, Differential, DifferentialPort, Receiver, Model]
PortOwner = Union[Controller, Receiver]

ENTITY_CLASSES: Dict[EntityKind, Any] = {
    EntityKind.CONTROLLER: Controller,
    EntityKind.DIFFERENTIAL: Differential,
    EntityKind.DIFFERENTIAL_PORT: DifferentialPort,
    EntityKind.RECEIVER: Receiver,
    EntityKind.MODEL: Model,
}


@dataclass(frozen=True)
class Endpoint:
    """One end of a wire: an entity id plus one of its handle names."""

    entity_id: str
    handle: str

    @property
    def port_id(self) -> Optional[str]:
        """Port id encoded in a ``port:<id>`` handle, else None."""
        if self.handle.startswith(PORT_HANDLE_PREFIX):
            return self.handle[len(PORT_HANDLE_PREFIX) :] or None
        return None

    def __str__(self) -> str:
        return f"{self.entity_id}/{self.handle}"


@dataclass
class Connection:
    """A directed wire from ``source`` to ``target``.

    Attributes:
        source: Output endpoint.
        target: Input endpoint.
        wire_color: Display color only.
        id: Unique identifier; generated when left empty.
    """

    source: Endpoint
    target: Endpoint
    wire_color: WireColor = WireColor.BLACK
    id: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            ends = f"{self.source.entity_id}|{self.target.entity_id}"
            self.id = f"{ends}|{new_base64_uuid()}"
        if not isinstance(self.wire_color, WireColor):
            self.wire_color = WireColor.from_string(str(self.wire_color))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source.entity_id,
            "sourceHandle": self.source.handle,
            "target": self.target.entity_id,
            "targetHandle": self.target.handle,
            "wireColor": self.wire_color.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Connection:
        return cls(
            source=Endpoint(data["source"], data["sourceHandle"]),
            target=Endpoint(data["target"], data["targetHandle"]),
            wire_color=WireColor.from_string(data.get("wireColor", "black")),
            id=data["id"],
        )
