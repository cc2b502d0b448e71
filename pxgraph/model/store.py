"""Entity store: keyed collections of topology entities and raw connections.

The store holds data only. It enforces identity rules (unique ids across all
kinds, unique port ids across all port owners, the configured board size) but
performs no cascading and computes nothing derived; the connection engine and
the editor are responsible for keeping references consistent before they call
``remove``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pxgraph.config import TOPOLOGY_CONFIG, TopologyConfig
from pxgraph.logging import get_logger
from pxgraph.model.entities import (
    Connection,
    Controller,
    Differential,
    DifferentialPort,
    Entity,
    Model,
    Port,
    PortOwner,
    Receiver,
)
from pxgraph.types.base import EntityKind
from pxgraph.types.errors import NotFound

LOGGER = get_logger(__name__)


@dataclass
class EntityStore:
    """Id-keyed mappings for each entity kind plus the connection list.

    Dicts preserve insertion order, which callers use for stable display.

    Attributes:
        config: Structural rules (board size) checked on upsert.
        controllers: Controller id -> Controller.
        differentials: Differential id -> Differential.
        differential_ports: DifferentialPort id -> DifferentialPort.
        receivers: Receiver id -> Receiver.
        models: Model id -> Model.
        connections: Connection id -> Connection.
    """

    config: TopologyConfig = field(default_factory=lambda: TOPOLOGY_CONFIG)
    controllers: Dict[str, Controller] = field(default_factory=dict)
    differentials: Dict[str, Differential] = field(default_factory=dict)
    differential_ports: Dict[str, DifferentialPort] = field(default_factory=dict)
    receivers: Dict[str, Receiver] = field(default_factory=dict)
    models: Dict[str, Model] = field(default_factory=dict)
    connections: Dict[str, Connection] = field(default_factory=dict)
    _port_owners: Dict[str, Tuple[EntityKind, str]] = field(
        default_factory=dict, init=False, repr=False
    )

    def __post_init__(self) -> None:
        self._rebuild_port_index()

    #
    # Lookup
    #
    def collection(self, kind: EntityKind) -> Dict[str, Any]:
        """Return the live mapping for ``kind``."""
        return {
            EntityKind.CONTROLLER: self.controllers,
            EntityKind.DIFFERENTIAL: self.differentials,
            EntityKind.DIFFERENTIAL_PORT: self.differential_ports,
            EntityKind.RECEIVER: self.receivers,
            EntityKind.MODEL: self.models,
        }[kind]

    def get(self, kind: EntityKind, entity_id: str) -> Optional[Entity]:
        """Return the entity of ``kind`` with ``entity_id``, or None."""
        return self.collection(kind).get(entity_id)

    def kind_of(self, entity_id: str) -> Optional[EntityKind]:
        """Return which collection holds ``entity_id``, or None."""
        for kind in EntityKind:
            if entity_id in self.collection(kind):
                return kind
        return None

    def find(self, entity_id: str) -> Optional[Entity]:
        """Return the entity with ``entity_id`` regardless of kind, or None."""
        kind = self.kind_of(entity_id)
        return None if kind is None else self.collection(kind)[entity_id]

    def __contains__(self, entity_id: object) -> bool:
        return isinstance(entity_id, str) and self.kind_of(entity_id) is not None

    def port_owner(self, port_id: str) -> Optional[Tuple[PortOwner, int]]:
        """Return ``(owner, index)`` for a Controller or Receiver port id."""
        entry = self._port_owners.get(port_id)
        if entry is None:
            return None
        kind, owner_id = entry
        owner = self.collection(kind).get(owner_id)
        if owner is None:
            return None
        for index, port in enumerate(owner.ports):
            if port.id == port_id:
                return owner, index
        return None

    def port(self, port_id: str) -> Optional[Port]:
        """Return the Port with ``port_id``, or None."""
        found = self.port_owner(port_id)
        return None if found is None else found[0].ports[found[1]]

    def iter_ports(self) -> Iterator[Tuple[PortOwner, Port]]:
        """Yield ``(owner, port)`` for every Controller and Receiver port."""
        for owner in list(self.controllers.values()) + list(self.receivers.values()):
            for port in owner.ports:
                yield owner, port

    def counts(self) -> Dict[str, int]:
        """Entity and connection counts keyed by payload collection name."""
        out = {kind.value: len(self.collection(kind)) for kind in EntityKind}
        out["connections"] = len(self.connections)
        return out

    def is_empty(self) -> bool:
        return not any(self.counts().values())

    #
    # Mutation
    #
    def upsert(self, entity: Entity) -> None:
        """Insert ``entity`` or replace the stored entity with the same id.

        Raises:
            ValueError: If the id is held by an entity of another kind, a port
                id collides with another owner's port, or a Differential does
                not have the configured number of ports.
        """
        kind = entity.kind
        existing_kind = self.kind_of(entity.id)
        if existing_kind is not None and existing_kind is not kind:
            raise ValueError(
                f"Id '{entity.id}' already belongs to a {existing_kind.name.lower()}"
            )

        if isinstance(entity, Differential):
            expected = self.config.differential_port_count
            if len(entity.differential_ports) != expected:
                raise ValueError(
                    f"Differential '{entity.id}' must have exactly {expected} ports, "
                    f"got {len(entity.differential_ports)}"
                )

        if isinstance(entity, (Controller, Receiver)):
            seen = set()
            for port in entity.ports:
                if port.id in seen:
                    raise ValueError(
                        f"Port id '{port.id}' repeated on {kind.name.lower()} '{entity.id}'"
                    )
                seen.add(port.id)
                owner = self._port_owners.get(port.id)
                if owner is not None and owner[1] != entity.id:
                    raise ValueError(
                        f"Port id '{port.id}' already belongs to '{owner[1]}'"
                    )
            self._drop_port_index(entity.id)
            for port in entity.ports:
                self._port_owners[port.id] = (kind, entity.id)

        self.collection(kind)[entity.id] = entity

    def remove(self, kind: EntityKind, entity_id: str) -> Entity:
        """Remove and return an entity. Does not touch connections.

        Raises:
            NotFound: If no entity of ``kind`` has ``entity_id``.
        """
        coll = self.collection(kind)
        if entity_id not in coll:
            raise NotFound(f"No {kind.name.lower()} with id '{entity_id}'")
        if kind in (EntityKind.CONTROLLER, EntityKind.RECEIVER):
            self._drop_port_index(entity_id)
        return coll.pop(entity_id)

    def add_connection(self, connection: Connection) -> None:
        """Store a connection as-is. Validation belongs to the connection engine."""
        if connection.id in self.connections:
            raise ValueError(f"Connection '{connection.id}' already exists")
        self.connections[connection.id] = connection

    def insert_connection(self, index: int, connection: Connection) -> None:
        """Store a connection at position ``index`` of the connection order."""
        if connection.id in self.connections:
            raise ValueError(f"Connection '{connection.id}' already exists")
        items = list(self.connections.items())
        items.insert(index, (connection.id, connection))
        self.connections = dict(items)

    def remove_connection(self, connection_id: str) -> Connection:
        """Remove and return a connection.

        Raises:
            NotFound: If the connection id is unknown.
        """
        if connection_id not in self.connections:
            raise NotFound(f"No connection with id '{connection_id}'")
        return self.connections.pop(connection_id)

    def replace_controllers(self, controllers: List[Controller]) -> None:
        """Swap the whole Controller collection in one step.

        Connections and models that referenced removed controllers are left
        untouched and become dangling.

        Raises:
            ValueError: If a controller id or port id collides with another
                entity kind; the store is unchanged in that case.
        """
        staged = EntityStore(
            config=self.config,
            differentials=self.differentials,
            differential_ports=self.differential_ports,
            receivers=self.receivers,
            models=self.models,
        )
        for controller in controllers:
            if controller.id in staged.controllers:
                raise ValueError(f"Controller '{controller.id}' listed twice")
            staged.upsert(controller)
        self.controllers = staged.controllers
        self._rebuild_port_index()

    def replace_contents(self, other: EntityStore) -> None:
        """Adopt every collection of ``other`` at once."""
        self.controllers = other.controllers
        self.differentials = other.differentials
        self.differential_ports = other.differential_ports
        self.receivers = other.receivers
        self.models = other.models
        self.connections = other.connections
        self._rebuild_port_index()

    def clear(self) -> None:
        self.replace_contents(EntityStore(config=self.config))

    def load_snapshot(self, payload: Dict[str, Any]) -> None:
        """Replace the whole store with a saved diagram payload.

        All-or-nothing: on ``MalformedSnapshot`` the current contents are kept.
        An empty payload (``{}``) empties the store.
        """
        from pxgraph.io.loader import build_store

        staged = build_store(payload, config=self.config)
        self.replace_contents(staged)
        LOGGER.info("Loaded diagram snapshot: %s", staged.counts())

    #
    # Internals
    #
    def _drop_port_index(self, owner_id: str) -> None:
        for port_id in [p for p, (_, o) in self._port_owners.items() if o == owner_id]:
            del self._port_owners[port_id]

    def _rebuild_port_index(self) -> None:
        self._port_owners = {}
        for kind, coll in (
            (EntityKind.CONTROLLER, self.controllers),
            (EntityKind.RECEIVER, self.receivers),
        ):
            for owner in coll.values():
                for port in owner.ports:
                    self._port_owners[port.id] = (kind, owner.id)
