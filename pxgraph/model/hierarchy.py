"""Read-only navigation of the controller -> board -> port -> receiver -> model tree.

``HierarchyResolver`` answers parent/child questions from the entity store
and the connection list. It is tolerant: an id that no longer resolves (for
instance a controller dropped by a discovery update while wires still point
at it) is skipped with a debug diagnostic, never raised. Unknown ids yield
``None`` or an empty list.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from pxgraph.logging import get_logger
from pxgraph.model.entities import (
    DIFF_BOARD_INPUT,
    DIFF_PORT_OUTPUT,
    RECEIVER_INPUT,
    Connection,
    Controller,
    Differential,
    DifferentialPort,
    Endpoint,
    Entity,
    Model,
    PortOwner,
    Receiver,
    port_handle,
)
from pxgraph.model.store import EntityStore

LOGGER = get_logger(__name__)


class HierarchyResolver:
    """Stateless lookups over an ``EntityStore``; never mutates it."""

    def __init__(self, store: EntityStore) -> None:
        self.store = store

    #
    # Endpoints and edges
    #
    def endpoint_resolves(self, endpoint: Endpoint) -> bool:
        """True when the endpoint's entity exists (and its port, for port handles)."""
        entity = self.store.find(endpoint.entity_id)
        if entity is None:
            return False
        port_id = endpoint.port_id
        if port_id is None:
            return True
        owner = self.store.port_owner(port_id)
        return owner is not None and owner[0].id == entity.id

    def is_dangling(self, connection: Connection) -> bool:
        return not (
            self.endpoint_resolves(connection.source)
            and self.endpoint_resolves(connection.target)
        )

    def incoming(
        self, endpoint: Endpoint, include_dangling: bool = False
    ) -> List[Connection]:
        """Connections whose target is ``endpoint``, in insertion order."""
        found = []
        for conn in self.store.connections.values():
            if conn.target != endpoint:
                continue
            if not include_dangling and not self.endpoint_resolves(conn.source):
                LOGGER.debug(
                    "Skipping dangling connection %s into %s", conn.id, endpoint
                )
                continue
            found.append(conn)
        return found

    def outgoing(
        self, endpoint: Endpoint, include_dangling: bool = False
    ) -> List[Connection]:
        """Connections whose source is ``endpoint``, in insertion order."""
        found = []
        for conn in self.store.connections.values():
            if conn.source != endpoint:
                continue
            if not include_dangling and not self.endpoint_resolves(conn.target):
                LOGGER.debug(
                    "Skipping dangling connection %s from %s", conn.id, endpoint
                )
                continue
            found.append(conn)
        return found

    def connections_touching(self, entity_id: str) -> List[Connection]:
        """Every stored connection with ``entity_id`` at either end, dangling or not."""
        return [
            conn
            for conn in self.store.connections.values()
            if conn.source.entity_id == entity_id or conn.target.entity_id == entity_id
        ]

    #
    # Ports and models
    #
    def port_owner(self, port_id: Optional[str]) -> Optional[Tuple[PortOwner, int]]:
        if port_id is None:
            return None
        return self.store.port_owner(port_id)

    def models_on_port(self, port_id: str) -> List[Model]:
        """Models assigned to ``port_id``, in store order."""
        return [m for m in self.store.models.values() if m.port_id == port_id]

    def receivers_of(self, differential_port_id: str) -> List[str]:
        """Ids of receivers wired to a DifferentialPort output, in wiring order.

        Computed from the connection list on every call. Receivers that no
        longer exist are left out.
        """
        if differential_port_id not in self.store.differential_ports:
            return []
        out: List[str] = []
        source = Endpoint(differential_port_id, DIFF_PORT_OUTPUT)
        for conn in self.outgoing(source):
            rx_id = conn.target.entity_id
            if rx_id in self.store.receivers and rx_id not in out:
                out.append(rx_id)
        return out

    def receiver_entities_of(self, differential_port_id: str) -> List[Receiver]:
        rx_ids = self.receivers_of(differential_port_id)
        return [self.store.receivers[rx] for rx in rx_ids]

    def ports_of(self, differential_id: str) -> List[DifferentialPort]:
        """Resolvable ports of a board ordered by port number."""
        board = self.store.differentials.get(differential_id)
        if board is None:
            return []
        ports = []
        for dp_id in board.differential_ports:
            dp = self.store.differential_ports.get(dp_id)
            if dp is None:
                LOGGER.debug(
                    "Differential '%s' lists missing port '%s'", differential_id, dp_id
                )
                continue
            ports.append(dp)
        return sorted(ports, key=lambda dp: dp.port_number)

    #
    # Tree navigation
    #
    def parent_of(self, entity_id: str) -> Optional[Entity]:
        """Return the upstream entity of ``entity_id``, or None.

        DifferentialPort -> its Differential; Differential -> the Controller
        wired to its input; Receiver -> the DifferentialPort wired to its
        input; Model -> the Controller or Receiver owning its port.
        """
        entity = self.store.find(entity_id)
        if entity is None:
            return None

        if isinstance(entity, DifferentialPort):
            board = self.store.differentials.get(entity.differential_id)
            if board is None:
                LOGGER.debug(
                    "DifferentialPort '%s' references missing board '%s'",
                    entity_id,
                    entity.differential_id,
                )
            return board

        if isinstance(entity, Differential):
            return self._upstream(Endpoint(entity_id, DIFF_BOARD_INPUT))

        if isinstance(entity, Receiver):
            return self._upstream(Endpoint(entity_id, RECEIVER_INPUT))

        if isinstance(entity, Model):
            owner = self.port_owner(entity.port_id)
            if owner is None and entity.port_id is not None:
                LOGGER.debug(
                    "Model '%s' references missing port '%s'", entity_id, entity.port_id
                )
            return None if owner is None else owner[0]

        return None

    def children_of(self, entity_id: str) -> List[str]:
        """Return downstream entity ids of ``entity_id`` in display order.

        Controller/Receiver: per port, the boards wired to it then its models.
        Differential: its ports by port number. DifferentialPort: its receivers.
        """
        entity = self.store.find(entity_id)
        if entity is None:
            return []

        if isinstance(entity, (Controller, Receiver)):
            out: List[str] = []
            for port in entity.ports:
                for conn in self.outgoing(Endpoint(entity_id, port_handle(port.id))):
                    target = conn.target.entity_id
                    if target in self.store.differentials and target not in out:
                        out.append(target)
                out.extend(m.id for m in self.models_on_port(port.id))
            return out

        if isinstance(entity, Differential):
            return [dp.id for dp in self.ports_of(entity_id)]

        if isinstance(entity, DifferentialPort):
            return self.receivers_of(entity_id)

        return []

    def ancestors(self, entity_id: str) -> List[Entity]:
        """Parents of ``entity_id`` from nearest to root."""
        chain: List[Entity] = []
        seen = {entity_id}
        parent = self.parent_of(entity_id)
        while parent is not None and parent.id not in seen:
            chain.append(parent)
            seen.add(parent.id)
            parent = self.parent_of(parent.id)
        return chain

    def root_controller(self, entity_id: str) -> Optional[Controller]:
        """The Controller at the top of ``entity_id``'s chain, if wired."""
        entity = self.store.find(entity_id)
        if isinstance(entity, Controller):
            return entity
        for ancestor in self.ancestors(entity_id):
            if isinstance(ancestor, Controller):
                return ancestor
        return None

    def _upstream(self, target: Endpoint) -> Optional[Entity]:
        edges = self.incoming(target)
        if not edges:
            return None
        return self.store.find(edges[0].source.entity_id)
