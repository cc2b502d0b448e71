"""Connection engine: validate, apply, and remove wires between handles.

A candidate wire goes ``proposed -> validated -> applied`` or is rejected
with a typed ``TopologyError``. Checks run in a fixed order and all of them
complete before anything is written:

1. both handles resolve (``UnknownHandle``), output to input;
2. the (source, target) pairing is on the allow-list (``IncompatibleKinds``);
3. the target input is free (``TargetOccupied``) and the source output has
   room (``SourceSaturated``);
4. the new edge does not close a cycle (``WouldCreateCycle``).

Wiring a port to a Model assigns the model to that port; removing the wire
unassigns it. Both refresh the port's derived ``current_pixels``.

The engine also owns cascading deletes, since removing an entity first has to
detach every wire touching it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple, Union

from pxgraph.config import TopologyConfig
from pxgraph.graph.convert import to_networkx, would_create_cycle
from pxgraph.logging import get_logger
from pxgraph.model.demand import recompute_port_demand
from pxgraph.model.entities import (
    DIFF_BOARD_INPUT,
    DIFF_BOARD_OUTPUT,
    DIFF_PORT_INPUT,
    DIFF_PORT_OUTPUT,
    MODEL_INPUT,
    MODEL_OUTPUT,
    PORT_HANDLE_PREFIX,
    RECEIVER_INPUT,
    Connection,
    Controller,
    DifferentialPort,
    Endpoint,
    Entity,
    Model,
    Receiver,
)
from pxgraph.model.hierarchy import HierarchyResolver
from pxgraph.model.store import EntityStore
from pxgraph.types.base import EntityKind, HandleRole, WireColor
from pxgraph.types.errors import (
    IncompatibleKinds,
    NotFound,
    SourceSaturated,
    TargetOccupied,
    TopologyError,
    UnknownHandle,
    WouldCreateCycle,
)

LOGGER = get_logger(__name__)

# Connections set aside by a new wire, with their positions, plus the stale
# port id of the Model it fed.
Displaced = Tuple[List[Tuple[int, Connection]], Optional[str]]

# Handle type used for every "port:<id>" handle in the tables below.
PORT_HANDLE = "port"

HANDLE_ROLES: Dict[EntityKind, Dict[str, HandleRole]] = {
    EntityKind.CONTROLLER: {PORT_HANDLE: HandleRole.OUTPUT},
    EntityKind.DIFFERENTIAL: {
        DIFF_BOARD_INPUT: HandleRole.INPUT,
        DIFF_BOARD_OUTPUT: HandleRole.OUTPUT,
    },
    EntityKind.DIFFERENTIAL_PORT: {
        DIFF_PORT_INPUT: HandleRole.INPUT,
        DIFF_PORT_OUTPUT: HandleRole.OUTPUT,
    },
    EntityKind.RECEIVER: {
        RECEIVER_INPUT: HandleRole.INPUT,
        PORT_HANDLE: HandleRole.OUTPUT,
    },
    EntityKind.MODEL: {
        MODEL_INPUT: HandleRole.INPUT,
        MODEL_OUTPUT: HandleRole.OUTPUT,
    },
}

ALLOWED_PAIRS: FrozenSet[Tuple[EntityKind, str, EntityKind, str]] = frozenset(
    {
        (EntityKind.CONTROLLER, PORT_HANDLE, EntityKind.DIFFERENTIAL, DIFF_BOARD_INPUT),
        (
            EntityKind.DIFFERENTIAL_PORT,
            DIFF_PORT_OUTPUT,
            EntityKind.RECEIVER,
            RECEIVER_INPUT,
        ),
        (EntityKind.CONTROLLER, PORT_HANDLE, EntityKind.MODEL, MODEL_INPUT),
        (EntityKind.RECEIVER, PORT_HANDLE, EntityKind.MODEL, MODEL_INPUT),
    }
)


@dataclass(frozen=True)
class ResolvedHandle:
    """An endpoint bound to its entity.

    Attributes:
        endpoint: The endpoint as given.
        kind: Kind of the owning entity.
        handle_type: Handle name, or ``"port"`` for per-port handles.
        role: Input or output.
        port_id: Port id for per-port handles, else None.
    """

    endpoint: Endpoint
    kind: EntityKind
    handle_type: str
    role: HandleRole
    port_id: Optional[str] = None

    @property
    def entity_id(self) -> str:
        return self.endpoint.entity_id


def is_compatible(source: ResolvedHandle, target: ResolvedHandle) -> bool:
    """Allow-list check on kinds and handles only (no occupancy or cycles)."""
    return (
        source.kind,
        source.handle_type,
        target.kind,
        target.handle_type,
    ) in ALLOWED_PAIRS


class ConnectionEngine:
    """Apply and remove connections in an ``EntityStore``.

    Args:
        store: Store to mutate.
        resolver: Resolver over the same store; created when omitted.
        config: Structural rules; defaults to the store's config.
    """

    def __init__(
        self,
        store: EntityStore,
        resolver: Optional[HierarchyResolver] = None,
        config: Optional[TopologyConfig] = None,
    ) -> None:
        self.store = store
        self.resolver = resolver or HierarchyResolver(store)
        self.config = config or store.config
        # Dangling wires and stale model assignments a connection displaced,
        # keyed by that connection id, so disconnecting it can put them back.
        self._displaced: Dict[str, Displaced] = {}

    #
    # Validation
    #
    def resolve_handle(self, endpoint: Endpoint) -> ResolvedHandle:
        """Bind ``endpoint`` to its entity and role.

        Raises:
            UnknownHandle: If the entity, the handle name, or the port is unknown.
        """
        kind = self.store.kind_of(endpoint.entity_id)
        if kind is None:
            raise UnknownHandle(f"No entity with id '{endpoint.entity_id}'")

        port_id = endpoint.port_id
        if endpoint.handle.startswith(PORT_HANDLE_PREFIX):
            handle_type = PORT_HANDLE
            owner = self.store.port_owner(port_id) if port_id else None
            if owner is None or owner[0].id != endpoint.entity_id:
                raise UnknownHandle(f"No port handle '{endpoint}'")
        else:
            handle_type = endpoint.handle

        role = HANDLE_ROLES[kind].get(handle_type)
        if role is None:
            raise UnknownHandle(
                f"{kind.name.lower()} '{endpoint.entity_id}' has no handle "
                f"'{endpoint.handle}'"
            )
        return ResolvedHandle(endpoint, kind, handle_type, role, port_id)

    def validate(
        self, source: Endpoint, target: Endpoint
    ) -> Tuple[ResolvedHandle, ResolvedHandle]:
        """Run every check for ``source -> target`` without mutating anything.

        Returns:
            The resolved source and target handles.

        Raises:
            UnknownHandle, IncompatibleKinds, TargetOccupied, SourceSaturated,
            WouldCreateCycle: First failing check, in that order.
        """
        src = self.resolve_handle(source)
        dst = self.resolve_handle(target)

        if src.role is not HandleRole.OUTPUT or dst.role is not HandleRole.INPUT:
            raise IncompatibleKinds(
                f"Wires run from an output to an input, got {source} -> {target}"
            )
        if not is_compatible(src, dst):
            raise IncompatibleKinds(
                f"Cannot wire {src.kind.name.lower()} '{src.handle_type}' to "
                f"{dst.kind.name.lower()} '{dst.handle_type}'"
            )

        self._check_target_free(dst)
        self._check_source_room(src, dst)

        if would_create_cycle(
            to_networkx(self.store), src.entity_id, dst.entity_id
        ):
            raise WouldCreateCycle(
                f"'{dst.entity_id}' is already upstream of '{src.entity_id}'"
            )
        return src, dst

    def check(self, source: Endpoint, target: Endpoint) -> Optional[TopologyError]:
        """Return the rejection ``connect`` would raise, or None if it would succeed."""
        try:
            self.validate(source, target)
        except TopologyError as exc:
            return exc
        return None

    def _check_target_free(self, dst: ResolvedHandle) -> None:
        existing = self.resolver.incoming(dst.endpoint)
        if existing:
            raise TargetOccupied(
                f"{dst.endpoint} is already fed by connection '{existing[0].id}'"
            )
        if dst.kind is EntityKind.MODEL:
            model = self.store.models[dst.entity_id]
            if model.port_id is not None and self.store.port_owner(model.port_id):
                raise TargetOccupied(
                    f"Model '{model.id}' is already assigned to port '{model.port_id}'"
                )

    def _check_source_room(self, src: ResolvedHandle, dst: ResolvedHandle) -> None:
        if src.kind is EntityKind.CONTROLLER and dst.kind is EntityKind.DIFFERENTIAL:
            for conn in self.resolver.outgoing(src.endpoint):
                if conn.target.entity_id in self.store.differentials:
                    raise SourceSaturated(
                        f"{src.endpoint} already feeds differential "
                        f"'{conn.target.entity_id}'"
                    )
        if src.kind is EntityKind.DIFFERENTIAL_PORT and self.config.enforce_lane_limit:
            dp = self.store.differential_ports[src.entity_id]
            wired = len(self.resolver.receivers_of(dp.id))
            if wired >= len(dp.shared_ports):
                raise SourceSaturated(
                    f"DifferentialPort '{dp.id}' already feeds {wired} receiver(s) "
                    f"on {len(dp.shared_ports)} shared lane(s)"
                )

    #
    # Mutation
    #
    def connect(
        self,
        source: Endpoint,
        target: Endpoint,
        wire_color: Union[WireColor, str, None] = None,
    ) -> Connection:
        """Validate and store a new wire from ``source`` to ``target``.

        Dangling wires left on the target input (from entities that have since
        disappeared) are set aside in the same step, along with a Model's
        assignment to a vanished port. ``disconnect`` restores both.

        Returns:
            The stored connection.
        """
        src, dst = self.validate(source, target)
        if wire_color is None:
            wire_color = self.config.default_wire_color
        if not isinstance(wire_color, WireColor):
            wire_color = WireColor.from_string(wire_color)
        connection = Connection(source=source, target=target, wire_color=wire_color)

        order = list(self.store.connections)
        stale = [
            (order.index(conn.id), conn)
            for conn in self.resolver.incoming(target, include_dangling=True)
        ]
        for _, conn in stale:
            LOGGER.debug(
                "Setting aside dangling connection %s into %s", conn.id, target
            )
            self.store.remove_connection(conn.id)
        stale_port = None
        if dst.kind is EntityKind.MODEL:
            stale_port = self.store.models[dst.entity_id].port_id
        if stale or stale_port is not None:
            self._displaced[connection.id] = (stale, stale_port)

        self.store.add_connection(connection)
        if dst.kind is EntityKind.MODEL:
            self.store.models[dst.entity_id].port_id = src.port_id
            recompute_port_demand(self.store, [src.port_id])

        LOGGER.debug("Connected %s -> %s (%s)", source, target, connection.id)
        return connection

    def disconnect(self, connection_id: str, restore: bool = True) -> Connection:
        """Remove a wire and undo its model assignment, if any.

        Anything the wire displaced when it was connected comes back, unless
        ``restore`` is False.

        Raises:
            NotFound: If ``connection_id`` is unknown.
        """
        if connection_id not in self.store.connections:
            raise NotFound(f"No connection with id '{connection_id}'")
        connection = self.store.remove_connection(connection_id)
        self._unassign_model(connection)
        displaced = self._displaced.pop(connection_id, None)
        if restore and displaced is not None:
            self._restore_displaced(connection, *displaced)
        LOGGER.debug(
            "Disconnected %s -> %s (%s)",
            connection.source,
            connection.target,
            connection_id,
        )
        return connection

    def detach(self, entity_id: str) -> List[Connection]:
        """Remove every wire touching ``entity_id``, dangling ones included."""
        removed = []
        for conn in self.resolver.connections_touching(entity_id):
            removed.append(self.disconnect(conn.id, restore=False))
        return removed

    def _restore_displaced(
        self,
        connection: Connection,
        stale: List[Tuple[int, Connection]],
        stale_port: Optional[str],
    ) -> None:
        for index, conn in sorted(stale, key=lambda item: item[0]):
            if conn.id not in self.store.connections:
                self.store.insert_connection(index, conn)
        model = self.store.models.get(connection.target.entity_id)
        if stale_port is not None and model is not None and model.port_id is None:
            model.port_id = stale_port
            recompute_port_demand(self.store, [stale_port])

    def _unassign_model(self, connection: Connection) -> None:
        model = self.store.models.get(connection.target.entity_id)
        if model is None or connection.target.handle != MODEL_INPUT:
            return
        port_id = connection.source.port_id
        if port_id is not None and model.port_id == port_id:
            model.port_id = None
            recompute_port_demand(self.store, [port_id])

    #
    # Cascading deletes
    #
    def delete(self, entity_id: str) -> Entity:
        """Delete any entity except a DifferentialPort, cascading as needed.

        Raises:
            NotFound: If ``entity_id`` is unknown.
            ValueError: For a DifferentialPort; boards keep a fixed port count,
                so ports go away with their Differential.
        """
        kind = self.store.kind_of(entity_id)
        if kind is None:
            raise NotFound(f"No entity with id '{entity_id}'")
        if kind is EntityKind.CONTROLLER:
            return self.delete_controller(entity_id)
        if kind is EntityKind.DIFFERENTIAL:
            return self.delete_differential(entity_id)
        if kind is EntityKind.RECEIVER:
            return self.delete_receiver(entity_id)
        if kind is EntityKind.MODEL:
            return self.delete_model(entity_id)
        raise ValueError(
            f"DifferentialPort '{entity_id}' can only be removed with its Differential"
        )

    def delete_controller(self, controller_id: str) -> Controller:
        """Delete a Controller; boards it fed lose their upstream wire and its
        models become unassigned."""
        controller = self._require(EntityKind.CONTROLLER, controller_id)
        self._release_ports(controller)
        return self.store.remove(EntityKind.CONTROLLER, controller_id)

    def delete_differential(self, differential_id: str):
        """Delete a Differential together with its DifferentialPorts."""
        board = self._require(EntityKind.DIFFERENTIAL, differential_id)
        for dp_id in board.differential_ports:
            if dp_id in self.store.differential_ports:
                self._delete_differential_port(dp_id)
        self.detach(differential_id)
        return self.store.remove(EntityKind.DIFFERENTIAL, differential_id)

    def delete_receiver(self, receiver_id: str) -> Receiver:
        """Delete a Receiver; it leaves its DifferentialPort and its models
        become unassigned."""
        receiver = self._require(EntityKind.RECEIVER, receiver_id)
        self._release_ports(receiver)
        return self.store.remove(EntityKind.RECEIVER, receiver_id)

    def delete_model(self, model_id: str) -> Model:
        model = self._require(EntityKind.MODEL, model_id)
        port_id = model.port_id
        self.detach(model_id)
        removed = self.store.remove(EntityKind.MODEL, model_id)
        recompute_port_demand(self.store, [port_id])
        return removed

    def _delete_differential_port(self, dp_id: str) -> DifferentialPort:
        self.detach(dp_id)
        return self.store.remove(EntityKind.DIFFERENTIAL_PORT, dp_id)

    def _release_ports(self, owner: Union[Controller, Receiver]) -> None:
        self.detach(owner.id)
        port_ids = {p.id for p in owner.ports}
        for model in self.store.models.values():
            if model.port_id in port_ids:
                model.port_id = None

    def _require(self, kind: EntityKind, entity_id: str):
        entity = self.store.get(kind, entity_id)
        if entity is None:
            raise NotFound(f"No {kind.name.lower()} with id '{entity_id}'")
        return entity
