"""Pixel-budget utilization at every level of the port hierarchy.

Everything here is pull-based: each call reads the current store and returns
fresh immutable results. Nothing is cached, so no result can go stale after
an edit.

Shared-slot rule: slot ``i`` of a DifferentialPort carries the sum of
``current_pixels`` of port ``i`` on every receiver wired to it. Receivers with
fewer ports contribute nothing to the missing slots. A slot with
``max == 0`` reports 0% and is never flagged over capacity; callers wanting an
absolute overflow signal compare ``current > max`` themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Union

from pxgraph.model.entities import (
    Controller,
    Differential,
    DifferentialPort,
    Port,
    Receiver,
)
from pxgraph.model.hierarchy import HierarchyResolver
from pxgraph.model.store import EntityStore
from pxgraph.types.errors import NotFound


def utilization_pct(current: int, maximum: int) -> float:
    """Percentage rounded to one decimal; 0.0 when ``maximum`` is not positive."""
    if maximum <= 0:
        return 0.0
    return round(current / maximum * 100, 1)


@dataclass(frozen=True)
class PortUtilization:
    """Demand on a single Controller or Receiver port."""

    port_id: str
    name: str
    current: int
    max: int

    @property
    def over_capacity(self) -> bool:
        return self.current > self.max

    @property
    def utilization_pct(self) -> float:
        return utilization_pct(self.current, self.max)


@dataclass(frozen=True)
class SharedPortUtilization:
    """Aggregated demand on one shared slot of a DifferentialPort."""

    index: int
    shared_port_name: str
    current: int
    max: int

    @property
    def utilization_pct(self) -> float:
        return utilization_pct(self.current, self.max)

    @property
    def over_capacity(self) -> bool:
        return self.max > 0 and self.current > self.max

    def to_dict(self) -> dict:
        return {
            "sharedPortName": self.shared_port_name,
            "current": self.current,
            "max": self.max,
            "utilizationPct": self.utilization_pct,
            "overCapacity": self.over_capacity,
        }


@dataclass(frozen=True)
class UtilizationTotal:
    """Summed current and maximum pixels of a group of ports or slots."""

    current: int
    max: int

    @property
    def utilization_pct(self) -> float:
        return utilization_pct(self.current, self.max)

    @property
    def over_capacity(self) -> bool:
        return self.current > self.max

    def __add__(self, other: UtilizationTotal) -> UtilizationTotal:
        return UtilizationTotal(self.current + other.current, self.max + other.max)


@dataclass(frozen=True)
class OverCapacityEntry:
    """One port or shared slot whose demand exceeds its maximum."""

    entity_id: str
    entity_name: str
    slot_name: str
    current: int
    max: int


class CapacityAggregator:
    """Compute utilization from the store without mutating it."""

    def __init__(
        self, store: EntityStore, resolver: Optional[HierarchyResolver] = None
    ) -> None:
        self.store = store
        self.resolver = resolver or HierarchyResolver(store)

    def port_utilization(self, port: Union[Port, str]) -> PortUtilization:
        """Utilization of one Controller/Receiver port (object or port id)."""
        if isinstance(port, str):
            found = self.store.port(port)
            if found is None:
                raise NotFound(f"No port with id '{port}'")
            port = found
        return PortUtilization(
            port_id=port.id,
            name=port.name,
            current=port.current_pixels,
            max=port.max_pixels,
        )

    def differential_port_utilization(
        self, dp: Union[DifferentialPort, str]
    ) -> List[SharedPortUtilization]:
        """Per shared slot demand of a DifferentialPort, in slot order."""
        dp = self._entity(dp, self.store.differential_ports, "differential port")
        receivers = self.resolver.receiver_entities_of(dp.id)
        out = []
        for index, shared in enumerate(dp.shared_ports):
            current = sum(
                rx.ports[index].current_pixels
                for rx in receivers
                if index < len(rx.ports)
            )
            out.append(
                SharedPortUtilization(
                    index=index,
                    shared_port_name=shared.name,
                    current=current,
                    max=shared.max_pixels,
                )
            )
        return out

    def differential_port_total(
        self, dp: Union[DifferentialPort, str]
    ) -> UtilizationTotal:
        """Sum across the shared slots of one DifferentialPort."""
        total = UtilizationTotal(0, 0)
        for slot in self.differential_port_utilization(dp):
            total = total + UtilizationTotal(slot.current, slot.max)
        return total

    def differential_total_utilization(
        self, differential: Union[Differential, str]
    ) -> UtilizationTotal:
        """Sum across every shared slot of every port on a board."""
        board = self._entity(differential, self.store.differentials, "differential")
        total = UtilizationTotal(0, 0)
        for dp in self.resolver.ports_of(board.id):
            total = total + self.differential_port_total(dp)
        return total

    def controller_total_utilization(
        self, controller: Union[Controller, str]
    ) -> UtilizationTotal:
        """Sum across a Controller's own ports."""
        controller = self._entity(controller, self.store.controllers, "controller")
        return self._ports_total(controller.ports)

    def receiver_total_utilization(
        self, receiver: Union[Receiver, str]
    ) -> UtilizationTotal:
        """Sum across a Receiver's own ports."""
        receiver = self._entity(receiver, self.store.receivers, "receiver")
        return self._ports_total(receiver.ports)

    def over_capacity_report(self) -> List[OverCapacityEntry]:
        """Every over-capacity port and shared slot in the diagram.

        Ports are listed first (controllers then receivers), then shared
        slots in board order.
        """
        entries = []
        for owner, port in self.store.iter_ports():
            if port.current_pixels > port.max_pixels:
                entries.append(
                    OverCapacityEntry(
                        owner.id,
                        owner.name,
                        port.name,
                        port.current_pixels,
                        port.max_pixels,
                    )
                )
        for board in self.store.differentials.values():
            for dp in self.resolver.ports_of(board.id):
                for slot in self.differential_port_utilization(dp):
                    if slot.over_capacity:
                        entries.append(
                            OverCapacityEntry(
                                dp.id,
                                f"{board.name} / {dp.name}",
                                slot.shared_port_name,
                                slot.current,
                                slot.max,
                            )
                        )
        return entries

    @staticmethod
    def _ports_total(ports: List[Port]) -> UtilizationTotal:
        return UtilizationTotal(
            current=sum(p.current_pixels for p in ports),
            max=sum(p.max_pixels for p in ports),
        )

    @staticmethod
    def _entity(value, collection, label):
        if isinstance(value, str):
            entity = collection.get(value)
            if entity is None:
                raise NotFound(f"No {label} with id '{value}'")
            return entity
        return value
