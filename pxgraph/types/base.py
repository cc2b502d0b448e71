"""Enums shared by the topology model, the connection engine, and the wire format."""

from __future__ import annotations

from enum import Enum


class EntityKind(str, Enum):
    """The five entity kinds held by the entity store.

    Values double as the collection keys of the saved diagram payload.
    """

    CONTROLLER = "controllers"
    DIFFERENTIAL = "differentials"
    DIFFERENTIAL_PORT = "differentialPorts"
    RECEIVER = "receivers"
    MODEL = "models"


class HandleRole(str, Enum):
    """Direction of a connection handle."""

    INPUT = "input"
    OUTPUT = "output"


class WireColor(str, Enum):
    """Descriptive wire colors offered by the toolbar. No electrical meaning."""

    BLACK = "black"
    RED = "red"
    BLUE = "blue"
    GREEN = "green"
    YELLOW = "yellow"
    ORANGE = "orange"
    PURPLE = "purple"
    WHITE = "white"

    @classmethod
    def from_string(cls, value: str) -> "WireColor":
        """Parse a case-insensitive color name.

        Raises:
            ValueError: If the name is not a known wire color.
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(c.value for c in cls)
            raise ValueError(
                f"Invalid wire color '{value}'. Valid values are: {valid}"
            ) from None


class RejectionReason(str, Enum):
    """Machine-readable code carried by every ``TopologyError``."""

    UNKNOWN_HANDLE = "UnknownHandle"
    INCOMPATIBLE_KINDS = "IncompatibleKinds"
    TARGET_OCCUPIED = "TargetOccupied"
    SOURCE_SATURATED = "SourceSaturated"
    WOULD_CREATE_CYCLE = "WouldCreateCycle"
    INVALID_CAPACITY = "InvalidCapacity"
    NOT_FOUND = "NotFound"
    MALFORMED_SNAPSHOT = "MalformedSnapshot"
