"""Typed rejections raised by topology operations.

Every operation validates before it mutates, so catching one of these means
the store is exactly as it was before the call.
"""

from __future__ import annotations

from typing import List, Optional

from pxgraph.types.base import RejectionReason


class TopologyError(ValueError):
    """Base class for recoverable topology rejections."""

    reason: RejectionReason

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.reason.value}: {self.message}"


class UnknownHandle(TopologyError):
    reason = RejectionReason.UNKNOWN_HANDLE


class IncompatibleKinds(TopologyError):
    reason = RejectionReason.INCOMPATIBLE_KINDS


class TargetOccupied(TopologyError):
    reason = RejectionReason.TARGET_OCCUPIED


class SourceSaturated(TopologyError):
    """The source handle already feeds as many targets as it may."""

    reason = RejectionReason.SOURCE_SATURATED


class WouldCreateCycle(TopologyError):
    reason = RejectionReason.WOULD_CREATE_CYCLE


class InvalidCapacity(TopologyError):
    reason = RejectionReason.INVALID_CAPACITY


class NotFound(TopologyError):
    reason = RejectionReason.NOT_FOUND


class MalformedSnapshot(TopologyError):
    """A diagram payload failed validation; nothing was loaded.

    Attributes:
        errors: Individual problems found, in discovery order.
    """

    reason = RejectionReason.MALFORMED_SNAPSHOT

    def __init__(self, message: str, errors: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.errors: List[str] = list(errors) if errors else [message]
