"""Controller-discovery feed: decode pushed updates and apply them in order.

The discovery service pushes server-sent events whose ``data`` is a JSON
object ``{"type": ..., "controllers": [...]}``. Only ``"update"`` messages
carry a controller snapshot. Applying one replaces the store's Controller
collection and nothing else: boards, receivers and models keep their user
edits, and wires into controllers that vanished are left dangling for the
resolver to skip.

Messages are queued and applied one at a time in arrival order. Malformed
messages are logged and dropped; they never stop the feed.
"""

from __future__ import annotations

import json
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Iterable, Iterator, List, Optional

from pxgraph.io.loader import parse_controllers
from pxgraph.logging import get_logger
from pxgraph.model.demand import recompute_port_demand
from pxgraph.model.store import EntityStore

LOGGER = get_logger(__name__)

UPDATE_TYPE = "update"


def iter_sse_data(lines: Iterable[str]) -> Iterator[str]:
    """Yield the ``data`` payload of each server-sent event.

    Multi-line data fields are joined with newlines. Comment lines and the
    ``event``/``id``/``retry`` fields are ignored. An event cut off by the end
    of the stream is discarded.
    """
    buffer: List[str] = []
    for line in lines:
        line = line.rstrip("\r\n")
        if not line:
            if buffer:
                yield "\n".join(buffer)
                buffer = []
            continue
        if line.startswith(":"):
            continue
        field_name, _, value = line.partition(":")
        if field_name == "data":
            buffer.append(value[1:] if value.startswith(" ") else value)


@dataclass(frozen=True)
class FeedMessage:
    """A decoded feed message."""

    type: str
    controllers: Optional[List[Any]] = None


def decode_message(raw: str) -> Optional[FeedMessage]:
    """Decode one ``data`` payload; None if it is not a JSON object with a type."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict) or not isinstance(data.get("type"), str):
        return None
    controllers = data.get("controllers")
    return FeedMessage(type=data["type"], controllers=controllers)


class ControllerFeed:
    """FIFO application of discovery updates to an ``EntityStore``.

    Attributes:
        applied: Number of updates applied so far.
        ignored: Number of messages dropped (wrong type or malformed).
    """

    def __init__(self, store: EntityStore) -> None:
        self.store = store
        self.applied = 0
        self.ignored = 0
        self._queue: Deque[str] = deque()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return len(self._queue)

    def submit(self, raw: str) -> None:
        """Queue a raw message. Ignored once the feed is closed."""
        if self._closed:
            LOGGER.debug("Feed closed; dropping message")
            return
        self._queue.append(raw)

    def drain(self) -> int:
        """Apply queued messages in arrival order; return how many were applied."""
        count = 0
        while self._queue and not self._closed:
            if self.apply(self._queue.popleft()):
                count += 1
        return count

    def apply(self, raw: str) -> bool:
        """Apply a single message immediately.

        Returns:
            True if the message was an update and changed the store.
        """
        message = decode_message(raw)
        if message is None:
            LOGGER.warning("Ignoring malformed feed message")
            self.ignored += 1
            return False
        if message.type != UPDATE_TYPE:
            LOGGER.debug("Ignoring feed message of type '%s'", message.type)
            self.ignored += 1
            return False

        try:
            controllers = parse_controllers(message.controllers)
            self.store.replace_controllers(controllers)
        except ValueError as exc:
            LOGGER.warning("Ignoring invalid controller update: %s", exc)
            self.ignored += 1
            return False

        recompute_port_demand(self.store)
        self.applied += 1
        LOGGER.info("Applied controller update (%d controllers)", len(controllers))
        return True

    def consume(self, events: Iterable[str]) -> int:
        """Queue and apply each event as it arrives until the feed is closed."""
        count = 0
        for raw in events:
            if self._closed:
                break
            self.submit(raw)
            count += self.drain()
        return count

    def close(self) -> None:
        """Stop applying updates and discard anything still queued."""
        self._closed = True
        self._queue.clear()
