"""Diagram persistence, schema validation, and the controller-discovery feed."""

from pxgraph.io.client import DiagramClient, ServiceError
from pxgraph.io.feed import ControllerFeed, FeedMessage, decode_message, iter_sse_data
from pxgraph.io.loader import (
    build_store,
    dump_snapshot,
    load_diagram_file,
    parse_controllers,
    parse_diagram_text,
    save_diagram_file,
)

__all__ = [
    "DiagramClient",
    "ServiceError",
    "ControllerFeed",
    "FeedMessage",
    "decode_message",
    "iter_sse_data",
    "build_store",
    "dump_snapshot",
    "load_diagram_file",
    "parse_controllers",
    "parse_diagram_text",
    "save_diagram_file",
]
