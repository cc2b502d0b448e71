"""Small helpers with no dependency on the topology model."""

from pxgraph.utils.ids import new_base64_uuid, new_entity_id

__all__ = ["new_base64_uuid", "new_entity_id"]
