from __future__ import annotations

import base64
import uuid


def new_base64_uuid() -> str:
    """Return a 22-character URL-safe Base64 UUID4 with the padding stripped."""
    return base64.urlsafe_b64encode(uuid.uuid4().bytes)[:-2].decode("ascii")


def new_entity_id(prefix: str) -> str:
    """Return a fresh identifier such as ``"rx-<base64uuid>"``.

    The prefix only aids readability in saved diagrams; uniqueness comes from
    the UUID part.
    """
    return f"{prefix}-{new_base64_uuid()}"
