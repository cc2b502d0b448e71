"""HTTP access to the diagram persistence service.

Wraps an ``httpx.Client`` bound to ``ClientConfig.base_url``:

- ``GET  /api/diagram``          saved diagram payload (``{}`` when none)
- ``POST /api/diagram``          store a diagram payload
- ``GET  /api/xlights/stream``   server-sent controller-discovery updates

Pass ``transport=httpx.MockTransport(...)`` to run without a server.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, Optional

import httpx

from pxgraph.config import CLIENT_CONFIG, ClientConfig
from pxgraph.io.feed import iter_sse_data
from pxgraph.io.loader import dump_snapshot
from pxgraph.logging import get_logger
from pxgraph.model.store import EntityStore
from pxgraph.types.errors import MalformedSnapshot

LOGGER = get_logger(__name__)


class ServiceError(RuntimeError):
    """The diagram service could not be reached or answered with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DiagramClient:
    """Synchronous client for the diagram service.

    Args:
        config: Service location and timeout.
        transport: Optional httpx transport (tests use ``MockTransport``).
    """

    def __init__(
        self,
        config: ClientConfig = CLIENT_CONFIG,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.config = config
        self._client = httpx.Client(
            base_url=config.base_url,
            timeout=config.timeout_s,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def __enter__(self) -> DiagramClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise ServiceError(f"{method} {path} failed: {exc}") from exc
        if response.is_error:
            raise ServiceError(
                f"{method} {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response

    def fetch_diagram(self) -> Dict[str, Any]:
        """Return the saved diagram payload; ``{}`` means nothing is saved.

        Raises:
            ServiceError: On transport failure or an HTTP error status.
            MalformedSnapshot: If the body is not a JSON object.
        """
        response = self._request("GET", self.config.diagram_path)
        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedSnapshot(f"Diagram response is not JSON: {exc}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise MalformedSnapshot("Diagram response must be a JSON object")
        return data

    def save_diagram(self, store: EntityStore) -> None:
        """Upload the current contents of ``store``."""
        self._request("POST", self.config.diagram_path, json=dump_snapshot(store))
        LOGGER.info("Saved diagram: %s", store.counts())

    def load_into(self, store: EntityStore) -> bool:
        """Fetch the saved diagram and load it into ``store``.

        Returns:
            False when the service has no saved diagram (the store is left
            as it was), True after a successful load.
        """
        payload = self.fetch_diagram()
        if not payload:
            LOGGER.info("No saved diagram; starting empty")
            return False
        store.load_snapshot(payload)
        return True

    def iter_events(self) -> Iterator[str]:
        """Yield raw ``data`` payloads from the controller update stream.

        Blocks between events; ends when the server closes the stream.
        """
        path = self.config.stream_path
        try:
            with self._client.stream(
                "GET",
                path,
                headers={"Accept": "text/event-stream"},
                timeout=httpx.Timeout(self.config.timeout_s, read=None),
            ) as response:
                if response.is_error:
                    raise ServiceError(
                        f"GET {path} returned HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                yield from iter_sse_data(response.iter_lines())
        except httpx.HTTPError as exc:
            raise ServiceError(f"GET {path} failed: {exc}") from exc
