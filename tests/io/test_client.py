"""Tests for DiagramClient against an in-process httpx transport."""

import json

import httpx
import pytest

from pxgraph.config import ClientConfig
from pxgraph.io.client import DiagramClient, ServiceError
from pxgraph.model.store import EntityStore
from pxgraph.types.errors import MalformedSnapshot

CONFIG = ClientConfig(base_url="http://diagram.test")


def _client(handler) -> DiagramClient:
    return DiagramClient(CONFIG, transport=httpx.MockTransport(handler))


class TestFetch:
    def test_fetch_payload(self, sample_payload):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            assert request.url.path == "/api/diagram"
            return httpx.Response(200, json=sample_payload)

        with _client(handler) as client:
            assert client.fetch_diagram() == sample_payload

    def test_empty_object_means_nothing_saved(self):
        store = EntityStore()
        with _client(lambda request: httpx.Response(200, json={})) as client:
            assert client.fetch_diagram() == {}
            assert client.load_into(store) is False
        assert store.is_empty()

    def test_null_body_is_empty(self):
        with _client(lambda request: httpx.Response(200, content=b"null")) as client:
            assert client.fetch_diagram() == {}

    def test_non_object_body(self):
        with _client(lambda request: httpx.Response(200, json=[1, 2])) as client:
            with pytest.raises(MalformedSnapshot):
                client.fetch_diagram()

    def test_non_json_body(self):
        with _client(lambda request: httpx.Response(200, text="<html>")) as client:
            with pytest.raises(MalformedSnapshot):
                client.fetch_diagram()

    def test_http_error_status(self):
        with _client(lambda request: httpx.Response(503)) as client:
            with pytest.raises(ServiceError) as exc_info:
                client.fetch_diagram()
        assert exc_info.value.status_code == 503

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with _client(handler) as client:
            with pytest.raises(ServiceError, match="failed"):
                client.fetch_diagram()

    def test_load_into(self, sample_payload):
        store = EntityStore()
        with _client(lambda request: httpx.Response(200, json=sample_payload)) as client:
            assert client.load_into(store) is True
        assert store.counts()["receivers"] == 1

    def test_load_into_malformed_keeps_store(self, sample):
        store = sample.diagram.store
        before = store.counts()
        bad = {"controllers": [{"id": "c1"}]}
        with _client(lambda request: httpx.Response(200, json=bad)) as client:
            with pytest.raises(MalformedSnapshot):
                client.load_into(store)
        assert store.counts() == before


def test_save_posts_snapshot(sample, sample_payload):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"ok": True})

    with _client(handler) as client:
        client.save_diagram(sample.diagram.store)
    assert seen["method"] == "POST"
    assert seen["body"] == sample_payload


def test_iter_events_reads_stream():
    body = (
        ": keep-alive\n\n"
        'data: {"type": "hello"}\n\n'
        "event: update\n"
        'data: {"type": "update",\n'
        'data:  "controllers": []}\n\n'
    )

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/xlights/stream"
        assert request.headers["accept"] == "text/event-stream"
        return httpx.Response(200, text=body)

    with _client(handler) as client:
        events = list(client.iter_events())
    assert events == ['{"type": "hello"}', '{"type": "update",\n "controllers": []}']


def test_iter_events_error_status():
    with _client(lambda request: httpx.Response(404)) as client:
        with pytest.raises(ServiceError):
            list(client.iter_events())
