"""Tests for entity dataclasses and their payload form."""

import pytest

from pxgraph.model.entities import (
    Connection,
    Controller,
    Differential,
    DifferentialPort,
    Endpoint,
    Model,
    Port,
    SharedPort,
    port_handle,
)
from pxgraph.types.base import WireColor


class TestValidation:
    def test_negative_pixels_rejected(self):
        with pytest.raises(ValueError, match="non-negative"):
            Port("p1", "Port 1", max_pixels=-1)
        with pytest.raises(ValueError):
            SharedPort("A", -5)
        with pytest.raises(ValueError):
            Model("m1", "Arch", pixels=-1)

    def test_bool_is_not_a_pixel_count(self):
        with pytest.raises(ValueError):
            Port("p1", "Port 1", max_pixels=True)

    def test_differential_port_number_starts_at_one(self):
        with pytest.raises(ValueError, match=">= 1"):
            DifferentialPort("dp0", "d1", 0)

    def test_differential_port_default_name(self):
        assert DifferentialPort("dp3", "d1", 3).name == "Port 3"

    def test_differential_rejects_repeated_port(self):
        with pytest.raises(ValueError, match="more than once"):
            Differential("d1", "DB1", ["a", "a", "b", "c"])


class TestEndpointAndConnection:
    def test_port_handle_round_trip(self):
        endpoint = Endpoint("c1", port_handle("p7"))
        assert endpoint.handle == "port:p7"
        assert endpoint.port_id == "p7"
        assert Endpoint("d1", "diff-board-input").port_id is None
        assert str(endpoint) == "c1/port:p7"

    def test_connection_generates_id(self):
        conn = Connection(Endpoint("a", "x"), Endpoint("b", "y"))
        assert conn.id.startswith("a|b|")
        other = Connection(Endpoint("a", "x"), Endpoint("b", "y"))
        assert other.id != conn.id

    def test_connection_color_coercion(self):
        conn = Connection(Endpoint("a", "x"), Endpoint("b", "y"), wire_color="Red")
        assert conn.wire_color is WireColor.RED
        with pytest.raises(ValueError, match="Invalid wire color"):
            Connection(Endpoint("a", "x"), Endpoint("b", "y"), wire_color="plaid")

    def test_connection_payload_keys(self):
        conn = Connection(Endpoint("a", "x"), Endpoint("b", "y"), id="c1")
        assert conn.to_dict() == {
            "id": "c1",
            "source": "a",
            "sourceHandle": "x",
            "target": "b",
            "targetHandle": "y",
            "wireColor": "black",
        }


class TestPayloadForm:
    def test_controller_from_dict_defaults(self):
        ctl = Controller.from_dict(
            {"id": "c1", "name": "F16", "ports": [{"id": "p1", "name": "Port 1"}]}
        )
        assert ctl.type == "Ethernet"
        assert ctl.ports[0].max_pixels == 0
        assert ctl.ports[0].current_pixels == 0

    def test_differential_port_to_dict_includes_receivers(self):
        dp = DifferentialPort("dp1", "d1", 1, shared_ports=[SharedPort("A", 340)])
        data = dp.to_dict(["rx-1"])
        assert data["connectedReceivers"] == ["rx-1"]
        assert data["sharedPorts"] == [{"name": "A", "maxPixels": 340}]
        assert DifferentialPort.from_dict(data) == dp

    def test_model_unassigned_port_is_null(self):
        assert Model("m1", "Arch", 5).to_dict()["portId"] is None
