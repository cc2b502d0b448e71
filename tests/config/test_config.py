"""Tests for `pxgraph.config` defaults and validation."""

import pytest

from pxgraph.config import (
    CLIENT_CONFIG,
    SNAP_CONFIG,
    TOPOLOGY_CONFIG,
    ClientConfig,
    SnapConfig,
    TopologyConfig,
)


def test_defaults():
    """Defaults match the stock board and the local diagram service."""
    assert TOPOLOGY_CONFIG.differential_port_count == 4
    assert TOPOLOGY_CONFIG.default_wire_color == "black"
    assert TOPOLOGY_CONFIG.enforce_lane_limit is True
    assert SNAP_CONFIG.enabled is True
    assert SNAP_CONFIG.radius == 20.0
    assert CLIENT_CONFIG.base_url == "http://localhost:3001"
    assert CLIENT_CONFIG.diagram_path == "/api/diagram"
    assert CLIENT_CONFIG.stream_path == "/api/xlights/stream"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"differential_port_count": 0},
        {"default_shared_port_count": -1},
        {"default_shared_port_max_pixels": -5},
    ],
)
def test_topology_config_rejects_bad_values(kwargs):
    with pytest.raises(ValueError):
        TopologyConfig(**kwargs)


def test_snap_radius_must_be_non_negative():
    with pytest.raises(ValueError):
        SnapConfig(radius=-1)
    assert SnapConfig(radius=0).radius == 0


def test_client_config_override():
    cfg = ClientConfig(base_url="http://example.invalid:9000", timeout_s=1.5)
    assert cfg.timeout_s == 1.5
    assert cfg.diagram_path == "/api/diagram"
