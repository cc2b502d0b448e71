"""Configuration classes for PixelGraph components."""

from dataclasses import dataclass


@dataclass
class TopologyConfig:
    """Structural rules and construction defaults for the topology model."""

    # Number of DifferentialPorts on every Differential board
    differential_port_count: int = 4

    # Shared budget slots created on a new DifferentialPort when none are given
    default_shared_port_count: int = 4
    default_shared_port_max_pixels: int = 1024

    # Wire color used when a connection does not name one
    default_wire_color: str = "black"

    # Cap receivers on a DifferentialPort output at len(sharedPorts)
    enforce_lane_limit: bool = True

    def __post_init__(self) -> None:
        if self.differential_port_count < 1:
            raise ValueError("differential_port_count must be at least 1")
        if self.default_shared_port_count < 0:
            raise ValueError("default_shared_port_count must be non-negative")
        if self.default_shared_port_max_pixels < 0:
            raise ValueError("default_shared_port_max_pixels must be non-negative")


@dataclass
class SnapConfig:
    """Auto-snap behavior for dropped wire endpoints."""

    enabled: bool = True
    radius: float = 20.0

    def __post_init__(self) -> None:
        if self.radius < 0:
            raise ValueError("Snap radius must be non-negative")


@dataclass
class ClientConfig:
    """Location of the diagram persistence service and its controller feed."""

    base_url: str = "http://localhost:3001"
    diagram_path: str = "/api/diagram"
    stream_path: str = "/api/xlights/stream"
    timeout_s: float = 10.0


# Global configuration instances
TOPOLOGY_CONFIG = TopologyConfig()
SNAP_CONFIG = SnapConfig()
CLIENT_CONFIG = ClientConfig()
