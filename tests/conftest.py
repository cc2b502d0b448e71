"""Shared pytest fixtures.

``sample`` builds the reference topology used across the model tests:

    F16 (2 ports x 680) --port 1--> DB1 (4 ports, slots A/B x 340)
    DB1 / Port 1 --> Rx1 (ports 170/170) with models Arch (120) and Tree (80)
    F16 port 2 --> model Roof (300)
"""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from pxgraph.model.diagram import Diagram
from pxgraph.model.entities import (
    DIFF_BOARD_INPUT,
    DIFF_PORT_OUTPUT,
    RECEIVER_INPUT,
    Controller,
    Differential,
    DifferentialPort,
    Endpoint,
    Model,
    Receiver,
    port_handle,
)


@dataclass
class Sample:
    diagram: Diagram
    controller: Controller
    board: Differential
    dp1: DifferentialPort
    dp2: DifferentialPort
    receiver: Receiver
    arch: Model
    tree: Model
    roof: Model


@pytest.fixture
def diagram() -> Diagram:
    return Diagram()


@pytest.fixture
def sample() -> Sample:
    d = Diagram()
    ctl = d.add_controller(
        "F16", ports=[("Port 1", 680), ("Port 2", 680)], controller_id="ctl-1"
    )
    board = d.add_differential(
        "DB1", shared_ports=[("A", 340), ("B", 340)], differential_id="diff-1"
    )
    rx = d.add_receiver("Rx1", ports=[("P1", 170), ("P2", 170)], receiver_id="rx-1")

    d.connect(
        Endpoint(ctl.id, port_handle(ctl.ports[0].id)),
        Endpoint(board.id, DIFF_BOARD_INPUT),
    )
    dp1, dp2 = d.resolver.ports_of(board.id)[:2]
    d.connect(Endpoint(dp1.id, DIFF_PORT_OUTPUT), Endpoint(rx.id, RECEIVER_INPUT))

    arch = d.add_model("Arch", 120, port_id=rx.ports[0].id, model_id="model-arch")
    tree = d.add_model("Tree", 80, port_id=rx.ports[1].id, model_id="model-tree")
    roof = d.add_model("Roof", 300, port_id=ctl.ports[1].id, model_id="model-roof")
    return Sample(d, ctl, board, dp1, dp2, rx, arch, tree, roof)


@pytest.fixture
def sample_payload(sample: Sample) -> dict:
    """The ``sample`` topology in saved-payload form."""
    return sample.diagram.to_dict()
