"""Command-line interface for PixelGraph."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from pxgraph.config import CLIENT_CONFIG
from pxgraph.io.client import DiagramClient, ServiceError
from pxgraph.io.loader import load_diagram_file
from pxgraph.logging import get_logger, set_global_log_level, setup_root_logger
from pxgraph.model.diagram import Diagram
from pxgraph.types.errors import MalformedSnapshot

logger = get_logger(__name__)

# Controllers with more ports than this are summarized unless --detail is given.
COMPACT_PORT_THRESHOLD = 8
COMPACT_PORT_PREVIEW = 4


def _format_table(
    headers: List[str],
    rows: List[List[str]],
    min_width: int = 6,
    max_col_width: Optional[int] = None,
) -> str:
    """Format data as a simple ASCII table.

    Args:
        headers: Column headers
        rows: Data rows
        min_width: Minimum column width
        max_col_width: Clip longer cells with "..."

    Returns:
        Formatted table string
    """
    if not rows:
        return ""

    def clip(val: Any) -> str:
        s = str(val)
        if max_col_width is not None and len(s) > max_col_width:
            return s[: max_col_width - 3] + "..."
        return s

    clipped_headers = [clip(h) for h in headers]
    clipped_rows = [[clip(item) for item in row] for row in rows]

    all_data = [clipped_headers] + clipped_rows
    col_widths = []
    for col_idx in range(len(clipped_headers)):
        max_width = max(len(str(row[col_idx])) for row in all_data)
        col_widths.append(max(max_width, min_width))

    def format_row(row_data: List[str]) -> str:
        return "   " + " | ".join(
            f"{str(item):<{col_widths[i]}}" for i, item in enumerate(row_data)
        )

    lines = []
    lines.append(format_row(clipped_headers))
    lines.append("   " + "-+-".join("-" * width for width in col_widths))
    for row in clipped_rows:
        lines.append(format_row(row))

    return "\n".join(lines)


def _flag(over: bool) -> str:
    return "OVER" if over else ""


def _usage(current: int, maximum: int, pct: float) -> List[str]:
    return [f"{current:,}", f"{maximum:,}", f"{pct:.1f}%"]


def _print_controllers(diagram: Diagram, detail: bool) -> None:
    print("\n1. CONTROLLERS")
    print("-" * 30)
    if not diagram.controllers:
        print("   (none)")
        return
    for ctl in diagram.controllers:
        total = diagram.controller_total_utilization(ctl)
        print(
            f"\n   {ctl.name} [{ctl.type}] {len(ctl.ports)} ports, "
            f"{total.current:,}/{total.max:,} px ({total.utilization_pct:.1f}%)"
        )
        ports = ctl.ports
        hidden = 0
        if not detail and len(ports) > COMPACT_PORT_THRESHOLD:
            hidden = len(ports) - COMPACT_PORT_PREVIEW
            ports = ports[:COMPACT_PORT_PREVIEW]
        rows = []
        for port in ports:
            util = diagram.port_utilization(port)
            rows.append(
                [port.name]
                + _usage(util.current, util.max, util.utilization_pct)
                + [_flag(util.over_capacity)]
            )
        table = _format_table(["Port", "Current", "Max", "Used", ""], rows)
        if table:
            print(table)
        if hidden:
            print(f"   ... {hidden} more ports (use --detail to list all)")


def _print_differentials(diagram: Diagram, detail: bool) -> None:
    print("\n2. DIFFERENTIAL BOARDS")
    print("-" * 30)
    if not diagram.differentials:
        print("   (none)")
        return
    for board in diagram.differentials:
        total = diagram.differential_total_utilization(board)
        parent = diagram.parent_of(board.id)
        fed_by = parent.name if parent is not None else "unconnected"
        print(
            f"\n   {board.name} (fed by {fed_by}) "
            f"{total.current:,}/{total.max:,} px ({total.utilization_pct:.1f}%)"
        )
        rows = []
        for dp in diagram.resolver.ports_of(board.id):
            receivers = diagram.resolver.receiver_entities_of(dp.id)
            rx_names = ", ".join(rx.name for rx in receivers) or "-"
            for slot in diagram.differential_port_utilization(dp):
                if not detail and slot.current == 0 and not receivers:
                    continue
                rows.append(
                    [dp.name, slot.shared_port_name]
                    + _usage(slot.current, slot.max, slot.utilization_pct)
                    + [_flag(slot.over_capacity), rx_names]
                )
        table = _format_table(
            ["Port", "Slot", "Current", "Max", "Used", "", "Receivers"],
            rows,
            max_col_width=40,
        )
        print(table if table else "   (no receivers wired)")


def _print_receivers(diagram: Diagram, detail: bool) -> None:
    print("\n3. RECEIVERS")
    print("-" * 30)
    if not diagram.receivers:
        print("   (none)")
        return
    rows = []
    for rx in diagram.receivers:
        total = diagram.receiver_total_utilization(rx)
        parent = diagram.parent_of(rx.id)
        rows.append(
            [rx.name, parent.name if parent is not None else "-", str(len(rx.ports))]
            + _usage(total.current, total.max, total.utilization_pct)
            + [_flag(total.over_capacity)]
        )
        if detail:
            for port in rx.ports:
                util = diagram.port_utilization(port)
                rows.append(
                    [f"  {port.name}", "", ""]
                    + _usage(util.current, util.max, util.utilization_pct)
                    + [_flag(util.over_capacity)]
                )
    print(
        _format_table(
            ["Receiver", "Fed by", "Ports", "Current", "Max", "Used", ""], rows
        )
    )


def _print_over_capacity(diagram: Diagram) -> None:
    print("\n4. OVER CAPACITY")
    print("-" * 30)
    entries = diagram.over_capacity_report()
    if not entries:
        print("   None")
        return
    rows = [
        [e.entity_name, e.slot_name, f"{e.current:,}", f"{e.max:,}"] for e in entries
    ]
    print(_format_table(["Where", "Port", "Current", "Max"], rows))


def _load(path: Path) -> Diagram:
    payload = load_diagram_file(path)
    return Diagram.from_snapshot(payload)


def _inspect_diagram(path: Path, detail: bool = False) -> None:
    """Load a diagram file and print utilization at every level.

    Args:
        path: Diagram JSON or YAML file.
        detail: Show every port, including on large controllers.
    """
    logger.info("Inspecting diagram from: %s", path)
    try:
        diagram = _load(path)
    except FileNotFoundError:
        print(f"❌ ERROR: Diagram file not found: {path}")
        sys.exit(1)
    except MalformedSnapshot as e:
        logger.error("Failed to load diagram: %s", e)
        print("❌ ERROR: Diagram is invalid")
        for err in e.errors:
            print(f"  {err}")
        sys.exit(1)

    counts = diagram.store.counts()
    print("\n" + "=" * 60)
    print("PXGRAPH DIAGRAM INSPECTION")
    print("=" * 60)
    print("\nOVERVIEW")
    print("-" * 30)
    rows = [[k, str(v)] for k, v in counts.items()]
    print(_format_table(["Collection", "Count"], rows))

    _print_controllers(diagram, detail)
    _print_differentials(diagram, detail)
    _print_receivers(diagram, detail)
    _print_over_capacity(diagram)
    logger.info("Diagram inspection completed")


def _validate_diagram(path: Path) -> None:
    """Validate a diagram file; exit 1 listing every problem found."""
    try:
        diagram = _load(path)
    except FileNotFoundError:
        print(f"❌ ERROR: Diagram file not found: {path}")
        sys.exit(1)
    except MalformedSnapshot as e:
        print(f"❌ INVALID: {path}")
        for err in e.errors:
            print(f"  {err}")
        sys.exit(1)

    counts = diagram.store.counts()
    summary = ", ".join(f"{v} {k}" for k, v in counts.items())
    print(f"✓ VALID: {path} ({summary})")


def _fetch_diagram(base_url: Optional[str], output: Optional[Path]) -> None:
    """Download the saved diagram and write it to ``output`` or stdout."""
    config = CLIENT_CONFIG
    if base_url:
        config = dataclasses.replace(config, base_url=base_url)
    try:
        with DiagramClient(config) as client:
            payload = client.fetch_diagram()
    except (ServiceError, MalformedSnapshot) as e:
        logger.error("Failed to fetch diagram: %s", e)
        print(f"❌ ERROR: {e}")
        sys.exit(1)

    if not payload:
        logger.info("Service has no saved diagram")
    text = json.dumps(payload, indent=2)
    if output is None:
        print(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    print(f"✓ Diagram written to {output}")


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the ``pxgraph`` command.

    Args:
        argv: Optional list of command-line arguments. If ``None``, ``sys.argv``
            is used.
    """
    parser = argparse.ArgumentParser(
        prog="pxgraph",
        description="Inspect and validate lighting-control diagrams.",
    )

    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--quiet", action="store_true", help="Only log warnings and errors"
    )

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
        title="Available commands",
        metavar="{inspect,validate,fetch}",
        help="Available commands",
    )

    inspect_parser = subparsers.add_parser(
        "inspect", help="Show utilization of a diagram file"
    )
    inspect_parser.add_argument("diagram", type=Path, help="Path to diagram JSON/YAML")
    inspect_parser.add_argument(
        "--detail",
        "-d",
        action="store_true",
        help="List every port, including on controllers with many ports",
    )

    validate_parser = subparsers.add_parser(
        "validate", help="Check a diagram file for errors"
    )
    validate_parser.add_argument(
        "diagram", type=Path, help="Path to diagram JSON/YAML"
    )

    fetch_parser = subparsers.add_parser(
        "fetch", help="Download the saved diagram from the service"
    )
    fetch_parser.add_argument(
        "--base-url",
        default=None,
        help=f"Service URL (default: {CLIENT_CONFIG.base_url})",
    )
    fetch_parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Write the diagram to this file instead of stdout",
    )

    effective_args = sys.argv[1:] if argv is None else argv

    if not effective_args:
        parser.print_help()
        raise SystemExit(0)

    args = parser.parse_args(effective_args)

    # Without a flag the level comes from $PXGRAPH_LOG_LEVEL (default INFO).
    setup_root_logger()
    if args.verbose:
        set_global_log_level(logging.DEBUG)
        logger.debug("Debug logging enabled")
    elif args.quiet:
        set_global_log_level(logging.WARNING)

    if args.command == "inspect":
        _inspect_diagram(args.diagram, args.detail)
    elif args.command == "validate":
        _validate_diagram(args.diagram)
    elif args.command == "fetch":
        _fetch_diagram(args.base_url, args.output)


if __name__ == "__main__":
    main()
