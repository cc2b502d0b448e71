"""Diagram snapshot parsing, validation, and file I/O.

``build_store`` turns a saved payload into a fresh ``EntityStore`` or raises
``MalformedSnapshot`` listing every problem found. Validation runs in three
passes: the packaged JSON schema (``pxgraph/schemas/diagram.json``), entity
construction and identity rules, then a replay of every live connection
through the connection engine's rules. Nothing is applied to a caller's store
until all passes succeed.

Connections that point at entities absent from the payload are kept as-is;
they are what a discovery update leaves behind when a controller disappears,
and the resolver skips them at read time.
"""

from __future__ import annotations

import dataclasses
import json
from importlib import resources
from pathlib import Path
from typing import Any, Dict, List, Union

import jsonschema
import yaml

from pxgraph.config import TOPOLOGY_CONFIG, TopologyConfig
from pxgraph.logging import get_logger
from pxgraph.model.connections import ConnectionEngine
from pxgraph.model.demand import recompute_port_demand
from pxgraph.model.entities import (
    ENTITY_CLASSES,
    MODEL_INPUT,
    Connection,
    Controller,
)
from pxgraph.model.hierarchy import HierarchyResolver
from pxgraph.model.store import EntityStore
from pxgraph.types.base import EntityKind
from pxgraph.types.errors import MalformedSnapshot, TopologyError

LOGGER = get_logger(__name__)

_SCHEMA_CACHE: Dict[str, Any] = {}


def diagram_schema() -> Dict[str, Any]:
    """Return the packaged diagram JSON schema (read once)."""
    if "diagram" not in _SCHEMA_CACHE:
        with (
            resources.files("pxgraph.schemas")
            .joinpath("diagram.json")
            .open("r", encoding="utf-8")
        ) as f:
            _SCHEMA_CACHE["diagram"] = json.load(f)
    return _SCHEMA_CACHE["diagram"]


def schema_errors(payload: Any) -> List[str]:
    """Validate ``payload`` against the diagram schema; return readable errors."""
    validator = jsonschema.Draft7Validator(diagram_schema())
    errors = sorted(validator.iter_errors(payload), key=lambda e: list(e.absolute_path))
    out = []
    for err in errors:
        where = "/".join(str(p) for p in err.absolute_path) or "<root>"
        out.append(f"{where}: {err.message}")
    return out


def _fail(errors: List[str]) -> MalformedSnapshot:
    LOGGER.warning("Rejected diagram snapshot with %d error(s)", len(errors))
    for err in errors:
        LOGGER.debug("  %s", err)
    return MalformedSnapshot(
        f"Diagram snapshot is invalid ({len(errors)} error(s)): {errors[0]}", errors
    )


def _populate(store: EntityStore, payload: Dict[str, Any], errors: List[str]) -> None:
    for kind in EntityKind:
        cls = ENTITY_CLASSES[kind]
        seen = set()
        for index, raw in enumerate(payload.get(kind.value, [])):
            where = f"{kind.value}/{index}"
            if raw["id"] in seen:
                errors.append(f"{where}: duplicate id '{raw['id']}'")
                continue
            seen.add(raw["id"])
            try:
                store.upsert(cls.from_dict(raw))
            except ValueError as exc:
                errors.append(f"{where}: {exc}")


def _check_boards(store: EntityStore, errors: List[str]) -> None:
    owners: Dict[str, str] = {}
    limit = store.config.differential_port_count
    for board in store.differentials.values():
        numbers = set()
        for dp_id in board.differential_ports:
            dp = store.differential_ports.get(dp_id)
            if dp is None:
                errors.append(f"differential '{board.id}': unknown port '{dp_id}'")
                continue
            if dp.differential_id != board.id:
                errors.append(
                    f"differentialPort '{dp_id}' names board '{dp.differential_id}' "
                    f"but is listed by '{board.id}'"
                )
            if dp_id in owners:
                errors.append(
                    f"differentialPort '{dp_id}' listed by '{owners[dp_id]}' and '{board.id}'"
                )
            owners[dp_id] = board.id
            if dp.port_number in numbers or dp.port_number > limit:
                errors.append(
                    f"differentialPort '{dp_id}': portNumber {dp.port_number} is "
                    f"repeated or outside 1..{limit}"
                )
            numbers.add(dp.port_number)
    for dp_id in store.differential_ports:
        if dp_id not in owners:
            errors.append(f"differentialPort '{dp_id}' belongs to no differential")


def _replay_connections(
    store: EntityStore, raw_connections: List[Dict[str, Any]], errors: List[str]
) -> None:
    # Lane limits are a wiring-time rule; saved data may exceed them.
    engine = ConnectionEngine(
        store, config=dataclasses.replace(store.config, enforce_lane_limit=False)
    )
    resolver = engine.resolver
    assigned_by_edge: Dict[str, str] = {}

    for index, raw in enumerate(raw_connections):
        where = f"connections/{index}"
        conn = Connection.from_dict(raw)
        if conn.id in store.connections:
            errors.append(f"{where}: duplicate id '{conn.id}'")
            continue

        if not (
            resolver.endpoint_resolves(conn.source)
            and resolver.endpoint_resolves(conn.target)
        ):
            LOGGER.warning("Keeping dangling connection '%s'", conn.id)
            store.add_connection(conn)
            continue

        if conn.target.handle == MODEL_INPUT and conn.target.entity_id in store.models:
            model = store.models[conn.target.entity_id]
            try:
                src = engine.resolve_handle(conn.source)
                dst = engine.resolve_handle(conn.target)
            except TopologyError as exc:
                errors.append(f"{where}: {exc}")
                continue
            if (src.kind, dst.kind) not in (
                (EntityKind.CONTROLLER, EntityKind.MODEL),
                (EntityKind.RECEIVER, EntityKind.MODEL),
            ) or src.port_id is None:
                errors.append(f"{where}: model input must be fed by a port handle")
            elif model.id in assigned_by_edge:
                errors.append(f"{where}: model '{model.id}' is wired twice")
            elif model.port_id != src.port_id:
                errors.append(
                    f"{where}: model '{model.id}' has portId {model.port_id!r} but is "
                    f"wired to port '{src.port_id}'"
                )
            else:
                assigned_by_edge[model.id] = src.port_id
                store.add_connection(conn)
            continue

        try:
            engine.validate(conn.source, conn.target)
        except TopologyError as exc:
            errors.append(f"{where}: {exc}")
            continue
        store.add_connection(conn)

    for model in store.models.values():
        if model.port_id is not None and resolver.port_owner(model.port_id) is None:
            LOGGER.warning(
                "Model '%s' references unknown port '%s'", model.id, model.port_id
            )


def _check_receiver_lists(
    store: EntityStore, payload: Dict[str, Any], errors: List[str]
) -> None:
    resolver = HierarchyResolver(store)
    for raw in payload.get(EntityKind.DIFFERENTIAL_PORT.value, []):
        if "connectedReceivers" not in raw or raw["id"] not in store.differential_ports:
            continue
        listed = set(raw["connectedReceivers"])
        wired = set(resolver.receivers_of(raw["id"]))
        if listed != wired:
            errors.append(
                f"differentialPort '{raw['id']}': connectedReceivers "
                f"{sorted(listed)} do not match wired receivers {sorted(wired)}"
            )


def build_store(
    payload: Any, config: TopologyConfig = TOPOLOGY_CONFIG
) -> EntityStore:
    """Validate a diagram payload and build a new store from it.

    Args:
        payload: Decoded JSON object. ``{}`` produces an empty store.
        config: Structural rules for the new store.

    Raises:
        MalformedSnapshot: With every problem found; no store is produced.
    """
    if not isinstance(payload, dict):
        raise _fail([f"<root>: expected an object, got {type(payload).__name__}"])

    errors = schema_errors(payload)
    if errors:
        raise _fail(errors)

    store = EntityStore(config=config)
    _populate(store, payload, errors)
    if not errors:
        _check_boards(store, errors)
    if not errors:
        _replay_connections(store, payload.get("connections", []), errors)
    if not errors:
        _check_receiver_lists(store, payload, errors)
    if errors:
        raise _fail(errors)

    changed = recompute_port_demand(store)
    if changed:
        LOGGER.debug("Normalized currentPixels on %d port(s)", changed)
    return store


def parse_controllers(raw_controllers: Any) -> List[Controller]:
    """Validate a list of controller objects in the snapshot format.

    Raises:
        MalformedSnapshot: If the list or any controller is malformed.
    """
    errors = schema_errors({"controllers": raw_controllers})
    if errors:
        raise _fail(errors)
    try:
        return [Controller.from_dict(raw) for raw in raw_controllers]
    except ValueError as exc:
        raise _fail([str(exc)]) from exc


def dump_snapshot(store: EntityStore) -> Dict[str, Any]:
    """Serialize ``store`` to the diagram payload format.

    ``connectedReceivers`` is written from the current wiring.
    """
    resolver = HierarchyResolver(store)
    return {
        "controllers": [c.to_dict() for c in store.controllers.values()],
        "differentials": [d.to_dict() for d in store.differentials.values()],
        "differentialPorts": [
            dp.to_dict(resolver.receivers_of(dp.id))
            for dp in store.differential_ports.values()
        ],
        "receivers": [r.to_dict() for r in store.receivers.values()],
        "models": [m.to_dict() for m in store.models.values()],
        "connections": [c.to_dict() for c in store.connections.values()],
    }


def parse_diagram_text(text: str, fmt: str = "json") -> Dict[str, Any]:
    """Decode diagram text as JSON or YAML into a payload dict.

    Empty documents decode to ``{}``.

    Raises:
        MalformedSnapshot: On a syntax error or a non-object top level.
    """
    try:
        if fmt == "yaml":
            data = yaml.safe_load(text)
        else:
            data = json.loads(text) if text.strip() else None
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise _fail([f"<root>: cannot parse {fmt}: {exc}"]) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise _fail(["<root>: the diagram must map to an object at top level"])
    return data


def load_diagram_file(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a ``.json``, ``.yaml`` or ``.yml`` diagram file into a payload dict."""
    path = Path(path)
    fmt = "yaml" if path.suffix.lower() in (".yaml", ".yml") else "json"
    return parse_diagram_text(path.read_text(encoding="utf-8"), fmt)


def save_diagram_file(store: EntityStore, path: Union[str, Path]) -> Path:
    """Write ``store`` as JSON (or YAML for ``.yaml``/``.yml`` paths)."""
    path = Path(path)
    payload = dump_snapshot(store)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() in (".yaml", ".yml"):
        text = yaml.safe_dump(payload, sort_keys=False)
    else:
        text = json.dumps(payload, indent=2)
    path.write_text(text, encoding="utf-8")
    return path
