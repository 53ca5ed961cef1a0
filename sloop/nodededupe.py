"""Detection of node updates that change more than heartbeats and versions."""

from __future__ import annotations

import json
from typing import Any

_REMOVED = "removed"

_ESCAPES = (
    ("&", "\\u0026"),
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def _canonical_json(value: Any) -> str:
    text = json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    for char, escape in _ESCAPES:
        text = text.replace(char, escape)
    return text


def remove_res_ver_and_timestamp(node_json: str | bytes) -> str:
    """Return canonical JSON of a node with its resource version and heartbeats blanked."""
    try:
        node = json.loads(node_json, parse_constant=_reject_constant)
    except ValueError as exc:
        raise ValueError(f"Failed to parse json for node resource: {exc}") from exc

    if not isinstance(node, dict):
        raise ValueError("Could not replace metadata.resourceVersion in node resource")
    metadata = node.setdefault("metadata", {})
    if not isinstance(metadata, dict):
        raise ValueError("Could not replace metadata.resourceVersion in node resource")
    metadata["resourceVersion"] = _REMOVED

    status = node.get("status")
    conditions = status.get("conditions") if isinstance(status, dict) else None
    if isinstance(conditions, list):
        for condition in conditions:
            if not isinstance(condition, dict):
                raise ValueError("Could not set node condition")
            condition["lastHeartbeatTime"] = _REMOVED
    elif isinstance(conditions, dict):
        for idx in range(len(conditions)):
            condition = conditions.setdefault(str(idx), {})
            if not isinstance(condition, dict):
                raise ValueError("Could not set node condition")
            condition["lastHeartbeatTime"] = _REMOVED

    return _canonical_json(node)


def node_has_major_update(node1: str | bytes, node2: str | bytes) -> bool:
    """Tell whether two node payloads differ beyond resource version and heartbeats."""
    return remove_res_ver_and_timestamp(node1) != remove_res_ver_and_timestamp(node2)