"""Helm values layering.

Helm builds the final values of a release from, in increasing precedence:
the chart's own ``values.yaml``, every ``-f`` file in order, then every
``--set`` pair.  These helpers reproduce that composition so a values
overlay can be inspected (and checked for leftover placeholders) without
a cluster.

Dotted keys follow ``helm --set`` syntax: ``a.b.c`` walks nested maps and
``\\.`` escapes a literal dot, as in
``controller.service.annotations.external-dns\\.alpha\\.kubernetes\\.io/hostname``.
"""

from __future__ import annotations

import copy
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

import yaml

logger = logging.getLogger(__name__)

#: Sentinel left in static overlays for values the engine must supply.
ENGINE_PLACEHOLDER = "set-by-engine-code"

_INT_RE = re.compile(r"^[-+]?\d+$")


# ── dotted keys ──────────────────────────────────────────────────────


def split_key(dotted_key: str) -> List[str]:
    """Split *dotted_key* on unescaped dots.

    Raises:
        ValueError: If *dotted_key* is empty or has an empty segment.
    """
    parts: List[str] = []
    buf: List[str] = []
    i = 0
    while i < len(dotted_key):
        ch = dotted_key[i]
        if ch == "\\" and i + 1 < len(dotted_key) and dotted_key[i + 1] == ".":
            buf.append(".")
            i += 2
            continue
        if ch == ".":
            parts.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
        i += 1
    parts.append("".join(buf))
    if any(not p for p in parts):
        raise ValueError(f"Invalid values key: {dotted_key!r}")
    return parts


def join_key(parts: Iterable[str]) -> str:
    """Inverse of :func:`split_key`."""
    return ".".join(str(p).replace(".", "\\.") for p in parts)


def coerce_set_value(raw: Any) -> Any:
    """Type a ``--set`` string the way Helm does.

    ``true``/``false`` become booleans, ``null`` becomes ``None`` and
    integer literals become ``int``.  Anything else stays a string.
    """
    if not isinstance(raw, str):
        return raw
    if raw == "true":
        return True
    if raw == "false":
        return False
    if raw == "null":
        return None
    if _INT_RE.match(raw):
        return int(raw)
    return raw


def set_path(
    values: Dict[str, Any],
    dotted_key: str,
    value: Any,
    *,
    coerce: bool = True,
) -> Dict[str, Any]:
    """Assign *value* at *dotted_key* inside *values* (in place).

    Intermediate maps are created as needed; a non-map found on the way
    is replaced, matching ``helm --set``.

    Returns:
        *values*, for chaining.
    """
    parts = split_key(dotted_key)
    node = values
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = coerce_set_value(value) if coerce else value
    return values


def get_path(values: Mapping[str, Any], dotted_key: str, default: Any = None) -> Any:
    node: Any = values
    for part in split_key(dotted_key):
        if not isinstance(node, Mapping) or part not in node:
            return default
        node = node[part]
    return node


# ── merging ──────────────────────────────────────────────────────────


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Return *base* overlaid with *override*.

    Maps merge recursively; lists and scalars from *override* replace
    those in *base*.  Neither input is modified.
    """
    merged: Dict[str, Any] = copy.deepcopy(dict(base))
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def flatten_values(values: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flatten nested maps into ``{dotted_key: leaf}``.

    Lists are leaves.  An empty map is kept as a leaf so it is not lost.
    """
    flat: Dict[str, Any] = {}
    for key, value in values.items():
        dotted = f"{prefix}.{join_key([key])}" if prefix else join_key([key])
        if isinstance(value, Mapping) and value:
            flat.update(flatten_values(value, dotted))
        else:
            flat[dotted] = value
    return flat


# ── loading ──────────────────────────────────────────────────────────


def parse_values(text: str, *, source: str = "<string>") -> Dict[str, Any]:
    """Parse a values document; an empty document is ``{}``.

    Raises:
        ValueError: If the document is not a mapping.
        yaml.YAMLError: If the text is not YAML.
    """
    data = yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(
            f"Values in {source} must be a mapping, got {type(data).__name__}"
        )
    return data


def load_values_file(path: str | Path) -> Dict[str, Any]:
    """Read a values file from disk.

    Raises:
        FileNotFoundError: If *path* does not exist.
    """
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"Values file not found: {path}")
    return parse_values(p.read_text(encoding="utf-8"), source=str(p))


def compose_values(
    *,
    chart_defaults: Mapping[str, Any] | None = None,
    files: Iterable[Mapping[str, Any]] = (),
    set_values: Iterable[tuple[str, Any]] = (),
) -> Dict[str, Any]:
    """Combine values layers with Helm precedence (later wins)."""
    result: Dict[str, Any] = dict(copy.deepcopy(chart_defaults or {}))
    for layer in files:
        result = deep_merge(result, layer)
    for key, value in set_values:
        set_path(result, key, value)
    return result


def find_engine_placeholders(values: Mapping[str, Any]) -> List[str]:
    """Dotted keys whose value is still :data:`ENGINE_PLACEHOLDER`."""
    return sorted(
        key
        for key, value in flatten_values(values).items()
        if isinstance(value, str) and value.strip() == ENGINE_PLACEHOLDER
    )
