"""Persistent storage for render records and validation reports.

Writes JSON to ``~/.config/helm-overlays/`` (XDG_CONFIG_HOME / helm-overlays).

File naming::

    render_<plan>_<run_id>.json
    validate_<plan>_<run_id>.json

All JSON is serialised with **sorted keys** for deterministic, diff-friendly output.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from helm_overlays.state.models import RenderRecord, ValidationReport

logger = logging.getLogger(__name__)

_APP_DIR = "helm-overlays"


# ---------------------------------------------------------------------------
# Directory resolution
# ---------------------------------------------------------------------------


def config_dir() -> Path:
    """Return the XDG config directory for helm-overlays.

    Uses ``XDG_CONFIG_HOME`` if set, otherwise ``~/.config``.
    Creates the directory if it does not exist.
    """
    base = os.environ.get("XDG_CONFIG_HOME", "")
    if not base:
        base = str(Path.home() / ".config")
    path = Path(base) / _APP_DIR
    path.mkdir(parents=True, exist_ok=True)
    return path


# ---------------------------------------------------------------------------
# Write helpers
# ---------------------------------------------------------------------------


def _safe_name(name: Optional[str]) -> str:
    """Sanitise a plan name for use in a filename."""
    if not name:
        return "unknown"
    return "".join(c if (c.isalnum() or c in "-_") else "_" for c in name)


def _write(dest: Path, payload: str) -> Path:
    dest.write_text(payload + "\n", encoding="utf-8")
    return dest


def write_render_record(record: RenderRecord) -> Path:
    """Persist *record* and return the written path.

    Path pattern: ``<config_dir>/render_<plan>_<run_id>.json``
    """
    dest = config_dir() / f"render_{_safe_name(record.plan_name)}_{record.run_id}.json"
    _write(dest, record.to_sorted_json())
    logger.info("Render record written to %s", dest)
    return dest


def write_validation_report(report: ValidationReport) -> Path:
    """Persist *report* and return the written path.

    Path pattern: ``<config_dir>/validate_<plan>_<run_id>.json``
    """
    dest = config_dir() / f"validate_{_safe_name(report.plan_name)}_{report.run_id}.json"
    _write(dest, report.to_sorted_json())
    logger.info("Validation report written to %s", dest)
    return dest


# ---------------------------------------------------------------------------
# Read helpers
# ---------------------------------------------------------------------------


def load_render_record(path: str | Path) -> RenderRecord:
    """Load a render record written by :func:`write_render_record`.

    Raises:
        FileNotFoundError: If *path* does not exist.
        pydantic.ValidationError: If the JSON does not match the schema.
    """
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"Render record not found: {path}")
    return RenderRecord.model_validate(json.loads(p.read_text(encoding="utf-8")))


def list_render_records(plan_name: Optional[str] = None) -> List[Path]:
    """Render records in :func:`config_dir`, oldest first."""
    pattern = f"render_{_safe_name(plan_name)}_*.json" if plan_name else "render_*.json"
    # run ids are UTC timestamps
    return sorted(config_dir().glob(pattern), key=lambda p: (p.stem.rsplit("_", 1)[-1], p.name))


def latest_render_record(plan_name: Optional[str] = None) -> Optional[Path]:
    """Most recent render record, optionally restricted to one plan."""
    records = list_render_records(plan_name)
    return records[-1] if records else None
