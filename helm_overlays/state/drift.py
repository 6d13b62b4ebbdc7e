"""Drift detection for rendered output.

Compares a persisted :class:`RenderRecord` against the files on disk and,
optionally, against a fresh render of the same plan.  A fresh render that
differs means the inputs changed or a template is not deterministic.

Exit code convention: ``3`` = drift detected (for ``helm-overlays drift``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from helm_overlays.render.engine import sha256_file
from helm_overlays.state.models import RenderRecord

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# DriftStatus
# ---------------------------------------------------------------------------


class DriftStatus(str, Enum):
    """Outcome of a single drift check."""

    OK = "OK"
    DRIFTED = "DRIFTED"
    ERROR = "ERROR"


# ---------------------------------------------------------------------------
# DriftCheck, a single check result
# ---------------------------------------------------------------------------


@dataclass
class DriftCheck:
    """Result of one drift check (one artifact on disk or re-rendered)."""

    id: str
    status: DriftStatus
    expected: str = ""
    actual: str = ""
    details: Dict[str, Any] = field(default_factory=dict)
    error: str = ""


# ---------------------------------------------------------------------------
# DriftReport, aggregate
# ---------------------------------------------------------------------------


@dataclass
class DriftReport:
    """Aggregate drift report for one render record."""

    plan_name: str
    run_id: str = ""
    checks: List[DriftCheck] = field(default_factory=list)

    @property
    def has_drift(self) -> bool:
        return any(c.status == DriftStatus.DRIFTED for c in self.checks)

    @property
    def has_errors(self) -> bool:
        return any(c.status == DriftStatus.ERROR for c in self.checks)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to a plain dict (sorted for determinism)."""
        return {
            "plan_name": self.plan_name,
            "run_id": self.run_id,
            "has_drift": self.has_drift,
            "has_errors": self.has_errors,
            "checks": [
                {
                    "actual": c.actual,
                    "details": c.details,
                    "error": c.error,
                    "expected": c.expected,
                    "id": c.id,
                    "status": c.status.value,
                }
                for c in self.checks
            ],
        }


# ---------------------------------------------------------------------------
# Individual drift checkers
# ---------------------------------------------------------------------------


def check_disk_drift(record: RenderRecord) -> List[DriftCheck]:
    """Compare every recorded artifact with the file now on disk."""
    root = Path(record.output_dir)
    results: List[DriftCheck] = []
    for artifact in record.artifacts:
        check_id = f"disk.{artifact.path}"
        target = root / artifact.path
        if not target.is_file():
            results.append(
                DriftCheck(
                    id=check_id,
                    status=DriftStatus.DRIFTED,
                    expected=artifact.sha256,
                    actual="<missing>",
                )
            )
            continue
        try:
            digest = sha256_file(target)
        except OSError as exc:
            results.append(DriftCheck(id=check_id, status=DriftStatus.ERROR, error=str(exc)))
            continue
        results.append(
            DriftCheck(
                id=check_id,
                status=DriftStatus.OK if digest == artifact.sha256 else DriftStatus.DRIFTED,
                expected=artifact.sha256,
                actual=digest,
            )
        )
    return results


def check_render_drift(
    record: RenderRecord,
    rendered: Mapping[str, str],
) -> List[DriftCheck]:
    """Compare recorded digests with a fresh render.

    *rendered* maps artifact paths (relative, as in the record) to the
    sha256 of the new output.
    """
    results: List[DriftCheck] = []
    recorded = record.artifact_map()
    for path in sorted(set(recorded) | set(rendered)):
        check_id = f"render.{path}"
        expected = recorded[path].sha256 if path in recorded else "<absent>"
        actual = rendered.get(path, "<absent>")
        results.append(
            DriftCheck(
                id=check_id,
                status=DriftStatus.OK if expected == actual else DriftStatus.DRIFTED,
                expected=expected,
                actual=actual,
            )
        )
    return results


# ---------------------------------------------------------------------------
# Top-level drift check
# ---------------------------------------------------------------------------


def run_drift_check(
    record: RenderRecord,
    *,
    rendered: Optional[Mapping[str, str]] = None,
    check_disk: bool = True,
) -> DriftReport:
    """Run the drift checks against *record* and return a :class:`DriftReport`.

    The re-render comparison is skipped when *rendered* is ``None``.
    """
    report = DriftReport(plan_name=record.plan_name or "unknown", run_id=record.run_id)

    if check_disk:
        report.checks.extend(check_disk_drift(record))

    if rendered is not None:
        report.checks.extend(check_render_drift(record, rendered))

    if report.has_drift:
        logger.warning(
            "Drift detected for plan %s (run %s): %d check(s)",
            report.plan_name,
            report.run_id,
            sum(1 for c in report.checks if c.status == DriftStatus.DRIFTED),
        )
    return report
