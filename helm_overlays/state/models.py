"""Validation report and render record models.

A render record is persisted per run as sorted-key JSON::

    {
      "run_id": "YYYYMMDDHHMMSS",
      "plan_name": "prod-eu",
      "output_dir": "/abs/out",
      "context_sha256": "...",
      "releases": ["redis-main"],
      "artifacts": [
        {
          "release": "redis-main",
          "path": "redis-main/values.yaml",
          "template": "aws/chart_values/redis/values.j2.yaml",
          "sha256": "...",
          "size": 1234
        }
      ]
    }
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def _run_id() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")


# ---------------------------------------------------------------------------
# CheckStatus enum
# ---------------------------------------------------------------------------


class CheckStatus(str, Enum):
    """Outcome of a single validation check."""

    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"


# ---------------------------------------------------------------------------
# CheckResult
# ---------------------------------------------------------------------------


class CheckResult(BaseModel):
    """A single validation check result.

    Attributes:
        id: Dotted identifier, e.g. ``yaml.parse`` or ``storageclass.default``.
        status: PASS, WARN, or FAIL.
        details: Structured data (file, document index, kind, name...).
        remediation: Human-readable fix suggestion.  Empty when status is PASS.
    """

    id: str
    status: CheckStatus
    details: Dict[str, Any] = Field(default_factory=dict)
    remediation: str = ""


# ---------------------------------------------------------------------------
# ValidationReport
# ---------------------------------------------------------------------------


class ValidationReport(BaseModel):
    """All checks run against one set of rendered files."""

    run_id: str = Field(default_factory=_run_id)
    plan_name: Optional[str] = None
    files: List[str] = Field(default_factory=list)
    checks: List[CheckResult] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        """True when **no** check has FAIL status."""
        return not any(c.status == CheckStatus.FAIL for c in self.checks)

    @property
    def has_warnings(self) -> bool:
        return any(c.status == CheckStatus.WARN for c in self.checks)

    @property
    def failed_checks(self) -> List[CheckResult]:
        return [c for c in self.checks if c.status == CheckStatus.FAIL]

    @property
    def warned_checks(self) -> List[CheckResult]:
        return [c for c in self.checks if c.status == CheckStatus.WARN]

    def extend(self, checks: List[CheckResult]) -> "ValidationReport":
        self.checks.extend(checks)
        return self

    def to_sorted_json(self, indent: int = 2) -> str:
        """Serialise with sorted keys for deterministic output."""
        return json.dumps(self.model_dump(mode="json"), indent=indent, sort_keys=True)


# ---------------------------------------------------------------------------
# RenderRecord, persisted per run
# ---------------------------------------------------------------------------


class ArtifactRecord(BaseModel):
    """One file written by a render run."""

    release: str
    path: str
    template: str
    sha256: str
    size: int
    rendered: bool = True


class RenderRecord(BaseModel):
    """Per-run snapshot written to ``render_<plan>_<run_id>.json``.

    ``path`` of each artifact is relative to ``output_dir`` so drift
    detection can compare the recorded digests against the disk.
    """

    run_id: str = Field(default_factory=_run_id)
    plan_name: Optional[str] = None
    plan_path: str = ""
    output_dir: str = ""
    context_sha256: str = ""
    releases: List[str] = Field(default_factory=list)
    artifacts: List[ArtifactRecord] = Field(default_factory=list)
    validation_report_path: str = ""

    def artifact_map(self) -> Dict[str, ArtifactRecord]:
        return {a.path: a for a in self.artifacts}

    def to_sorted_json(self, indent: int = 2) -> str:
        """Serialise with sorted keys for deterministic output."""
        return json.dumps(self.model_dump(mode="json"), indent=indent, sort_keys=True)
