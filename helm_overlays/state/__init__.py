"""Render records, validation reports and drift detection."""

from helm_overlays.state.drift import (
    DriftCheck,
    DriftReport,
    DriftStatus,
    check_disk_drift,
    check_render_drift,
    run_drift_check,
)
from helm_overlays.state.models import (
    ArtifactRecord,
    CheckResult,
    CheckStatus,
    RenderRecord,
    ValidationReport,
)
from helm_overlays.state.store import (
    config_dir,
    latest_render_record,
    list_render_records,
    load_render_record,
    write_render_record,
    write_validation_report,
)

__all__ = [
    "ArtifactRecord",
    "CheckResult",
    "CheckStatus",
    "DriftCheck",
    "DriftReport",
    "DriftStatus",
    "RenderRecord",
    "ValidationReport",
    "check_disk_drift",
    "check_render_drift",
    "config_dir",
    "latest_render_record",
    "list_render_records",
    "load_render_record",
    "run_drift_check",
    "write_render_record",
    "write_validation_report",
]
