"""Helm CLI wrapper: template and upgrade --install.

Helm runs as a subprocess; nothing here reimplements chart rendering.
Inline YAML overrides of a :class:`ChartInfo` are written to temporary
``-f`` files next to the command.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from helm_overlays.charts.models import ChartInfo

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

HELM_BINARY = "helm"

#: Return code reported when the helm binary is not on PATH.
HELM_NOT_FOUND_RC = 4

# ---------------------------------------------------------------------------
# Result dataclass
# ---------------------------------------------------------------------------


@dataclass
class HelmResult:
    """Outcome of a ``helm`` CLI invocation."""

    command: str
    returncode: int
    stdout: str = ""
    stderr: str = ""
    success: bool = False
    binary_missing: bool = False
    args: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def helm_available() -> bool:
    return shutil.which(HELM_BINARY) is not None


def _run_helm(
    args: List[str],
    *,
    kubeconfig: Optional[str] = None,
    extra_env: Optional[Dict[str, str]] = None,
) -> HelmResult:
    """Run ``helm`` with *args*; *kubeconfig* is injected as ``KUBECONFIG``."""
    cmd = [HELM_BINARY, *args]
    env = {**os.environ}
    if kubeconfig:
        env["KUBECONFIG"] = kubeconfig
    if extra_env:
        env.update(extra_env)

    logger.info("Running: %s", " ".join(cmd))

    try:
        proc = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            env=env,
        )
    except FileNotFoundError:
        return HelmResult(
            command=" ".join(cmd),
            returncode=HELM_NOT_FOUND_RC,
            stderr="helm CLI not found on PATH",
            binary_missing=True,
            args=list(args),
        )

    result = HelmResult(
        command=" ".join(cmd),
        returncode=proc.returncode,
        stdout=proc.stdout.strip(),
        stderr=proc.stderr.strip(),
        args=list(args),
    )
    result.success = result.returncode == 0
    return result


def _values_args(chart: ChartInfo, override_dir: Path, base_dir: Optional[Path]) -> List[str]:
    args: List[str] = []
    for values_file in chart.values_files:
        path = Path(values_file)
        if base_dir is not None and not path.is_absolute():
            path = base_dir / path
        args += ["-f", str(path)]
    for i, content in enumerate(chart.yaml_files_content):
        override = override_dir / f"{chart.name}-override-{i}.yaml"
        override.write_text(content, encoding="utf-8")
        args += ["-f", str(override)]
    for value in chart.values:
        args += ["--set", value.to_arg()]
    return args


def _chart_path(chart: ChartInfo, base_dir: Optional[Path]) -> str:
    path = Path(chart.path)
    if base_dir is not None and not path.is_absolute():
        return str(base_dir / path)
    return chart.path


# ---------------------------------------------------------------------------
# Command builders
# ---------------------------------------------------------------------------


def build_upgrade_args(
    chart: ChartInfo,
    override_dir: Path,
    *,
    base_dir: Optional[Path] = None,
    dry_run: bool = False,
) -> List[str]:
    """Arguments of ``helm upgrade --install`` for *chart*."""
    args = [
        "upgrade",
        "--install",
        chart.name,
        _chart_path(chart, base_dir),
        "--namespace",
        chart.target_namespace,
        "--timeout",
        f"{chart.timeout_in_seconds}s",
        "--history-max",
        "50",
    ]
    if chart.create_namespace:
        args.append("--create-namespace")
    if chart.atomic:
        args.append("--atomic")
    if chart.wait:
        args.append("--wait")
    if chart.version:
        args += ["--version", chart.version]
    if dry_run:
        args.append("--dry-run")
    return args + _values_args(chart, override_dir, base_dir)


def build_template_args(
    chart: ChartInfo,
    override_dir: Path,
    *,
    base_dir: Optional[Path] = None,
) -> List[str]:
    """Arguments of ``helm template`` for *chart*."""
    args = [
        "template",
        chart.name,
        _chart_path(chart, base_dir),
        "--namespace",
        chart.target_namespace,
    ]
    if chart.version:
        args += ["--version", chart.version]
    return args + _values_args(chart, override_dir, base_dir)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def upgrade_install(
    chart: ChartInfo,
    *,
    kubeconfig: Optional[str] = None,
    base_dir: Optional[Path] = None,
    dry_run: bool = False,
) -> HelmResult:
    """Execute ``helm upgrade --install`` (``--dry-run`` when asked).

    Returns a :class:`HelmResult` with ``success=True`` when the process
    exits 0.
    """
    with tempfile.TemporaryDirectory(prefix="helm-overlays-") as tmp:
        args = build_upgrade_args(chart, Path(tmp), base_dir=base_dir, dry_run=dry_run)
        result = _run_helm(args, kubeconfig=kubeconfig)

    if result.success:
        logger.info(
            "Release %s %s in %s",
            chart.name,
            "validated" if dry_run else "deployed",
            chart.target_namespace,
        )
    else:
        logger.error(
            "helm upgrade failed for %s (rc=%d): %s",
            chart.name,
            result.returncode,
            result.stderr or "(no stderr)",
        )
    return result


def template(
    chart: ChartInfo,
    *,
    base_dir: Optional[Path] = None,
) -> HelmResult:
    """Execute ``helm template``; the manifests land in ``stdout``."""
    with tempfile.TemporaryDirectory(prefix="helm-overlays-") as tmp:
        args = build_template_args(chart, Path(tmp), base_dir=base_dir)
        result = _run_helm(args)

    if not result.success:
        logger.warning(
            "helm template failed for %s (rc=%d): %s",
            chart.name,
            result.returncode,
            result.stderr or "(no stderr)",
        )
    return result
