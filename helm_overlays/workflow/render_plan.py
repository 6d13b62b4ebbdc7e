"""Orchestrator for rendering a plan.

Implements the render pipeline:

1. **Load** — parse the plan and resolve settings.
2. **Render** — build each release's context and render its template
   (file or chart directory) into a staging directory.
3. **Publish** — replace ``<output_dir>/<release>/`` with the staged tree.
4. **Validate** — YAML and manifest checks over every published file.
5. **Record** — write the render record and the validation report.

Any render or context error aborts before anything is published.
"""

from __future__ import annotations

import json
import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

import jinja2
import pydantic
import yaml

from helm_overlays.charts.helm import helm_available, upgrade_install
from helm_overlays.charts.models import ChartInfo
from helm_overlays.charts.registry import build_chart_info
from helm_overlays.charts.values import compose_values, load_values_file
from helm_overlays.config.loader import load_plan, load_settings, resolve_parameters
from helm_overlays.config.models import ReleaseSpec, RenderPlan, RenderSettings
from helm_overlays.context.registry import build_context
from helm_overlays.render.engine import (
    TEMPLATE_DIR,
    TemplateRenderError,
    build_environment,
    is_template,
    render_file,
    rendered_name,
    sha256_file,
    sha256_text,
)
from helm_overlays.render.workspace import RenderedFile, render_tree, write_rendered
from helm_overlays.state.drift import DriftReport, run_drift_check
from helm_overlays.state.models import ArtifactRecord, RenderRecord, ValidationReport
from helm_overlays.state.store import (
    load_render_record,
    write_render_record,
    write_validation_report,
)
from helm_overlays.validate.checks import collect_yaml_files, validate_files

logger = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_VALIDATION_FAILURE = 1
EXIT_RENDER_FAILURE = 2
EXIT_DRIFT = 3
EXIT_TOOLCHAIN = 4

#: Errors that mean the plan, a context or a template is wrong.
RENDER_ERRORS = (
    TemplateRenderError,
    FileNotFoundError,
    ValueError,
    KeyError,
    pydantic.ValidationError,
    yaml.YAMLError,
)


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------


@dataclass
class ReleaseOutput:
    """What one release produced."""

    release: str
    template: str
    files: List[RenderedFile] = field(default_factory=list)
    chart: Optional[ChartInfo] = None
    context_sha256: str = ""

    @property
    def covered_placeholders(self) -> Set[str]:
        if self.chart is None:
            return set()
        return {v.normalized_key for v in self.chart.values}


@dataclass
class RenderOutcome:
    """Result of :func:`execute_render`."""

    plan: RenderPlan
    settings: RenderSettings
    releases: List[ReleaseOutput] = field(default_factory=list)
    record: Optional[RenderRecord] = None
    report: Optional[ValidationReport] = None
    record_path: Optional[Path] = None
    report_path: Optional[Path] = None

    @property
    def exit_code(self) -> int:
        if self.report is None:
            return EXIT_SUCCESS
        return exit_code_for(self.report, strict=self.settings.strict)


def exit_code_for(report: ValidationReport, *, strict: bool = False) -> int:
    """Map a validation report to the appropriate exit code."""
    if not report.passed:
        return EXIT_VALIDATION_FAILURE
    if strict and report.has_warnings:
        return EXIT_VALIDATION_FAILURE
    return EXIT_SUCCESS


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def template_roots(settings: RenderSettings) -> List[Path]:
    """Template search path: the override directory first, then the bundled library."""
    roots = [settings.template_dir] if settings.template_dir is not None else []
    return [*roots, TEMPLATE_DIR]


def resolve_template(template: str, settings: RenderSettings) -> Path:
    """Locate *template* (a file or a chart directory) on the search path.

    Raises:
        FileNotFoundError: If no root holds *template*.
    """
    for root in template_roots(settings):
        candidate = root / template
        if candidate.exists():
            return candidate
    raise FileNotFoundError(f"Template not found: {template}")


def _context_digest(context: Dict[str, Any]) -> str:
    return sha256_text(json.dumps(context, sort_keys=True, default=str))


def _chart_for(
    release: ReleaseSpec,
    release_dir: Path,
    files: List[RenderedFile],
) -> Optional[ChartInfo]:
    spec = release.chart
    if spec is None:
        return None
    # chart directories keep their manifests under templates/; values sit at the top
    values_files = [
        str(f.path)
        for f in files
        if f.path.suffix in (".yaml", ".yml")
        and f.path.parent == release_dir
        and f.path.name != "Chart.yaml"
    ]
    if spec.preset is not None:
        chart = build_chart_info(
            spec.preset,
            release_dir=release_dir,
            values_files=values_files,
            options=spec.options,
        )
    else:
        chart = ChartInfo(
            name=spec.name or release.name,
            path=spec.path,
            namespace=spec.namespace,
            values_files=values_files,
        )
    if spec.custom_namespace:
        chart.custom_namespace = spec.custom_namespace
    if spec.version:
        chart.version = spec.version
    if spec.timeout_in_seconds is not None:
        chart.timeout_in_seconds = spec.timeout_in_seconds
    for key, value in spec.set_values.items():
        chart.set_value(key, value)
    return chart


def render_release(
    plan: RenderPlan,
    release: ReleaseSpec,
    settings: RenderSettings,
    dest_root: Path,
    *,
    env: Optional[jinja2.Environment] = None,
) -> ReleaseOutput:
    """Render one release into ``<dest_root>/<release.name>/``."""
    context = build_context(release.kind, resolve_parameters(plan, release))
    source = resolve_template(release.template, settings)
    release_dir = dest_root / release.name
    env = env or build_environment(template_roots(settings))

    if source.is_dir():
        chart_env = build_environment([source, *template_roots(settings)])
        files = render_tree(source, release_dir, context, env=chart_env)
    elif is_template(source):
        text = render_file(source, context, env=env)
        target = release_dir / rendered_name(source)
        files = [write_rendered(text, target, source=release.template)]
    else:
        text = source.read_text(encoding="utf-8")
        written = write_rendered(text, release_dir / source.name, source=release.template)
        written.rendered = False
        files = [written]

    output = ReleaseOutput(
        release=release.name,
        template=release.template,
        files=files,
        context_sha256=_context_digest(context),
    )
    logger.info("Rendered release %s (%d file(s))", release.name, len(files))
    return output


def _relative(path: Path, root: Path) -> str:
    return path.relative_to(root).as_posix()


def _artifact_template(template: str, source: str) -> str:
    # files of a chart directory are recorded as <chart>/<file>
    if not source or source == template:
        return template
    return f"{template}/{source}"


def render_all(
    plan: RenderPlan,
    settings: RenderSettings,
    dest_root: Path,
    *,
    only: Optional[Iterable[str]] = None,
) -> List[ReleaseOutput]:
    """Render every release of *plan* (or the ones named in *only*)."""
    wanted = set(only) if only is not None else None
    env = build_environment(template_roots(settings))
    outputs = []
    for release in plan.releases:
        if wanted is not None and release.name not in wanted:
            continue
        outputs.append(render_release(plan, release, settings, dest_root, env=env))
    if wanted is not None:
        missing = wanted - {o.release for o in outputs}
        if missing:
            raise KeyError(f"Unknown release(s): {', '.join(sorted(missing))}")
    return outputs


def _publish(outputs: List[ReleaseOutput], staging: Path, output_dir: Path) -> None:
    """Move staged releases into *output_dir*, rewriting file paths."""
    output_dir.mkdir(parents=True, exist_ok=True)
    for out in outputs:
        target = output_dir / out.release
        if target.exists():
            shutil.rmtree(target)
        shutil.copytree(staging / out.release, target)
        for rendered in out.files:
            rendered.path = output_dir / _relative(rendered.path, staging)


def render_digests(
    plan: RenderPlan,
    settings: RenderSettings,
    *,
    only: Optional[Iterable[str]] = None,
) -> Dict[str, str]:
    """Render *plan* into a throwaway directory and return ``{path: sha256}``.

    *only* restricts the render to those releases, as in :func:`render_all`.
    """
    with tempfile.TemporaryDirectory(prefix="helm-overlays-") as tmp:
        root = Path(tmp)
        outputs = render_all(plan, settings, root, only=only)
        return {
            _relative(f.path, root): sha256_file(f.path)
            for out in outputs
            for f in out.files
        }


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def execute_render(
    plan_path: str | Path,
    settings: RenderSettings,
    *,
    only: Optional[Iterable[str]] = None,
    write_state: bool = True,
) -> RenderOutcome:
    """Load, render, publish, validate and record *plan_path*.

    Raises:
        FileNotFoundError, ValueError, pydantic.ValidationError,
        TemplateRenderError: On any plan, context or template error.
            Nothing is published in that case.
    """
    plan = load_plan(plan_path)
    outcome = RenderOutcome(plan=plan, settings=settings)
    output_dir = settings.output_dir.resolve()

    with tempfile.TemporaryDirectory(prefix="helm-overlays-") as tmp:
        staging = Path(tmp)
        outcome.releases = render_all(plan, settings, staging, only=only)
        _publish(outcome.releases, staging, output_dir)

    for out in outcome.releases:
        spec = plan.release(out.release)
        out.chart = _chart_for(spec, output_dir / out.release, out.files)

    covered: Dict[str, Set[str]] = {}
    yaml_files: List[Path] = []
    for out in outcome.releases:
        for rendered in out.files:
            if rendered.path.suffix in (".yaml", ".yml"):
                yaml_files.append(rendered.path)
                covered[str(rendered.path)] = out.covered_placeholders
    outcome.report = validate_files(
        yaml_files, plan_name=plan.name, covered_by_file=covered
    )

    outcome.record = RenderRecord(
        run_id=outcome.report.run_id,
        plan_name=plan.name,
        plan_path=str(Path(plan_path).resolve()),
        output_dir=str(output_dir),
        context_sha256=sha256_text(
            "".join(out.context_sha256 for out in outcome.releases)
        ),
        releases=[out.release for out in outcome.releases],
        artifacts=[
            ArtifactRecord(
                release=out.release,
                path=_relative(f.path, output_dir),
                template=_artifact_template(out.template, f.source),
                sha256=f.sha256,
                size=f.size,
                rendered=f.rendered,
            )
            for out in outcome.releases
            for f in out.files
        ],
    )

    if write_state:
        outcome.report_path = write_validation_report(outcome.report)
        outcome.record.validation_report_path = str(outcome.report_path)
        outcome.record_path = write_render_record(outcome.record)

    if outcome.exit_code == EXIT_SUCCESS:
        logger.info("Plan %s rendered into %s", plan.name, output_dir)
    else:
        for chk in outcome.report.failed_checks + outcome.report.warned_checks:
            logger.error("  [%s] %s: %s", chk.status.value, chk.id, chk.remediation)
    return outcome


def run_render_workflow(
    plan_path: str | Path,
    *,
    output_dir: Optional[str | Path] = None,
    template_dir: Optional[str | Path] = None,
    strict: Optional[bool] = None,
    write_state: bool = True,
) -> int:
    """Render a plan end to end and return an exit code.

    Returns ``EXIT_SUCCESS`` (0), ``EXIT_VALIDATION_FAILURE`` (1) when a
    check fails (or warns under *strict*), ``EXIT_RENDER_FAILURE`` (2) on
    plan, context or template errors.
    """
    try:
        settings = load_settings(
            template_dir=template_dir, output_dir=output_dir, strict=strict
        )
        outcome = execute_render(plan_path, settings, write_state=write_state)
    except RENDER_ERRORS as exc:
        logger.error("Render failed: %s", exc)
        return EXIT_RENDER_FAILURE
    return outcome.exit_code


def run_validate_only(
    paths: Iterable[str | Path],
    *,
    strict: bool = False,
    write_state: bool = False,
    plan_name: Optional[str] = None,
) -> int:
    """Validate already-rendered files (directories are walked for YAML).

    Returns ``EXIT_SUCCESS`` or ``EXIT_VALIDATION_FAILURE``;
    ``EXIT_RENDER_FAILURE`` when a path does not exist.
    """
    try:
        files = [f for p in paths for f in collect_yaml_files(p)]
    except FileNotFoundError as exc:
        logger.error("%s", exc)
        return EXIT_RENDER_FAILURE
    report = validate_files(files, plan_name=plan_name)
    if write_state:
        write_validation_report(report)
    return exit_code_for(report, strict=strict)


def execute_drift(
    record_path: str | Path,
    *,
    rerender: bool = False,
    template_dir: Optional[str | Path] = None,
) -> DriftReport:
    """Compare a render record with the disk and, optionally, a fresh render.

    Raises:
        FileNotFoundError: If the record (or, with *rerender*, its plan) is gone.
    """
    record = load_render_record(record_path)
    rendered = None
    if rerender:
        settings = load_settings(template_dir=template_dir, output_dir=record.output_dir)
        # a partial run is compared against the same subset
        rendered = render_digests(
            load_plan(record.plan_path), settings, only=record.releases or None
        )
    return run_drift_check(record, rendered=rendered)


def run_drift_workflow(
    record_path: str | Path,
    *,
    rerender: bool = False,
    template_dir: Optional[str | Path] = None,
) -> int:
    """Exit codes: 0 = no drift, 3 = drift detected, 2 = error."""
    try:
        report = execute_drift(record_path, rerender=rerender, template_dir=template_dir)
    except RENDER_ERRORS as exc:
        logger.error("Drift check failed: %s", exc)
        return EXIT_RENDER_FAILURE
    if report.has_errors:
        return EXIT_RENDER_FAILURE
    return EXIT_DRIFT if report.has_drift else EXIT_SUCCESS


def deploy_charts(
    outcome: RenderOutcome,
    *,
    kubeconfig: Optional[str] = None,
    dry_run: bool = False,
) -> int:
    """Run ``helm upgrade --install`` for every rendered release with a chart.

    Returns ``EXIT_TOOLCHAIN`` (4) when helm is not installed and
    ``EXIT_RENDER_FAILURE`` (2) when a release fails.
    """
    charts = [out.chart for out in outcome.releases if out.chart is not None]
    if not charts:
        logger.info("No release of plan %s declares a chart", outcome.plan.name)
        return EXIT_SUCCESS
    if not helm_available():
        logger.error("helm CLI not found on PATH")
        return EXIT_TOOLCHAIN
    for chart in charts:
        result = upgrade_install(chart, kubeconfig=kubeconfig, dry_run=dry_run)
        if result.binary_missing:
            return EXIT_TOOLCHAIN
        if not result.success:
            return EXIT_RENDER_FAILURE
    return EXIT_SUCCESS


def release_values(
    plan_path: str | Path,
    release_name: str,
    settings: RenderSettings,
) -> Dict[str, Any]:
    """Render one release into a throwaway directory and compute its values.

    For a release with a chart this is what Helm would see: the chart's
    local ``values.yaml`` (when the chart path is a directory), the
    rendered values files, inline overrides, then ``--set``.  Without a
    chart the rendered YAML files are simply layered in order.

    Raises:
        KeyError: If *release_name* is not in the plan.
    """
    plan = load_plan(plan_path)
    spec = plan.release(release_name)
    with tempfile.TemporaryDirectory(prefix="helm-overlays-") as tmp:
        root = Path(tmp)
        out = render_release(plan, spec, settings, root)
        chart = _chart_for(spec, root / spec.name, out.files)
        if chart is None:
            layers = [
                load_values_file(f.path)
                for f in out.files
                if f.path.suffix in (".yaml", ".yml") and f.path.parent == root / spec.name
            ]
            return compose_values(files=layers)
        defaults_file = Path(chart.path) / "values.yaml"
        defaults = load_values_file(defaults_file) if defaults_file.is_file() else None
        return chart.merged_values(chart_defaults=defaults)
