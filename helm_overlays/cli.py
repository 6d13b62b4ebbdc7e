"""CLI entry point for helm-overlays, built on typer.

Provides ``render``, ``validate``, ``values``, ``drift``, ``templates``
and ``deploy`` commands on top of the ``version`` and ``info`` built-ins
of :mod:`cli_core_yo`.

Usage::

    python -m helm_overlays --help
    python -m helm_overlays render plan.yaml --output-dir rendered
    python -m helm_overlays validate rendered/
    python -m helm_overlays values plan.yaml nginx-ingress
    python -m helm_overlays drift --plan-name prod --rerender
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import typer
import yaml
from cli_core_yo import output
from cli_core_yo.app import create_app
from cli_core_yo.runtime import _reset, get_context, initialize
from cli_core_yo.spec import CliSpec, XdgSpec

from helm_overlays import ui

# ── App specification ────────────────────────────────────────────────────────

spec = CliSpec(
    prog_name="helm-overlays",
    app_display_name="Helm Overlays",
    dist_name="helm-overlays",
    root_help=(
        "Render Helm chart value overlays and Kubernetes manifests "
        "from a plan of deployment parameters."
    ),
    xdg=XdgSpec(app_dir_name="helm-overlays"),
)

app = create_app(spec)


def _configure_logging(debug: bool) -> None:
    if debug:
        logging.basicConfig(level=logging.DEBUG)


def _json_mode() -> bool:
    return get_context().json_mode


# ── Root callback (global options) ───────────────────────────────────────────


@app.callback()
def _root_callback(
    json_flag: bool = typer.Option(
        False, "--json", "-j", help="Output as JSON."
    ),
) -> None:
    """Helm chart value overlays and manifest templates."""
    _reset()
    debug = os.environ.get("CLI_CORE_YO_DEBUG") == "1"
    xdg_paths = app._cli_core_yo_xdg_paths  # type: ignore[attr-defined]
    initialize(spec, xdg_paths, json_mode=json_flag, debug=debug)


# ── render command ───────────────────────────────────────────────────────────


@app.command()
def render(
    plan: Path = typer.Argument(..., help="Path to the render plan YAML."),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output-dir",
        "-o",
        help="Directory that receives <release>/ trees. Default: ./rendered",
    ),
    template_dir: Optional[Path] = typer.Option(
        None,
        "--template-dir",
        help="Extra template root searched before the bundled library.",
    ),
    strict: Optional[bool] = typer.Option(
        None,
        "--strict/--no-strict",
        help="Treat validation warnings as failures.",
    ),
    release: Optional[List[str]] = typer.Option(
        None,
        "--release",
        "-r",
        help="Render only this release. Can be specified multiple times.",
    ),
    no_state: bool = typer.Option(
        False,
        "--no-state",
        help="Do not write the render record and validation report.",
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug output."),
) -> None:
    """Render every release of a plan, then validate the output.

    Exit codes: 0 = ok, 1 = validation failed, 2 = render error.

    Environment variables:
      HELM_OVERLAYS_TEMPLATE_DIR   Default for --template-dir.
      HELM_OVERLAYS_OUTPUT_DIR     Default for --output-dir.
      HELM_OVERLAYS_STRICT         Set to 1 to fail on warnings.
    """
    from helm_overlays.config.loader import load_settings
    from helm_overlays.workflow.render_plan import (
        EXIT_RENDER_FAILURE,
        RENDER_ERRORS,
        execute_render,
    )

    _configure_logging(debug)

    try:
        settings = load_settings(
            template_dir=template_dir, output_dir=output_dir, strict=strict
        )
        outcome = execute_render(
            plan, settings, only=release or None, write_state=not no_state
        )
    except RENDER_ERRORS as exc:
        output.error(f"Render failed: {exc}")
        raise typer.Exit(EXIT_RENDER_FAILURE) from exc

    if _json_mode():
        output.emit_json(outcome.record.model_dump(mode="json"))
        raise typer.Exit(outcome.exit_code)

    ui.phase("RENDER")
    for out in outcome.releases:
        output.success(f"{out.release} ({len(out.files)} file(s)) from {out.template}")
    ui.phase("VALIDATE")
    ui.check_summary(outcome.report.checks)
    if outcome.record_path is not None:
        output.detail(f"record: {outcome.record_path}")

    if outcome.exit_code == 0:
        ui.success_panel(
            "Rendered",
            f"Plan '{outcome.plan.name}' written to {outcome.record.output_dir}",
        )
    else:
        ui.error_panel(
            "Validation failed",
            f"{len(outcome.report.failed_checks)} failure(s), "
            f"{len(outcome.report.warned_checks)} warning(s)",
        )
    raise typer.Exit(outcome.exit_code)


# ── validate command ─────────────────────────────────────────────────────────


@app.command()
def validate(
    paths: List[Path] = typer.Argument(
        ..., help="Rendered files or directories (walked for *.yaml)."
    ),
    strict: bool = typer.Option(
        False, "--strict", help="Treat validation warnings as failures."
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug output."),
) -> None:
    """Validate rendered YAML without rendering anything.

    Exit codes: 0 = ok, 1 = validation failed, 2 = missing path.
    """
    from helm_overlays.validate.checks import collect_yaml_files, validate_files
    from helm_overlays.workflow.render_plan import EXIT_RENDER_FAILURE, exit_code_for

    _configure_logging(debug)

    try:
        files = [f for p in paths for f in collect_yaml_files(p)]
        report = validate_files(files)
    except FileNotFoundError as exc:
        output.error(str(exc))
        raise typer.Exit(EXIT_RENDER_FAILURE) from exc

    if _json_mode():
        output.emit_json(report.model_dump(mode="json"))
    else:
        ui.phase("VALIDATE")
        output.detail(f"{len(report.files)} file(s)")
        ui.check_summary(report.checks)
    raise typer.Exit(exit_code_for(report, strict=strict))


# ── values command ───────────────────────────────────────────────────────────


@app.command()
def values(
    plan: Path = typer.Argument(..., help="Path to the render plan YAML."),
    release: str = typer.Argument(..., help="Release name within the plan."),
    template_dir: Optional[Path] = typer.Option(
        None,
        "--template-dir",
        help="Extra template root searched before the bundled library.",
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug output."),
) -> None:
    """Print the merged values Helm would receive for one release."""
    from helm_overlays.config.loader import load_settings
    from helm_overlays.workflow.render_plan import (
        EXIT_RENDER_FAILURE,
        RENDER_ERRORS,
        release_values,
    )

    _configure_logging(debug)

    try:
        settings = load_settings(template_dir=template_dir)
        merged = release_values(plan, release, settings)
    except RENDER_ERRORS as exc:
        output.error(f"Cannot compute values for {release}: {exc}")
        raise typer.Exit(EXIT_RENDER_FAILURE) from exc

    if _json_mode():
        output.emit_json(merged)
    else:
        ui.raw(yaml.safe_dump(merged, default_flow_style=False, sort_keys=True))


# ── drift command ────────────────────────────────────────────────────────────


@app.command()
def drift(
    record: Optional[Path] = typer.Option(
        None,
        "--record",
        help="Render record JSON. Default: the latest record.",
    ),
    plan_name: Optional[str] = typer.Option(
        None,
        "--plan-name",
        help="Pick the latest record of this plan.",
    ),
    rerender: bool = typer.Option(
        False,
        "--rerender",
        help="Also render the plan again and compare the digests.",
    ),
    template_dir: Optional[Path] = typer.Option(
        None,
        "--template-dir",
        help="Extra template root used by --rerender.",
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug output."),
) -> None:
    """Check rendered output for drift against a previous run's record.

    Exit codes: 0 = no drift, 3 = drift detected, 2 = error.
    """
    from helm_overlays.state.store import latest_render_record
    from helm_overlays.workflow.render_plan import (
        EXIT_DRIFT,
        EXIT_RENDER_FAILURE,
        EXIT_SUCCESS,
        RENDER_ERRORS,
        execute_drift,
    )

    _configure_logging(debug)

    record_path = record or latest_render_record(plan_name)
    if record_path is None:
        output.error("No render record found; run 'helm-overlays render' first.")
        raise typer.Exit(EXIT_RENDER_FAILURE)

    try:
        report = execute_drift(record_path, rerender=rerender, template_dir=template_dir)
    except RENDER_ERRORS as exc:
        output.error(f"Drift check failed: {exc}")
        raise typer.Exit(EXIT_RENDER_FAILURE) from exc

    if _json_mode():
        output.emit_json(report.to_dict())
    else:
        ui.phase("DRIFT")
        output.detail(f"record: {record_path}")
        ui.drift_table(report.checks)

    if report.has_errors:
        output.error("Drift check hit errors.")
        raise typer.Exit(EXIT_RENDER_FAILURE)
    if report.has_drift:
        output.warning("Drift detected.")
        raise typer.Exit(EXIT_DRIFT)
    output.success("No drift detected.")
    raise typer.Exit(EXIT_SUCCESS)


# ── templates command ────────────────────────────────────────────────────────


@app.command()
def templates(
    template_dir: Optional[Path] = typer.Option(
        None,
        "--template-dir",
        help="List this directory instead of the bundled library.",
    ),
) -> None:
    """List the available templates."""
    from helm_overlays.render.engine import list_templates

    if template_dir is not None and not template_dir.is_dir():
        output.error(f"Template directory not found: {template_dir}")
        raise typer.Exit(2)

    names = list_templates(template_dir)
    if _json_mode():
        output.emit_json(names)
        return
    for name in names:
        ui.raw(name)


# ── deploy command ───────────────────────────────────────────────────────────


@app.command()
def deploy(
    plan: Path = typer.Argument(..., help="Path to the render plan YAML."),
    kubeconfig: Optional[str] = typer.Option(
        None,
        "--kubeconfig",
        help="Kubeconfig passed to helm as KUBECONFIG.",
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Pass --dry-run to helm upgrade."
    ),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-o", help="Directory that receives the render."
    ),
    template_dir: Optional[Path] = typer.Option(
        None,
        "--template-dir",
        help="Extra template root searched before the bundled library.",
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug output."),
) -> None:
    """Render a plan, then ``helm upgrade --install`` every release with a chart.

    Exit codes: 0 = ok, 1 = validation failed, 2 = render or helm error,
    4 = helm not installed.
    """
    from helm_overlays.config.loader import load_settings
    from helm_overlays.workflow.render_plan import (
        EXIT_RENDER_FAILURE,
        EXIT_SUCCESS,
        RENDER_ERRORS,
        deploy_charts,
        execute_render,
    )

    _configure_logging(debug)

    try:
        settings = load_settings(template_dir=template_dir, output_dir=output_dir)
        outcome = execute_render(plan, settings)
    except RENDER_ERRORS as exc:
        output.error(f"Render failed: {exc}")
        raise typer.Exit(EXIT_RENDER_FAILURE) from exc

    if outcome.exit_code != EXIT_SUCCESS:
        ui.check_summary(outcome.report.checks)
        output.error("Validation failed; nothing deployed.")
        raise typer.Exit(outcome.exit_code)

    output.action(f"Deploying plan '{outcome.plan.name}' ...")
    rc = deploy_charts(outcome, kubeconfig=kubeconfig, dry_run=dry_run)
    if rc == EXIT_SUCCESS:
        output.success("Deployed" if not dry_run else "Dry run passed")
    else:
        output.error(f"Deploy failed (exit {rc})")
    raise typer.Exit(rc)


# ── Entry point ──────────────────────────────────────────────────────────────


def main() -> int:
    """Run the CLI and return an exit code."""
    try:
        app()
        return 0
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 0


if __name__ == "__main__":
    sys.exit(main())
