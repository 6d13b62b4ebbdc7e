"""Orchestration workflows (render, validate, drift, deploy)."""

from helm_overlays.workflow.render_plan import (
    EXIT_DRIFT,
    EXIT_RENDER_FAILURE,
    EXIT_SUCCESS,
    EXIT_TOOLCHAIN,
    EXIT_VALIDATION_FAILURE,
    ReleaseOutput,
    RenderOutcome,
    deploy_charts,
    execute_drift,
    execute_render,
    exit_code_for,
    release_values,
    render_all,
    run_drift_workflow,
    run_render_workflow,
    run_validate_only,
)

__all__ = [
    "EXIT_DRIFT",
    "EXIT_RENDER_FAILURE",
    "EXIT_SUCCESS",
    "EXIT_TOOLCHAIN",
    "EXIT_VALIDATION_FAILURE",
    "ReleaseOutput",
    "RenderOutcome",
    "deploy_charts",
    "execute_drift",
    "execute_render",
    "exit_code_for",
    "release_values",
    "render_all",
    "run_drift_workflow",
    "run_render_workflow",
    "run_validate_only",
]
