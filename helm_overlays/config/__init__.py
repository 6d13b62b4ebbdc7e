"""Render plan loading, settings and the parameter cascade."""

from helm_overlays.config.loader import (
    ENV_OUTPUT_DIR,
    ENV_STRICT,
    ENV_TEMPLATE_DIR,
    get_effective_parameter,
    load_plan,
    load_settings,
    resolve_parameters,
)
from helm_overlays.config.models import (
    DEFAULT_OUTPUT_DIR,
    PlanFile,
    ReleaseChart,
    ReleaseSpec,
    RenderPlan,
    RenderSettings,
)

__all__ = [
    "DEFAULT_OUTPUT_DIR",
    "ENV_OUTPUT_DIR",
    "ENV_STRICT",
    "ENV_TEMPLATE_DIR",
    "PlanFile",
    "ReleaseChart",
    "ReleaseSpec",
    "RenderPlan",
    "RenderSettings",
    "get_effective_parameter",
    "load_plan",
    "load_settings",
    "resolve_parameters",
]
