"""Render plan loading, settings resolution and the parameter cascade.

- :func:`load_plan` — parse a render plan YAML into a :class:`RenderPlan`
- :func:`load_settings` — defaults, then environment, then explicit overrides
- :func:`resolve_parameters` — plan defaults overlaid with release parameters
- :func:`get_effective_parameter` — release → plan defaults → fallback
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from helm_overlays.charts.values import deep_merge
from helm_overlays.config.models import PlanFile, ReleaseSpec, RenderPlan, RenderSettings

logger = logging.getLogger(__name__)

ENV_TEMPLATE_DIR = "HELM_OVERLAYS_TEMPLATE_DIR"
ENV_OUTPUT_DIR = "HELM_OVERLAYS_OUTPUT_DIR"
ENV_STRICT = "HELM_OVERLAYS_STRICT"

_TRUTHY = {"1", "true", "yes", "on"}


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_plan(path: str | Path) -> RenderPlan:
    """Load and validate a render plan YAML file.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValueError: If the file has no ``render_plan`` mapping.
        pydantic.ValidationError: If the plan does not match the schema.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Render plan not found: {path}")
    with open(path, encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, dict) or not isinstance(raw.get("render_plan"), dict):
        raise ValueError(f"{path}: expected a top-level 'render_plan' mapping")
    plan = PlanFile.model_validate(raw).render_plan
    logger.debug("Loaded plan %s with %d release(s)", plan.name, len(plan.releases))
    return plan


def _env_flag(name: str) -> Optional[bool]:
    raw = os.environ.get(name, "")
    if not raw:
        return None
    return raw.strip().lower() in _TRUTHY


def load_settings(
    *,
    template_dir: Optional[str | Path] = None,
    output_dir: Optional[str | Path] = None,
    strict: Optional[bool] = None,
) -> RenderSettings:
    """Resolve settings: explicit argument, then environment, then default."""
    values: Dict[str, Any] = {}

    env_template_dir = os.environ.get(ENV_TEMPLATE_DIR, "")
    if template_dir is not None:
        values["template_dir"] = Path(template_dir)
    elif env_template_dir:
        values["template_dir"] = Path(env_template_dir)

    env_output_dir = os.environ.get(ENV_OUTPUT_DIR, "")
    if output_dir is not None:
        values["output_dir"] = Path(output_dir)
    elif env_output_dir:
        values["output_dir"] = Path(env_output_dir)

    env_strict = _env_flag(ENV_STRICT)
    if strict is not None:
        values["strict"] = strict
    elif env_strict is not None:
        values["strict"] = env_strict

    settings = RenderSettings(**values)
    if settings.template_dir is not None and not settings.template_dir.is_dir():
        raise FileNotFoundError(f"Template directory not found: {settings.template_dir}")
    return settings


# ---------------------------------------------------------------------------
# Parameter cascade
# ---------------------------------------------------------------------------

def resolve_parameters(plan: RenderPlan, release: ReleaseSpec) -> Dict[str, Any]:
    """Plan defaults overlaid with the release's own parameters.

    Nested maps merge, so a release can override one key of a shared
    block (``identity.namespace``) and keep the rest.
    """
    return deep_merge(plan.defaults, release.parameters)


def get_effective_parameter(
    plan: RenderPlan,
    release: ReleaseSpec,
    key: str,
    fallback: Any = None,
) -> Any:
    """Return the effective value of the top-level parameter *key*.

    Cascade: ``release.parameters[key]`` → ``plan.defaults[key]`` → *fallback*.
    """
    if release.parameters.get(key) is not None:
        return release.parameters[key]
    if plan.defaults.get(key) is not None:
        return plan.defaults[key]
    return fallback
