"""Pydantic models for render plans and runtime settings.

A render plan lists the releases to render::

    render_plan:
      name: prod-eu
      defaults:
        <key>: <value>          # merged under every release's parameters
      releases:
        - name: redis-main
          kind: database
          template: aws/chart_values/redis/values.j2.yaml
          parameters: {...}
          chart:                # optional, the Helm release fed by the output
            path: bitnami/redis
            namespace: default
            set_values: {...}
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from helm_overlays.charts.models import HelmChartNamespace
from helm_overlays.charts.registry import ChartPreset
from helm_overlays.context.identity import sanitize_name
from helm_overlays.context.registry import ReleaseKind

#: Output directory used when neither the CLI nor the environment sets one.
DEFAULT_OUTPUT_DIR = "rendered"


class ReleaseChart(BaseModel):
    """Helm release consuming a rendered release.

    With a ``preset`` the chart description comes from the matching chart
    class (``options`` are its keyword arguments); ``set_values`` are
    appended either way.
    """

    name: Optional[str] = None
    path: str = ""
    preset: Optional[ChartPreset] = None
    options: Dict[str, Any] = Field(default_factory=dict)
    namespace: HelmChartNamespace = HelmChartNamespace.DEFAULT
    custom_namespace: Optional[str] = None
    version: Optional[str] = None
    # None keeps the preset (or Helm) default
    timeout_in_seconds: Optional[int] = Field(default=None, gt=0)
    set_values: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _path_or_preset(self) -> "ReleaseChart":
        if not self.path and self.preset is None:
            raise ValueError("chart needs a path or a preset")
        return self


class ReleaseSpec(BaseModel):
    """One template (file or chart directory) rendered with one context."""

    name: str
    kind: ReleaseKind
    template: str
    parameters: Dict[str, Any] = Field(default_factory=dict)
    chart: Optional[ReleaseChart] = None

    @field_validator("name")
    @classmethod
    def _dns_label(cls, value: str) -> str:
        if sanitize_name(value) != value:
            raise ValueError(
                f"release name {value!r} must be a DNS label (try {sanitize_name(value)!r})"
            )
        return value

    @field_validator("template")
    @classmethod
    def _relative_template(cls, value: str) -> str:
        path = Path(value)
        if path.is_absolute() or ".." in path.parts:
            raise ValueError("template must be relative to the template library")
        return value


class RenderPlan(BaseModel):
    """Body of the ``render_plan:`` key."""

    name: str
    defaults: Dict[str, Any] = Field(default_factory=dict)
    releases: List[ReleaseSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_release_names(self) -> "RenderPlan":
        seen: set[str] = set()
        dupes: set[str] = set()
        for release in self.releases:
            if release.name in seen:
                dupes.add(release.name)
            seen.add(release.name)
        if dupes:
            raise ValueError(f"duplicate release names: {', '.join(sorted(dupes))}")
        return self

    def release(self, name: str) -> ReleaseSpec:
        """Return the release called *name*.

        Raises:
            KeyError: If the plan has no such release.
        """
        for release in self.releases:
            if release.name == name:
                return release
        raise KeyError(f"No release named {name!r} in plan {self.name!r}")


class PlanFile(BaseModel):
    """Root model wrapping the ``render_plan:`` key."""

    render_plan: RenderPlan


class RenderSettings(BaseModel):
    """Where templates come from, where output goes and how strict checks are.

    ``strict`` turns validation warnings into failures.
    """

    template_dir: Optional[Path] = None
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    strict: bool = False
