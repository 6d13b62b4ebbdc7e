"""Build a :class:`ChartInfo` for a release from a named preset."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from helm_overlays.charts.grafana import GrafanaChart
from helm_overlays.charts.ingress_nginx import CustomerHelmChartOverride, IngressNginxChart
from helm_overlays.charts.karpenter import KarpenterConfigurationChart
from helm_overlays.charts.models import ChartInfo
from helm_overlays.context.resources import ResourceRequirements


class ChartPreset(str, Enum):
    INGRESS_NGINX = "ingress_nginx"
    GRAFANA = "grafana"
    KARPENTER = "karpenter"


def _resources(raw: Optional[Mapping[str, Any]]) -> Optional[ResourceRequirements]:
    return ResourceRequirements.model_validate(dict(raw)) if raw else None


def build_chart_info(
    preset: ChartPreset,
    *,
    release_dir: Path,
    values_files: List[str],
    options: Optional[Mapping[str, Any]] = None,
) -> ChartInfo:
    """Return the chart description of *preset*.

    Parameters
    ----------
    release_dir:
        Directory the release was rendered into.
    values_files:
        Rendered values files of the release, in order.
    options:
        Preset-specific keyword arguments.

    Raises
    ------
    ValueError
        If a values-based preset gets no values file or an option is invalid.
    """
    opts: Dict[str, Any] = dict(options or {})
    if preset == ChartPreset.KARPENTER:
        if opts:
            raise ValueError(
                f"Invalid options for chart preset {preset.value}: {sorted(opts)}"
            )
        # the release dir already holds the rendered chart
        return KarpenterConfigurationChart().to_chart_info(release_dir)
    if not values_files:
        raise ValueError(f"Chart preset {preset.value} needs a rendered values file")
    try:
        if preset == ChartPreset.INGRESS_NGINX:
            override = opts.pop("customer_override", None)
            chart = IngressNginxChart(
                values_files[0],
                controller_resources=_resources(opts.pop("controller_resources", None)),
                default_backend_resources=_resources(
                    opts.pop("default_backend_resources", None)
                ),
                customer_override=(
                    CustomerHelmChartOverride(chart_name="ingress-nginx", chart_values=override)
                    if override
                    else None
                ),
                **opts,
            )
            return chart.to_chart_info()
        return GrafanaChart(values_file=values_files[0], **opts).to_chart_info()
    except TypeError as exc:
        # unknown keyword in the plan's chart options
        raise ValueError(f"Invalid options for chart preset {preset.value}: {exc}") from exc
