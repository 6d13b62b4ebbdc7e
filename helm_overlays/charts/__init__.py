"""Helm chart descriptions, values layering and the helm CLI wrapper."""

from helm_overlays.charts.grafana import GrafanaChart
from helm_overlays.charts.helm import (
    HELM_NOT_FOUND_RC,
    HelmResult,
    helm_available,
    template,
    upgrade_install,
)
from helm_overlays.charts.ingress_nginx import (
    CustomerHelmChartOverride,
    IngressNginxChart,
)
from helm_overlays.charts.karpenter import KarpenterConfigurationChart
from helm_overlays.charts.models import ChartInfo, ChartSetValue, HelmChartNamespace
from helm_overlays.charts.registry import ChartPreset, build_chart_info
from helm_overlays.charts.values import (
    ENGINE_PLACEHOLDER,
    compose_values,
    deep_merge,
    find_engine_placeholders,
    flatten_values,
    load_values_file,
    set_path,
)

__all__ = [
    "ENGINE_PLACEHOLDER",
    "HELM_NOT_FOUND_RC",
    "ChartInfo",
    "ChartPreset",
    "ChartSetValue",
    "CustomerHelmChartOverride",
    "GrafanaChart",
    "HelmChartNamespace",
    "HelmResult",
    "IngressNginxChart",
    "KarpenterConfigurationChart",
    "build_chart_info",
    "compose_values",
    "deep_merge",
    "find_engine_placeholders",
    "flatten_values",
    "helm_available",
    "load_values_file",
    "set_path",
    "template",
    "upgrade_install",
]
