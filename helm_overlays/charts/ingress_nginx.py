"""ingress-nginx bootstrap chart."""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel

from helm_overlays.charts.models import ChartInfo, HelmChartNamespace
from helm_overlays.context.resources import ResourceRequirements

logger = logging.getLogger(__name__)

CHART_NAME = "ingress-nginx"
# release name kept from when the chart was called nginx-ingress
RELEASE_NAME = "nginx-ingress"
#: chart reference in the ingress-nginx Helm repository
CHART_PATH = "ingress-nginx/ingress-nginx"

#: Load balancer provisioning makes the first install slow.
TIMEOUT_IN_SECONDS = 300

DEFAULT_CONTROLLER_RESOURCES = ResourceRequirements(
    cpu_request_in_milli=100,
    cpu_limit_in_milli=500,
    ram_request_in_mib=768,
    ram_limit_in_mib=768,
)

DEFAULT_BACKEND_RESOURCES = ResourceRequirements(
    cpu_request_in_milli=10,
    cpu_limit_in_milli=20,
    ram_request_in_mib=32,
    ram_limit_in_mib=32,
)


class CustomerHelmChartOverride(BaseModel):
    """Raw values YAML a customer layers on top of a bootstrap chart."""

    chart_name: str
    chart_values: str = ""


class IngressNginxChart:
    """Build the :class:`ChartInfo` for ingress-nginx.

    Parameters
    ----------
    values_file:
        Rendered ``ingress-nginx.yaml`` overlay.
    controller_resources, default_backend_resources:
        ``None`` keeps the chart defaults above.
    metrics_history_enabled:
        Drives ``controller.metrics`` and its ServiceMonitor.
    enable_real_ip:
        Fills ``controller.config.enable-real-ip`` when the overlay
        leaves it to the engine.
    external_dns_hostname:
        Hostname annotation on the controller service.
    """

    def __init__(
        self,
        values_file: str,
        *,
        chart_path: str = CHART_PATH,
        controller_resources: Optional[ResourceRequirements] = None,
        default_backend_resources: Optional[ResourceRequirements] = None,
        metrics_history_enabled: bool = False,
        enable_real_ip: Optional[bool] = None,
        external_dns_hostname: Optional[str] = None,
        customer_override: Optional[CustomerHelmChartOverride] = None,
    ) -> None:
        self.values_file = values_file
        self.chart_path = chart_path
        self.controller_resources = controller_resources or DEFAULT_CONTROLLER_RESOURCES
        self.default_backend_resources = (
            default_backend_resources or DEFAULT_BACKEND_RESOURCES
        )
        self.metrics_history_enabled = metrics_history_enabled
        self.enable_real_ip = enable_real_ip
        self.external_dns_hostname = external_dns_hostname
        self.customer_override = customer_override

    def to_chart_info(self) -> ChartInfo:
        chart = ChartInfo(
            name=RELEASE_NAME,
            path=self.chart_path,
            namespace=HelmChartNamespace.NGINX_INGRESS,
            timeout_in_seconds=TIMEOUT_IN_SECONDS,
            values_files=[self.values_file],
        )
        chart.set_value("controller.admissionWebhooks.enabled", False)
        # metrics
        chart.set_value("controller.metrics.enabled", self.metrics_history_enabled)
        chart.set_value(
            "controller.metrics.serviceMonitor.enabled", self.metrics_history_enabled
        )
        if self.enable_real_ip is not None:
            chart.set_value("controller.config.enable-real-ip", self.enable_real_ip)
        if self.external_dns_hostname:
            chart.set_value(
                "controller.service.annotations."
                "external-dns\\.alpha\\.kubernetes\\.io/hostname",
                self.external_dns_hostname,
            )
        for prefix, res in (
            ("controller", self.controller_resources),
            ("defaultBackend", self.default_backend_resources),
        ):
            chart.set_value(f"{prefix}.resources.limits.cpu", res.limit_cpu)
            chart.set_value(f"{prefix}.resources.requests.cpu", res.request_cpu)
            chart.set_value(f"{prefix}.resources.limits.memory", res.limit_memory)
            chart.set_value(f"{prefix}.resources.requests.memory", res.request_memory)
        if self.customer_override is not None and self.customer_override.chart_values:
            chart.yaml_files_content.append(self.customer_override.chart_values)
        logger.debug("ingress-nginx chart: %d set value(s)", len(chart.values))
        return chart
