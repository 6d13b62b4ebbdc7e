"""Grafana bootstrap chart on top of the static ``grafana.yaml`` overlay."""

from __future__ import annotations

from helm_overlays.charts.models import ChartInfo, HelmChartNamespace

CHART_NAME = "grafana"
CHART_PATH = "grafana/grafana"
VALUES_FILE = "common/bootstrap/chart_values/grafana.yaml"


class GrafanaChart:
    """Supply the admin credentials and storage class left to the engine."""

    def __init__(
        self,
        *,
        admin_user: str,
        admin_password: str,
        storage_class_name: str,
        values_file: str = VALUES_FILE,
        chart_path: str = CHART_PATH,
    ) -> None:
        if not admin_password:
            raise ValueError("grafana admin password must not be empty")
        self.admin_user = admin_user
        self.admin_password = admin_password
        self.storage_class_name = storage_class_name
        self.values_file = values_file
        self.chart_path = chart_path

    def to_chart_info(self) -> ChartInfo:
        chart = ChartInfo(
            name=CHART_NAME,
            path=self.chart_path,
            namespace=HelmChartNamespace.PROMETHEUS,
            values_files=[self.values_file],
        )
        chart.set_value("adminUser", self.admin_user)
        chart.set_value("adminPassword", self.admin_password)
        chart.set_value("persistence.storageClassName", self.storage_class_name)
        return chart
