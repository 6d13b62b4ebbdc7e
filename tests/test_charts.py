"""Tests for chart descriptions and the bootstrap chart presets."""

from __future__ import annotations

import re
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from helm_overlays.charts import (
    ChartInfo,
    ChartPreset,
    ChartSetValue,
    CustomerHelmChartOverride,
    GrafanaChart,
    HelmChartNamespace,
    IngressNginxChart,
    KarpenterConfigurationChart,
    build_chart_info,
)
from helm_overlays.context.cluster import KarpenterContext
from helm_overlays.context.registry import ReleaseKind, build_context
from helm_overlays.context.resources import ResourceRequirements
from helm_overlays.render.engine import TEMPLATE_DIR, render_file

GRAFANA_VALUES = TEMPLATE_DIR / "common/bootstrap/chart_values/grafana.yaml"


@pytest.fixture()
def ingress_values(tmp_path) -> Path:
    text = render_file(
        TEMPLATE_DIR / "aws-ec2/bootstrap/chart_values/ingress-nginx.j2.yaml",
        build_context(ReleaseKind.INGRESS_NGINX, {}),
    )
    dest = tmp_path / "ingress-nginx.yaml"
    dest.write_text(text, encoding="utf-8")
    return dest


def _set(chart: ChartInfo) -> dict:
    return {v.key: v.value for v in chart.values}


# ---------------------------------------------------------------------------
# ChartSetValue / ChartInfo
# ---------------------------------------------------------------------------


class TestChartSetValue:
    def test_invalid_key(self):
        with pytest.raises(ValidationError):
            ChartSetValue(key="a..b", value="1")

    def test_to_arg_escapes_commas(self):
        assert ChartSetValue(key="a", value="x,y").to_arg() == "a=x\\,y"

    def test_normalized_key(self):
        v = ChartSetValue(key="a.b\\.c", value="1")
        assert v.normalized_key == "a.b\\.c"


class TestChartInfo:
    def test_defaults(self):
        chart = ChartInfo(name="demo", path="charts/demo")
        assert chart.target_namespace == "default"
        assert chart.timeout_in_seconds == 600
        assert chart.atomic and chart.wait and chart.create_namespace

    def test_custom_namespace_wins(self):
        chart = ChartInfo(
            name="demo",
            path="x",
            namespace=HelmChartNamespace.LOGGING,
            custom_namespace="team-a",
        )
        assert chart.target_namespace == "team-a"

    def test_timeout_positive(self):
        with pytest.raises(ValidationError):
            ChartInfo(name="demo", path="x", timeout_in_seconds=0)

    def test_set_value_bool_lowered(self):
        chart = ChartInfo(name="demo", path="x").set_value("a.enabled", True)
        assert chart.values[0].value == "true"

    def test_merged_values_layers(self, tmp_path):
        (tmp_path / "one.yaml").write_text("a: 1\nb: {c: 1}\n", encoding="utf-8")
        chart = ChartInfo(
            name="demo",
            path="x",
            values_files=["one.yaml"],
            yaml_files_content=["b: {d: 2}\n"],
        ).set_value("a", 5)
        merged = chart.merged_values(chart_defaults={"z": 0}, base_dir=tmp_path)
        assert merged == {"z": 0, "a": 5, "b": {"c": 1, "d": 2}}

    def test_uncovered_placeholders(self):
        chart = ChartInfo(name="grafana", path="x", values_files=[str(GRAFANA_VALUES)])
        assert chart.uncovered_placeholders() == [
            "adminPassword",
            "adminUser",
            "persistence.storageClassName",
        ]


# ---------------------------------------------------------------------------
# ingress-nginx
# ---------------------------------------------------------------------------


class TestIngressNginxChart:
    def test_chart_info(self, ingress_values):
        chart = IngressNginxChart(str(ingress_values), enable_real_ip=True).to_chart_info()
        assert chart.name == "nginx-ingress"
        assert chart.target_namespace == "nginx-ingress"
        assert chart.timeout_in_seconds == 300
        values = _set(chart)
        assert values["controller.admissionWebhooks.enabled"] == "false"
        assert values["controller.metrics.enabled"] == "false"
        assert values["controller.config.enable-real-ip"] == "true"
        assert values["controller.resources.limits.memory"] == "768Mi"
        assert values["defaultBackend.resources.requests.cpu"] == "10m"

    def test_all_placeholders_covered(self, ingress_values):
        chart = IngressNginxChart(str(ingress_values), enable_real_ip=False).to_chart_info()
        assert chart.uncovered_placeholders() == []

    def test_real_ip_left_open(self, ingress_values):
        chart = IngressNginxChart(str(ingress_values)).to_chart_info()
        assert chart.uncovered_placeholders() == ["controller.config.enable-real-ip"]

    def test_external_dns_hostname_escaped(self, ingress_values):
        chart = IngressNginxChart(
            str(ingress_values), external_dns_hostname="*.c0ffee.example.com"
        ).to_chart_info()
        merged = chart.merged_values()
        annotations = merged["controller"]["service"]["annotations"]
        assert annotations["external-dns.alpha.kubernetes.io/hostname"] == "*.c0ffee.example.com"

    def test_custom_resources(self, ingress_values):
        res = ResourceRequirements(
            cpu_request_in_milli=200,
            cpu_limit_in_milli=1000,
            ram_request_in_mib=512,
            ram_limit_in_mib=1024,
        )
        chart = IngressNginxChart(str(ingress_values), controller_resources=res).to_chart_info()
        assert _set(chart)["controller.resources.limits.cpu"] == "1000m"

    def test_customer_override_wins_over_file(self, ingress_values):
        override = CustomerHelmChartOverride(
            chart_name="ingress-nginx", chart_values="controller:\n  replicaCount: 3\n"
        )
        chart = IngressNginxChart(
            str(ingress_values), customer_override=override
        ).to_chart_info()
        assert chart.merged_values()["controller"]["replicaCount"] == 3


# ---------------------------------------------------------------------------
# Grafana / Karpenter
# ---------------------------------------------------------------------------


class TestGrafanaChart:
    def test_covers_placeholders(self):
        chart = GrafanaChart(
            admin_user="admin",
            admin_password="pw",
            storage_class_name="aws-ebs-gp2-0",
            values_file=str(GRAFANA_VALUES),
        ).to_chart_info()
        assert chart.target_namespace == "prometheus"
        assert chart.uncovered_placeholders() == []
        assert chart.merged_values()["persistence"]["storageClassName"] == "aws-ebs-gp2-0"

    def test_empty_password_rejected(self):
        with pytest.raises(ValueError, match="password"):
            GrafanaChart(admin_user="admin", admin_password="", storage_class_name="x")


class TestKarpenterChart:
    def test_render_and_chart_info(self, tmp_path):
        chart = KarpenterConfigurationChart(KarpenterContext(spot_enabled=True))
        files = chart.render(tmp_path / "karpenter")
        names = sorted(f.path.name for f in files)
        assert names == ["Chart.yaml", "nodepool.yaml", "stablenodepool.yaml"]
        by_name = {f.path.name: f.path for f in files}
        pool = yaml.safe_load(by_name["nodepool.yaml"].read_text(encoding="utf-8"))
        assert pool["kind"] == "NodePool"
        info = chart.to_chart_info(tmp_path / "karpenter")
        assert info.target_namespace == "kube-system"
        assert info.values_files == []

    def test_default_context(self):
        assert KarpenterConfigurationChart().context == KarpenterContext()

# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------


class TestBuildChartInfo:
    def test_karpenter(self, tmp_path):
        info = build_chart_info(ChartPreset.KARPENTER, release_dir=tmp_path, values_files=[])
        assert info.path == str(tmp_path)
        assert info.name == "karpenter-configuration"
        assert info == KarpenterConfigurationChart().to_chart_info(tmp_path)

    def test_karpenter_rejects_options(self, tmp_path):
        with pytest.raises(ValueError, match="Invalid options"):
            build_chart_info(
                ChartPreset.KARPENTER,
                release_dir=tmp_path,
                values_files=[],
                options={"spot_enabled": True},
            )

    def test_values_preset_needs_file(self, tmp_path):
        with pytest.raises(ValueError, match="needs a rendered values file"):
            build_chart_info(ChartPreset.GRAFANA, release_dir=tmp_path, values_files=[])

    def test_ingress_options(self, tmp_path, ingress_values):
        info = build_chart_info(
            ChartPreset.INGRESS_NGINX,
            release_dir=tmp_path,
            values_files=[str(ingress_values)],
            options={
                "enable_real_ip": True,
                "controller_resources": {
                    "cpu_request_in_milli": 100,
                    "cpu_limit_in_milli": 300,
                    "ram_request_in_mib": 128,
                    "ram_limit_in_mib": 256,
                },
                "customer_override": "controller:\n  replicaCount: 2\n",
            },
        )
        assert _set(info)["controller.resources.limits.cpu"] == "300m"
        assert info.yaml_files_content == ["controller:\n  replicaCount: 2\n"]

    def test_unknown_option(self, tmp_path, ingress_values):
        with pytest.raises(ValueError, match="Invalid options"):
            build_chart_info(
                ChartPreset.INGRESS_NGINX,
                release_dir=tmp_path,
                values_files=[str(ingress_values)],
                options={"bogus": 1},
            )

    def test_grafana(self, tmp_path):
        info = build_chart_info(
            ChartPreset.GRAFANA,
            release_dir=tmp_path,
            values_files=[str(GRAFANA_VALUES)],
            options={"admin_user": "a", "admin_password": "b", "storage_class_name": "c"},
        )
        assert info.values_files == [str(GRAFANA_VALUES)]
        assert info.uncovered_placeholders() == []


class TestPresetChartPaths:
    """A preset chart path is either ``repo/chart`` or a local chart directory."""

    @pytest.fixture()
    def release_dirs(self, tmp_path, ingress_values):
        karpenter_dir = tmp_path / "karpenter"
        KarpenterConfigurationChart().render(karpenter_dir)
        return {
            ChartPreset.INGRESS_NGINX: (tmp_path, [str(ingress_values)], {}),
            ChartPreset.GRAFANA: (
                tmp_path,
                [str(GRAFANA_VALUES)],
                {"admin_user": "a", "admin_password": "b", "storage_class_name": "c"},
            ),
            ChartPreset.KARPENTER: (karpenter_dir, [], {}),
        }

    @pytest.mark.parametrize("preset", list(ChartPreset))
    def test_chart_path_resolves(self, preset, release_dirs):
        release_dir, values_files, options = release_dirs[preset]
        info = build_chart_info(
            preset, release_dir=release_dir, values_files=values_files, options=options
        )
        local = Path(info.path)
        if local.is_absolute():
            assert (local / "Chart.yaml").is_file()
        else:
            assert re.fullmatch(r"[a-z0-9-]+/[a-z0-9-]+", info.path), info.path
            assert not (TEMPLATE_DIR / info.path).exists()

    def test_repo_references(self):
        ingress = IngressNginxChart("values.yaml")
        assert ingress.to_chart_info().path == "ingress-nginx/ingress-nginx"
        grafana = GrafanaChart(admin_user="a", admin_password="b", storage_class_name="c")
        assert grafana.to_chart_info().path == "grafana/grafana"
