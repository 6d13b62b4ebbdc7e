"""Tests for render plan loading, settings and the parameter cascade."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from helm_overlays.charts.registry import ChartPreset
from helm_overlays.config import (
    ENV_OUTPUT_DIR,
    ENV_STRICT,
    ENV_TEMPLATE_DIR,
    ReleaseChart,
    ReleaseSpec,
    RenderPlan,
    get_effective_parameter,
    load_plan,
    load_settings,
    resolve_parameters,
)
from helm_overlays.context.registry import ReleaseKind


def _release(**kw) -> ReleaseSpec:
    defaults = dict(name="app", kind=ReleaseKind.STATIC, template="common/x.yaml")
    defaults.update(kw)
    return ReleaseSpec(**defaults)


# ---------------------------------------------------------------------------
# load_plan
# ---------------------------------------------------------------------------


class TestLoadPlan:
    def test_fixture_plan(self, plan_path):
        plan = load_plan(plan_path)
        assert plan.name == "prod-eu"
        assert [r.name for r in plan.releases] == [
            "redis-main",
            "nginx-ingress",
            "storage-classes",
            "karpenter",
            "grafana",
        ]
        assert plan.release("grafana").chart.preset == ChartPreset.GRAFANA

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_plan(tmp_path / "nope.yaml")

    def test_missing_render_plan_key(self, tmp_path):
        path = tmp_path / "plan.yaml"
        path.write_text("releases: []\n", encoding="utf-8")
        with pytest.raises(ValueError, match="render_plan"):
            load_plan(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "plan.yaml"
        path.write_text("", encoding="utf-8")
        with pytest.raises(ValueError):
            load_plan(path)

    def test_unknown_kind(self, write_plan):
        path = write_plan(
            {"name": "p", "releases": [{"name": "a", "kind": "nope", "template": "x"}]}
        )
        with pytest.raises(ValidationError):
            load_plan(path)

    def test_unknown_release(self, plan_path):
        with pytest.raises(KeyError):
            load_plan(plan_path).release("missing")


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class TestReleaseSpec:
    def test_name_must_be_dns_label(self):
        with pytest.raises(ValidationError, match="my-app"):
            _release(name="My_App")

    @pytest.mark.parametrize("template", ["/etc/passwd", "../outside.yaml", "a/../../b"])
    def test_template_must_stay_in_library(self, template):
        with pytest.raises(ValidationError):
            _release(template=template)

    def test_chart_needs_path_or_preset(self):
        with pytest.raises(ValidationError, match="path or a preset"):
            ReleaseChart()
        assert ReleaseChart(path="bitnami/redis").preset is None
        assert ReleaseChart(preset="karpenter").preset == ChartPreset.KARPENTER

    def test_chart_timeout_positive(self):
        with pytest.raises(ValidationError):
            ReleaseChart(path="x", timeout_in_seconds=0)

    def test_chart_timeout_unset_by_default(self):
        assert ReleaseChart(path="x").timeout_in_seconds is None
        assert ReleaseChart(path="x", timeout_in_seconds=120).timeout_in_seconds == 120


class TestRenderPlan:
    def test_duplicate_release_names(self):
        with pytest.raises(ValidationError, match="duplicate release names: app"):
            RenderPlan(name="p", releases=[_release(), _release()])


# ---------------------------------------------------------------------------
# load_settings
# ---------------------------------------------------------------------------


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings()
        assert settings.template_dir is None
        assert settings.output_dir == Path("rendered")
        assert settings.strict is False

    def test_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv(ENV_TEMPLATE_DIR, str(tmp_path))
        monkeypatch.setenv(ENV_OUTPUT_DIR, str(tmp_path / "out"))
        monkeypatch.setenv(ENV_STRICT, "yes")
        settings = load_settings()
        assert settings.template_dir == tmp_path
        assert settings.output_dir == tmp_path / "out"
        assert settings.strict is True

    def test_explicit_wins_over_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv(ENV_OUTPUT_DIR, str(tmp_path / "env"))
        monkeypatch.setenv(ENV_STRICT, "1")
        settings = load_settings(output_dir=tmp_path / "cli", strict=False)
        assert settings.output_dir == tmp_path / "cli"
        assert settings.strict is False

    def test_strict_env_falsey(self, monkeypatch):
        monkeypatch.setenv(ENV_STRICT, "off")
        assert load_settings().strict is False

    def test_missing_template_dir(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(template_dir=tmp_path / "missing")


# ---------------------------------------------------------------------------
# Parameter cascade
# ---------------------------------------------------------------------------


class TestParameters:
    @pytest.fixture()
    def plan(self):
        return RenderPlan(
            name="p",
            defaults={"identity": {"namespace": "ns", "name": "x"}, "port": 1},
            releases=[_release(parameters={"identity": {"name": "y"}, "port": None})],
        )

    def test_resolve_merges_nested(self, plan):
        params = resolve_parameters(plan, plan.releases[0])
        assert params["identity"] == {"namespace": "ns", "name": "y"}

    def test_effective_parameter_cascade(self, plan):
        release = plan.releases[0]
        assert get_effective_parameter(plan, release, "identity") == {"name": "y"}
        assert get_effective_parameter(plan, release, "port") == 1
        assert get_effective_parameter(plan, release, "missing", "fb") == "fb"
