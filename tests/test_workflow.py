"""Tests for the render, validate, drift and deploy workflows."""

from __future__ import annotations

from unittest.mock import patch

import pytest
import yaml

from helm_overlays.charts.helm import HelmResult
from helm_overlays.config.loader import load_plan, load_settings
from helm_overlays.state.models import RenderRecord
from helm_overlays.state.store import config_dir, load_render_record
from helm_overlays.workflow.render_plan import (
    EXIT_DRIFT,
    EXIT_RENDER_FAILURE,
    EXIT_SUCCESS,
    EXIT_TOOLCHAIN,
    EXIT_VALIDATION_FAILURE,
    deploy_charts,
    execute_drift,
    execute_render,
    release_values,
    render_digests,
    resolve_template,
    run_drift_workflow,
    run_render_workflow,
    run_validate_only,
    template_roots,
)

BAD_SECRET = """\
apiVersion: v1
kind: Secret
metadata:
  name: creds
stringData:
  token: abc
"""


@pytest.fixture()
def out_dir(tmp_path):
    return tmp_path / "out"


@pytest.fixture()
def settings(out_dir):
    return load_settings(output_dir=out_dir)


@pytest.fixture()
def override_dir(tmp_path):
    root = tmp_path / "library"
    (root / "local").mkdir(parents=True)
    (root / "local" / "secret.yaml").write_text(BAD_SECRET, encoding="utf-8")
    return root


def _static(name, template):
    return {"name": name, "kind": "static", "template": template}


# ── Exit code constants ─────────────────────────────────────────────────


class TestExitCodes:
    def test_values(self):
        assert (
            EXIT_SUCCESS,
            EXIT_VALIDATION_FAILURE,
            EXIT_RENDER_FAILURE,
            EXIT_DRIFT,
            EXIT_TOOLCHAIN,
        ) == (0, 1, 2, 3, 4)


# ── Module exports ──────────────────────────────────────────────────────


class TestWorkflowExports:
    def test_exports(self):
        import helm_overlays.workflow as wf

        for name in (
            "execute_render",
            "run_render_workflow",
            "run_validate_only",
            "run_drift_workflow",
            "deploy_charts",
            "release_values",
            "exit_code_for",
        ):
            assert hasattr(wf, name)


# ── Template resolution ─────────────────────────────────────────────────


class TestTemplateResolution:
    def test_override_dir_searched_first(self, override_dir, settings):
        custom = load_settings(template_dir=override_dir)
        assert template_roots(custom)[0] == override_dir
        assert resolve_template("local/secret.yaml", custom).parent.parent == override_dir

    def test_bundled_fallback(self, settings):
        path = resolve_template("common/bootstrap/chart_values/grafana.yaml", settings)
        assert path.is_file()

    def test_missing(self, settings):
        with pytest.raises(FileNotFoundError):
            resolve_template("nope/values.j2.yaml", settings)


# ── execute_render ──────────────────────────────────────────────────────


class TestExecuteRender:
    def test_fixture_plan(self, plan_path, settings, out_dir):
        outcome = execute_render(plan_path, settings)
        assert outcome.exit_code == EXIT_SUCCESS
        assert [o.release for o in outcome.releases] == [
            "redis-main",
            "nginx-ingress",
            "storage-classes",
            "karpenter",
            "grafana",
        ]
        assert (out_dir / "redis-main" / "values.yaml").is_file()
        assert (out_dir / "nginx-ingress" / "ingress-nginx.yaml").is_file()
        assert (out_dir / "karpenter" / "templates" / "nodepool.yaml").is_file()
        assert (out_dir / "grafana" / "grafana.yaml").is_file()

    def test_charts_attached(self, plan_path, settings, out_dir):
        outcome = execute_render(plan_path, settings)
        charts = {o.release: o.chart for o in outcome.releases}
        assert charts["storage-classes"] is None
        redis = charts["redis-main"]
        assert redis.path == "bitnami/redis"
        assert redis.version == "18.6.1"
        assert redis.target_namespace == "z-a1b2c3d4"
        assert redis.values_files == [str(out_dir.resolve() / "redis-main" / "values.yaml")]
        assert charts["karpenter"].path == str(out_dir.resolve() / "karpenter")
        assert (out_dir / "karpenter" / "Chart.yaml").is_file()
        assert charts["karpenter"].values_files == []
        assert charts["grafana"].uncovered_placeholders() == []

    def test_preset_timeout_kept(self, plan_path, settings):
        charts = {o.release: o.chart for o in execute_render(plan_path, settings).releases}
        assert charts["nginx-ingress"].timeout_in_seconds == 300
        assert charts["redis-main"].timeout_in_seconds == 600

    def test_plan_timeout_overrides_preset(self, write_plan, sample_plan, settings):
        sample_plan["render_plan"]["releases"][1]["chart"]["timeout_in_seconds"] = 900
        outcome = execute_render(write_plan(sample_plan["render_plan"]), settings)
        charts = {o.release: o.chart for o in outcome.releases}
        assert charts["nginx-ingress"].timeout_in_seconds == 900

    def test_state_written(self, plan_path, settings, out_dir):
        outcome = execute_render(plan_path, settings)
        assert outcome.record_path.parent == config_dir()
        assert outcome.report_path.is_file()
        record = load_render_record(outcome.record_path)
        assert record.plan_name == "prod-eu"
        assert record.run_id == outcome.report.run_id
        assert record.validation_report_path == str(outcome.report_path)
        paths = set(record.artifact_map())
        assert "karpenter/templates/stablenodepool.yaml" in paths
        artifact = record.artifact_map()["karpenter/templates/nodepool.yaml"]
        assert artifact.template == (
            "aws/bootstrap/charts/karpenter-configuration/templates/nodepool.j2.yaml"
        )
        assert record.artifact_map()["grafana/grafana.yaml"].rendered is False

    def test_no_state(self, plan_path, settings):
        outcome = execute_render(plan_path, settings, write_state=False)
        assert outcome.record_path is None
        assert list(config_dir().glob("*.json")) == []

    def test_only(self, plan_path, settings, out_dir):
        outcome = execute_render(plan_path, settings, only=["grafana"])
        assert [o.release for o in outcome.releases] == ["grafana"]
        assert not (out_dir / "redis-main").exists()
        assert outcome.record.releases == ["grafana"]

    def test_only_unknown_release(self, plan_path, settings):
        with pytest.raises(KeyError, match="nope"):
            execute_render(plan_path, settings, only=["nope"])

    def test_rerender_replaces_release_dir(self, plan_path, settings, out_dir):
        execute_render(plan_path, settings)
        stale = out_dir / "grafana" / "stale.yaml"
        stale.write_text("a: 1\n", encoding="utf-8")
        execute_render(plan_path, settings)
        assert not stale.exists()

    def test_deterministic(self, plan_path, settings):
        first = execute_render(plan_path, settings, write_state=False).record
        second = execute_render(plan_path, settings, write_state=False).record
        assert [a.sha256 for a in first.artifacts] == [a.sha256 for a in second.artifacts]
        assert first.context_sha256 == second.context_sha256

    def test_digests_idempotent(self, plan_path, settings):
        plan = load_plan(plan_path)
        first = render_digests(plan, settings)
        assert first == render_digests(plan, settings)
        assert "karpenter/templates/nodepool.yaml" in first
        assert "nginx-ingress/ingress-nginx.yaml" in first


# ── run_render_workflow ─────────────────────────────────────────────────


class TestRunRenderWorkflow:
    def test_success(self, plan_path, out_dir):
        assert run_render_workflow(plan_path, output_dir=out_dir) == EXIT_SUCCESS

    def test_render_error_publishes_nothing(self, write_plan, out_dir):
        path = write_plan(
            {
                "name": "broken",
                "releases": [
                    _static("grafana", "common/bootstrap/chart_values/grafana.yaml"),
                    _static("missing", "nope/values.yaml"),
                ],
            }
        )
        assert run_render_workflow(path, output_dir=out_dir) == EXIT_RENDER_FAILURE
        assert not out_dir.exists()

    def test_missing_plan(self, tmp_path, out_dir):
        rc = run_render_workflow(tmp_path / "nope.yaml", output_dir=out_dir)
        assert rc == EXIT_RENDER_FAILURE

    def test_context_error(self, write_plan, out_dir):
        path = write_plan(
            {
                "name": "bad-context",
                "releases": [
                    {
                        "name": "redis",
                        "kind": "database",
                        "template": "aws/chart_values/redis/values.j2.yaml",
                        "parameters": {"kind": "redis"},
                    }
                ],
            }
        )
        assert run_render_workflow(path, output_dir=out_dir) == EXIT_RENDER_FAILURE

    def test_validation_failure(self, write_plan, override_dir, out_dir):
        path = write_plan({"name": "local", "releases": [_static("creds", "local/secret.yaml")]})
        rc = run_render_workflow(path, output_dir=out_dir, template_dir=override_dir)
        assert rc == EXIT_VALIDATION_FAILURE
        # validation failures still publish the output
        assert (out_dir / "creds" / "secret.yaml").is_file()

    def test_strict_fails_on_placeholders(self, write_plan, out_dir):
        path = write_plan(
            {
                "name": "loose",
                "releases": [_static("grafana", "common/bootstrap/chart_values/grafana.yaml")],
            }
        )
        assert run_render_workflow(path, output_dir=out_dir) == EXIT_SUCCESS
        assert run_render_workflow(path, output_dir=out_dir, strict=True) == (
            EXIT_VALIDATION_FAILURE
        )


# ── run_validate_only ───────────────────────────────────────────────────


class TestRunValidateOnly:
    def test_rendered_tree(self, plan_path, settings, out_dir):
        execute_render(plan_path, settings, write_state=False)
        assert run_validate_only([out_dir]) == EXIT_SUCCESS

    def test_failure(self, override_dir):
        assert run_validate_only([override_dir]) == EXIT_VALIDATION_FAILURE

    def test_missing_path(self, tmp_path):
        assert run_validate_only([tmp_path / "missing"]) == EXIT_RENDER_FAILURE

    def test_report_written(self, override_dir):
        run_validate_only([override_dir], write_state=True, plan_name="adhoc")
        assert len(list(config_dir().glob("validate_adhoc_*.json"))) == 1


# ── Drift ───────────────────────────────────────────────────────────────


class TestDrift:
    def test_clean(self, plan_path, settings):
        outcome = execute_render(plan_path, settings)
        assert run_drift_workflow(outcome.record_path) == EXIT_SUCCESS

    def test_edited_file(self, plan_path, settings, out_dir):
        outcome = execute_render(plan_path, settings)
        (out_dir / "grafana" / "grafana.yaml").write_text("edited: true\n", encoding="utf-8")
        assert run_drift_workflow(outcome.record_path) == EXIT_DRIFT

    def test_rerender_clean(self, plan_path, settings):
        outcome = execute_render(plan_path, settings)
        report = execute_drift(outcome.record_path, rerender=True)
        assert [c for c in report.checks if c.id.startswith("render.")]
        assert not report.has_drift

    def test_rerender_after_plan_change(self, plan_path, settings, sample_plan):
        outcome = execute_render(plan_path, settings)
        sample_plan["render_plan"]["releases"][0]["parameters"]["password"] = "rotated"
        plan_path.write_text(yaml.safe_dump(sample_plan), encoding="utf-8")
        report = execute_drift(outcome.record_path, rerender=True)
        drifted = [c.id for c in report.checks if c.status.value == "DRIFTED"]
        assert drifted == ["render.redis-main/values.yaml"]

    def test_rerender_after_partial_render(self, plan_path, settings):
        outcome = execute_render(plan_path, settings, only=["redis-main"])
        report = execute_drift(outcome.record_path, rerender=True)
        assert not report.has_drift
        assert not report.has_errors
        rendered = [c.id for c in report.checks if c.id.startswith("render.")]
        assert rendered == ["render.redis-main/values.yaml"]

    def test_missing_record(self, tmp_path):
        assert run_drift_workflow(tmp_path / "nope.json") == EXIT_RENDER_FAILURE


# ── release_values ──────────────────────────────────────────────────────


class TestReleaseValues:
    def test_chart_release(self, plan_path, settings):
        merged = release_values(plan_path, "redis-main", settings)
        assert merged["master"]["persistence"]["size"] == "10Gi"

    def test_preset_release(self, plan_path, settings):
        merged = release_values(plan_path, "grafana", settings)
        assert merged["adminUser"] == "admin"
        assert merged["persistence"]["storageClassName"] == "aws-ebs-gp2-0"

    def test_release_without_chart(self, plan_path, settings):
        assert release_values(plan_path, "storage-classes", settings) == {}

    def test_unknown_release(self, plan_path, settings):
        with pytest.raises(KeyError):
            release_values(plan_path, "nope", settings)

    def test_nothing_published(self, plan_path, settings, out_dir):
        release_values(plan_path, "grafana", settings)
        assert not out_dir.exists()


# ── deploy_charts ───────────────────────────────────────────────────────


class TestDeployCharts:
    @pytest.fixture()
    def outcome(self, plan_path, settings):
        return execute_render(plan_path, settings, write_state=False)

    @patch("helm_overlays.workflow.render_plan.helm_available", return_value=False)
    def test_helm_missing(self, _avail, outcome):
        assert deploy_charts(outcome) == EXIT_TOOLCHAIN

    @patch("helm_overlays.workflow.render_plan.upgrade_install")
    @patch("helm_overlays.workflow.render_plan.helm_available", return_value=True)
    def test_every_chart_deployed(self, _avail, mock_upgrade, outcome):
        mock_upgrade.return_value = HelmResult(command="helm", returncode=0, success=True)
        assert deploy_charts(outcome, kubeconfig="/k", dry_run=True) == EXIT_SUCCESS
        names = [c.args[0].name for c in mock_upgrade.call_args_list]
        assert names == ["redis-main", "nginx-ingress", "karpenter-configuration", "grafana"]
        assert mock_upgrade.call_args.kwargs == {"kubeconfig": "/k", "dry_run": True}

    @patch("helm_overlays.workflow.render_plan.upgrade_install")
    @patch("helm_overlays.workflow.render_plan.helm_available", return_value=True)
    def test_stops_on_failure(self, _avail, mock_upgrade, outcome):
        mock_upgrade.return_value = HelmResult(command="helm", returncode=1)
        assert deploy_charts(outcome) == EXIT_RENDER_FAILURE
        assert mock_upgrade.call_count == 1

    def test_no_charts(self, write_plan, out_dir):
        path = write_plan(
            {
                "name": "plain",
                "releases": [_static("grafana", "common/bootstrap/chart_values/grafana.yaml")],
            }
        )
        outcome = execute_render(path, load_settings(output_dir=out_dir), write_state=False)
        assert deploy_charts(outcome) == EXIT_SUCCESS


def test_record_json_roundtrip(plan_path, settings):
    outcome = execute_render(plan_path, settings)
    text = outcome.record_path.read_text(encoding="utf-8")
    assert RenderRecord.model_validate_json(text) == outcome.record
