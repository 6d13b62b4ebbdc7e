"""Tests for the Jinja2 render engine and workspace rendering."""

from __future__ import annotations

import pytest

from helm_overlays.render.engine import (
    TEMPLATE_DIR,
    TemplateRenderError,
    build_environment,
    is_template,
    list_templates,
    render_file,
    render_named,
    render_template,
    rendered_name,
    sha256_text,
)
from helm_overlays.render.workspace import render_tree, write_rendered


# ---------------------------------------------------------------------------
# render_template
# ---------------------------------------------------------------------------


class TestRenderTemplate:
    def test_substitution(self):
        assert render_template("name: {{ name }}\n", {"name": "x"}) == "name: x\n"

    def test_trailing_newline_kept(self):
        assert render_template("a: 1\n", {}).endswith("\n")

    def test_undefined_variable_fails(self):
        with pytest.raises(TemplateRenderError, match="missing"):
            render_template("a: {{ missing }}", {}, name="t.yaml")

    def test_syntax_error_fails(self):
        with pytest.raises(TemplateRenderError):
            render_template("{% for x in %}", {})

    def test_error_carries_template_name(self):
        with pytest.raises(TemplateRenderError) as exc_info:
            render_template("{{ nope }}", {}, name="values.j2.yaml")
        assert exc_info.value.template == "values.j2.yaml"

    def test_deterministic(self):
        tpl = "{% for k, v in m.items() %}{{ k }}={{ v }};{% endfor %}"
        ctx = {"m": {"b": 2, "a": 1}}
        assert render_template(tpl, ctx) == render_template(tpl, ctx)


class TestFilters:
    def test_b64encode(self):
        assert render_template("{{ v | b64encode }}", {"v": "abc"}) == "YWJj"

    def test_quote_escapes(self):
        out = render_template("{{ v | quote }}", {"v": 'say "hi"'})
        assert out == '"say \\"hi\\""'

    def test_quote_non_string(self):
        assert render_template("{{ v | quote }}", {"v": 42}) == '"42"'

    def test_to_yaml(self):
        out = render_template("{{ v | to_yaml }}", {"v": {"b": 1, "a": [1, 2]}})
        assert out == "b: 1\na:\n- 1\n- 2"


# ---------------------------------------------------------------------------
# Files and names
# ---------------------------------------------------------------------------


class TestNames:
    @pytest.mark.parametrize(
        "name, templated, rendered",
        [
            ("values.j2.yaml", True, "values.yaml"),
            ("nodepool.j2.yaml", True, "nodepool.yaml"),
            ("config.j2", True, "config"),
            ("grafana.yaml", False, "grafana.yaml"),
        ],
    )
    def test_marker(self, name, templated, rendered):
        assert is_template(name) is templated
        assert rendered_name(name) == rendered


class TestRenderFile:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            render_file(tmp_path / "nope.j2.yaml", {})

    def test_renders(self, tmp_path):
        src = tmp_path / "a.j2.yaml"
        src.write_text("x: {{ x }}\n", encoding="utf-8")
        assert render_file(src, {"x": 1}) == "x: 1\n"

    def test_render_named_search_path(self, tmp_path):
        (tmp_path / "custom.j2.yaml").write_text("v: {{ v }}\n", encoding="utf-8")
        env = build_environment([tmp_path])
        assert render_named("custom.j2.yaml", {"v": "ok"}, env=env) == "v: ok\n"

    def test_render_named_missing(self):
        with pytest.raises(FileNotFoundError):
            render_named("does/not/exist.j2.yaml", {})

    def test_override_dir_shadows_bundled(self, tmp_path):
        rel = "common/bootstrap/chart_values/grafana.yaml"
        shadow = tmp_path / rel
        shadow.parent.mkdir(parents=True)
        shadow.write_text("replaced: true\n", encoding="utf-8")
        env = build_environment([tmp_path])
        assert render_named(rel, {}, env=env) == "replaced: true\n"


class TestListTemplates:
    def test_bundled_library(self):
        names = list_templates()
        assert "aws/chart_values/redis/values.j2.yaml" in names
        assert "common/bootstrap/chart_values/grafana.yaml" in names
        assert names == sorted(names)

    def test_custom_root(self, tmp_path):
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "a.yaml").write_text("", encoding="utf-8")
        assert list_templates(tmp_path) == ["sub/a.yaml"]

    def test_template_dir_exists(self):
        assert TEMPLATE_DIR.is_dir()


# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


class TestRenderTree:
    def _chart(self, root):
        (root / "templates").mkdir(parents=True)
        (root / "Chart.yaml").write_text("name: demo\n", encoding="utf-8")
        (root / "templates" / "cm.j2.yaml").write_text(
            "name: {{ name }}\n", encoding="utf-8"
        )
        return root

    def test_renders_and_copies(self, tmp_path):
        src = self._chart(tmp_path / "src")
        files = render_tree(src, tmp_path / "out", {"name": "demo"})
        by_source = {f.source: f for f in files}
        assert set(by_source) == {"Chart.yaml", "templates/cm.j2.yaml"}
        assert by_source["Chart.yaml"].rendered is False
        rendered = by_source["templates/cm.j2.yaml"]
        assert rendered.path == tmp_path / "out" / "templates" / "cm.yaml"
        assert rendered.path.read_text(encoding="utf-8") == "name: demo\n"
        assert rendered.sha256 == sha256_text("name: demo\n")

    def test_nothing_written_on_failure(self, tmp_path):
        src = self._chart(tmp_path / "src")
        (src / "templates" / "bad.j2.yaml").write_text("{{ undefined }}", encoding="utf-8")
        with pytest.raises(TemplateRenderError):
            render_tree(src, tmp_path / "out", {"name": "demo"})
        assert not (tmp_path / "out").exists()

    def test_missing_source(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            render_tree(tmp_path / "nope", tmp_path / "out", {})


class TestWriteRendered:
    def test_writes_and_hashes(self, tmp_path):
        rf = write_rendered("a: 1\n", tmp_path / "x" / "values.yaml", source="v.j2.yaml")
        assert rf.path.read_text(encoding="utf-8") == "a: 1\n"
        assert rf.size == 5
        assert rf.sha256 == sha256_text("a: 1\n")
        assert rf.rendered is True
