"""Template rendering for values overlays and manifests."""

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
    sha256_file,
    sha256_text,
)
from helm_overlays.render.workspace import RenderedFile, render_tree, write_rendered

__all__ = [
    "TEMPLATE_DIR",
    "RenderedFile",
    "TemplateRenderError",
    "build_environment",
    "is_template",
    "list_templates",
    "render_file",
    "render_named",
    "render_template",
    "render_tree",
    "rendered_name",
    "sha256_file",
    "sha256_text",
    "write_rendered",
]
