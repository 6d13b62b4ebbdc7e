"""Jinja2 template engine for values overlays and manifests.

Templates use ``{{ variable }}`` substitution and ``{%- control %}``
blocks.  The environment is strict: a variable missing from the context
fails the render instead of silently producing an empty string, so a
rendered file is either complete or not written at all.

Rendering is **text-level**: YAML key ordering and comments in the
template are preserved byte-for-byte, and identical inputs always give
identical output.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import jinja2
import yaml

logger = logging.getLogger(__name__)

# ── constants ────────────────────────────────────────────────────────

#: Bundled template library shipped with the package.
TEMPLATE_DIR: Path = Path(__file__).resolve().parent.parent / "templates"

#: Marker identifying a file that must go through the engine.
TEMPLATE_MARKER = ".j2"


class TemplateRenderError(RuntimeError):
    """A template could not be rendered (undefined variable, bad syntax...)."""

    def __init__(self, template: str, cause: Exception) -> None:
        self.template = template
        self.cause = cause
        super().__init__(f"{template}: {type(cause).__name__}: {cause}")


# ── filters ──────────────────────────────────────────────────────────


def _b64encode(value: Any) -> str:
    return base64.b64encode(str(value).encode("utf-8")).decode("ascii")


def _quote(value: Any) -> str:
    # JSON string escaping is a valid double-quoted YAML scalar
    return json.dumps(str(value))


def _to_yaml(value: Any) -> str:
    return yaml.safe_dump(value, default_flow_style=False, sort_keys=False).rstrip("\n")


FILTERS = {
    "b64encode": _b64encode,
    "quote": _quote,
    "to_yaml": _to_yaml,
}


# ── public API ───────────────────────────────────────────────────────


def build_environment(
    search_path: Optional[Iterable[Path]] = None,
) -> jinja2.Environment:
    """Return the strict Jinja2 environment used for every render.

    Parameters
    ----------
    search_path:
        Extra directories searched **before** the bundled
        :data:`TEMPLATE_DIR`.
    """
    paths = [str(p) for p in (search_path or [])]
    paths.append(str(TEMPLATE_DIR))
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(paths),
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
    env.filters.update(FILTERS)
    return env


def render_template(
    template_text: str,
    context: Mapping[str, Any],
    *,
    name: str = "<string>",
    env: Optional[jinja2.Environment] = None,
) -> str:
    """Render *template_text* against *context*.

    Parameters
    ----------
    template_text:
        Raw template content.
    context:
        Template variables.
    name:
        Label used in error messages.
    env:
        Environment override (defaults to :func:`build_environment`).

    Returns
    -------
    str
        The rendered text.

    Raises
    ------
    TemplateRenderError
        If the template references an undefined variable, has a syntax
        error, or a filter fails.
    """
    env = env or build_environment()
    try:
        return env.from_string(template_text).render(**context)
    except jinja2.TemplateError as exc:
        logger.debug("Render of %s failed", name, exc_info=True)
        raise TemplateRenderError(name, exc) from exc


def render_file(
    path: str | Path,
    context: Mapping[str, Any],
    *,
    env: Optional[jinja2.Environment] = None,
) -> str:
    """Render the template file at *path*.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    TemplateRenderError
        Propagated from :func:`render_template`.
    """
    src = Path(path)
    if not src.is_file():
        raise FileNotFoundError(f"Template not found: {path}")
    return render_template(
        src.read_text(encoding="utf-8"), context, name=str(src), env=env
    )


def render_named(
    name: str,
    context: Mapping[str, Any],
    *,
    env: Optional[jinja2.Environment] = None,
) -> str:
    """Render a template by its path relative to the search path.

    Raises
    ------
    FileNotFoundError
        If no search path holds *name*.
    TemplateRenderError
        On any other engine failure.
    """
    env = env or build_environment()
    try:
        template = env.get_template(name)
    except jinja2.TemplateNotFound as exc:
        raise FileNotFoundError(f"Template not found: {name}") from exc
    except jinja2.TemplateError as exc:
        raise TemplateRenderError(name, exc) from exc
    try:
        return template.render(**context)
    except jinja2.TemplateError as exc:
        logger.debug("Render of %s failed", name, exc_info=True)
        raise TemplateRenderError(name, exc) from exc


def is_template(path: str | Path) -> bool:
    """True when *path* carries the ``.j2`` marker (``values.j2.yaml``)."""
    name = Path(path).name
    return f"{TEMPLATE_MARKER}." in name or name.endswith(TEMPLATE_MARKER)


def rendered_name(path: str | Path) -> str:
    """Strip the ``.j2`` marker: ``values.j2.yaml`` becomes ``values.yaml``."""
    name = Path(path).name
    if name.endswith(TEMPLATE_MARKER):
        return name[: -len(TEMPLATE_MARKER)]
    return name.replace(f"{TEMPLATE_MARKER}.", ".", 1)


def list_templates(root: Optional[Path] = None) -> list[str]:
    """Relative paths of every file under *root* (default: bundled library)."""
    base = root or TEMPLATE_DIR
    return sorted(
        p.relative_to(base).as_posix() for p in base.rglob("*") if p.is_file()
    )


def sha256_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def sha256_file(path: str | Path) -> str:
    return hashlib.sha256(Path(path).read_bytes()).hexdigest()
