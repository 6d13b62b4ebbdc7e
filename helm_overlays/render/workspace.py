"""Render a chart or values directory into a workspace.

Files carrying the ``.j2`` marker are rendered and renamed; every other
file is copied verbatim.  Nothing is written when any template fails, so
a workspace never holds a half-rendered chart.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import jinja2

from helm_overlays.render.engine import (
    build_environment,
    is_template,
    render_file,
    rendered_name,
    sha256_file,
    sha256_text,
)

logger = logging.getLogger(__name__)


@dataclass
class RenderedFile:
    """One file written to the workspace."""

    source: str
    path: Path
    sha256: str
    size: int
    rendered: bool = True


def _plan_tree(src: Path, dest: Path) -> List[tuple[Path, Path, bool]]:
    plan = []
    for path in sorted(p for p in src.rglob("*") if p.is_file()):
        rel = path.relative_to(src)
        if is_template(path):
            plan.append((path, dest / rel.parent / rendered_name(path), True))
        else:
            plan.append((path, dest / rel, False))
    return plan


def render_tree(
    src_dir: str | Path,
    dest_dir: str | Path,
    context: Mapping[str, Any],
    *,
    env: Optional[jinja2.Environment] = None,
) -> List[RenderedFile]:
    """Render every template under *src_dir* into *dest_dir*.

    Returns
    -------
    list[RenderedFile]
        Written files, sorted by source path.

    Raises
    ------
    FileNotFoundError
        If *src_dir* is not a directory.
    TemplateRenderError
        On the first template that fails; nothing is written in that case.
    """
    src = Path(src_dir)
    if not src.is_dir():
        raise FileNotFoundError(f"Template directory not found: {src_dir}")
    dest = Path(dest_dir)
    env = env or build_environment([src])

    # render everything in memory first
    outputs: Dict[Path, str] = {}
    plan = _plan_tree(src, dest)
    for source, target, templated in plan:
        if templated:
            outputs[target] = render_file(source, context, env=env)

    written: List[RenderedFile] = []
    for source, target, templated in plan:
        target.parent.mkdir(parents=True, exist_ok=True)
        if templated:
            target.write_text(outputs[target], encoding="utf-8")
        else:
            shutil.copy2(str(source), str(target))
        written.append(
            RenderedFile(
                source=source.relative_to(src).as_posix(),
                path=target,
                sha256=sha256_file(target),
                size=target.stat().st_size,
                rendered=templated,
            )
        )
    logger.info("Rendered %d file(s) from %s into %s", len(written), src, dest)
    return written


def write_rendered(
    text: str,
    dest: str | Path,
    *,
    source: str,
) -> RenderedFile:
    """Write already-rendered *text* to *dest* and describe it."""
    path = Path(dest)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return RenderedFile(
        source=source,
        path=path,
        sha256=sha256_text(text),
        size=path.stat().st_size,
    )
