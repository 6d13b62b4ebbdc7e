"""Karpenter configuration chart (the ``default`` and ``stable`` NodePools)."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

from helm_overlays.charts.models import ChartInfo, HelmChartNamespace
from helm_overlays.context.cluster import KarpenterContext
from helm_overlays.render.engine import TEMPLATE_DIR
from helm_overlays.render.workspace import RenderedFile, render_tree

CHART_NAME = "karpenter-configuration"
TEMPLATE_PATH = "aws/bootstrap/charts/karpenter-configuration"


class KarpenterConfigurationChart:
    """NodePool manifests rendered from :class:`KarpenterContext`.

    The chart ships already-rendered templates, so the release carries no
    values files.
    """

    def __init__(self, context: Optional[KarpenterContext] = None) -> None:
        self.context = context or KarpenterContext()

    def template_context(self) -> Dict[str, Any]:
        return self.context.to_template_context()

    def render(
        self,
        dest_dir: str | Path,
        *,
        template_root: Path = TEMPLATE_DIR,
    ) -> List[RenderedFile]:
        """Render the chart directory into *dest_dir*."""
        return render_tree(template_root / TEMPLATE_PATH, dest_dir, self.template_context())

    def to_chart_info(self, rendered_path: str | Path) -> ChartInfo:
        return ChartInfo(
            name=CHART_NAME,
            path=str(rendered_path),
            namespace=HelmChartNamespace.KUBE_SYSTEM,
        )
