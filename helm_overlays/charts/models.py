"""Helm chart descriptions.

A :class:`ChartInfo` carries everything ``helm upgrade --install`` needs:
release name, chart path, namespace, values files, inline YAML overrides
and ``--set`` pairs.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from helm_overlays.charts.values import (
    compose_values,
    find_engine_placeholders,
    join_key,
    load_values_file,
    parse_values,
    split_key,
)

#: Helm's own default for ``--timeout``.
DEFAULT_TIMEOUT_IN_SECONDS = 600


class HelmChartNamespace(str, Enum):
    """Namespaces bootstrap charts are installed into."""

    DEFAULT = "default"
    KUBE_SYSTEM = "kube-system"
    PROMETHEUS = "prometheus"
    LOGGING = "logging"
    CERT_MANAGER = "cert-manager"
    NGINX_INGRESS = "nginx-ingress"
    QOVERY = "qovery"


class ChartSetValue(BaseModel):
    """One ``--set key=value`` pair."""

    key: str
    value: str

    @field_validator("key")
    @classmethod
    def _valid_key(cls, value: str) -> str:
        split_key(value)
        return value

    @property
    def normalized_key(self) -> str:
        return join_key(split_key(self.key))

    def to_arg(self) -> str:
        # helm splits --set on unescaped commas
        escaped = self.value.replace(",", "\\,")
        return f"{self.key}={escaped}"


class ChartInfo(BaseModel):
    """A Helm release to install or template."""

    name: str
    path: str
    namespace: HelmChartNamespace = HelmChartNamespace.DEFAULT
    custom_namespace: Optional[str] = None
    version: Optional[str] = None
    timeout_in_seconds: int = Field(default=DEFAULT_TIMEOUT_IN_SECONDS, gt=0)
    atomic: bool = True
    wait: bool = True
    create_namespace: bool = True
    values_files: List[str] = Field(default_factory=list)
    values: List[ChartSetValue] = Field(default_factory=list)
    yaml_files_content: List[str] = Field(default_factory=list)

    @property
    def target_namespace(self) -> str:
        return self.custom_namespace or self.namespace.value

    def set_value(self, key: str, value: Any) -> "ChartInfo":
        """Append a ``--set`` pair; booleans are written the way Helm reads them."""
        text = str(value).lower() if isinstance(value, bool) else str(value)
        self.values.append(ChartSetValue(key=key, value=text))
        return self

    def _resolve(self, path: str, base_dir: Optional[Path]) -> Path:
        p = Path(path)
        if base_dir is not None and not p.is_absolute():
            return base_dir / p
        return p

    def file_layers(self, base_dir: Optional[Path] = None) -> List[Dict[str, Any]]:
        """Values files in order, then the inline YAML overrides."""
        layers = [load_values_file(self._resolve(f, base_dir)) for f in self.values_files]
        layers.extend(
            parse_values(content, source=f"{self.name} override #{i}")
            for i, content in enumerate(self.yaml_files_content)
        )
        return layers

    def merged_values(
        self,
        *,
        chart_defaults: Optional[Dict[str, Any]] = None,
        base_dir: Optional[Path] = None,
    ) -> Dict[str, Any]:
        """Final values Helm would compute for this release."""
        return compose_values(
            chart_defaults=chart_defaults,
            files=self.file_layers(base_dir),
            set_values=[(v.key, v.value) for v in self.values],
        )

    def uncovered_placeholders(self, base_dir: Optional[Path] = None) -> List[str]:
        """Engine placeholders in the file layers with no matching ``--set``."""
        layered = compose_values(files=self.file_layers(base_dir))
        covered = {v.normalized_key for v in self.values}
        return [k for k in find_engine_placeholders(layered) if k not in covered]
