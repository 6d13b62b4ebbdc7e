"""Template contexts for cluster bootstrap components.

Covers ingress-nginx values, storage classes, Karpenter node pools and
the OAuth2-protected portal ingress.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# ---------------------------------------------------------------------------
# ingress-nginx
# ---------------------------------------------------------------------------


class IngressNginxContext(BaseModel):
    """Variables of the ``ingress-nginx`` values templates.

    ``enable_compression`` left at ``None`` keeps the template default
    (compression on).
    """

    log_format_upstream: str = ""
    http_snippet: str = ""
    server_snippet: str = ""
    enable_compression: Optional[bool] = None

    def to_template_context(self) -> Dict[str, Any]:
        ctx: Dict[str, Any] = {
            "nginx_controller_log_format_upstream": self.log_format_upstream,
            "nginx_controller_http_snippet": self.http_snippet,
            "nginx_controller_server_snippet": self.server_snippet,
        }
        if self.enable_compression is not None:
            ctx["nginx_controller_enable_compression"] = self.enable_compression
        return ctx


# ---------------------------------------------------------------------------
# StorageClass catalogs
# ---------------------------------------------------------------------------


class StorageProvider(str, Enum):
    AWS = "aws"
    GCP = "gcp"


class StorageClassSpec(BaseModel):
    name: str
    disk_type: str
    qovery_type: str
    provisioner: str
    parameters: Dict[str, str] = Field(default_factory=dict)
    labels: Dict[str, str] = Field(default_factory=dict)


def _aws(disk_type: str, qovery_type: str, **extra: str) -> StorageClassSpec:
    return StorageClassSpec(
        name=f"aws-ebs-{disk_type}-0",
        disk_type=disk_type,
        qovery_type=qovery_type,
        provisioner="kubernetes.io/aws-ebs",
        parameters={"type": disk_type, **extra, "encrypted": "true"},
        labels={"aws-type": disk_type, "qovery-type": qovery_type, "reclaim": "0"},
    )


def _gcp(disk_type: str, qovery_type: str) -> StorageClassSpec:
    return StorageClassSpec(
        name=f"gcp-{disk_type}",
        disk_type=disk_type,
        qovery_type=qovery_type,
        provisioner="pd.csi.storage.gke.io",
        parameters={"type": disk_type},
        labels={"qovery-type": qovery_type},
    )


STORAGE_CLASS_CATALOG: Dict[StorageProvider, List[StorageClassSpec]] = {
    StorageProvider.AWS: [
        _aws("gp3", "ssd"),
        _aws("gp2", "ssd"),
        _aws("io1", "nvme", iopsPerGB="32"),
        _aws("st1", "hdd"),
        _aws("sc1", "cold"),
    ],
    StorageProvider.GCP: [
        _gcp("pd-extreme", "ssd"),
        _gcp("pd-ssd", "ssd"),
        _gcp("pd-balanced", "ssd"),
        _gcp("pd-standard", "hdd"),
    ],
}


class StorageClassContext(BaseModel):
    """Storage classes of one provider, at most one of them default."""

    provider: StorageProvider
    default_storage_class_name: str = ""

    @model_validator(mode="after")
    def _default_in_catalog(self) -> "StorageClassContext":
        names = [sc.name for sc in STORAGE_CLASS_CATALOG[self.provider]]
        if self.default_storage_class_name and self.default_storage_class_name not in names:
            raise ValueError(
                f"Unknown {self.provider.value} storage class "
                f"{self.default_storage_class_name!r}; expected one of {names}"
            )
        return self

    def to_template_context(self) -> Dict[str, Any]:
        return {
            "default_storage_class_name": self.default_storage_class_name,
            "storage_classes": [
                sc.model_dump() for sc in STORAGE_CLASS_CATALOG[self.provider]
            ],
        }


# ---------------------------------------------------------------------------
# Karpenter
# ---------------------------------------------------------------------------


class NodePoolRequirement(BaseModel):
    key: str
    operator: str = "In"
    values: List[str] = Field(default_factory=list)
    min_values: Optional[int] = None

    @field_validator("operator")
    @classmethod
    def _known_operator(cls, value: str) -> str:
        allowed = {"In", "NotIn", "Exists", "DoesNotExist", "Gt", "Lt"}
        if value not in allowed:
            raise ValueError(f"operator must be one of {sorted(allowed)}")
        return value


class KarpenterContext(BaseModel):
    """Node pool parameters for the Karpenter configuration chart."""

    default_service_architecture: str = "AMD64"
    spot_enabled: bool = False
    excluded_instance_families: List[str] = Field(default_factory=list)
    instance_family_min_values: Optional[int] = None
    termination_grace_period: str = "24h"
    extra_requirements: List[NodePoolRequirement] = Field(default_factory=list)

    def requirements(self) -> List[NodePoolRequirement]:
        capacity = ["on-demand", "spot"] if self.spot_enabled else ["on-demand"]
        reqs = [
            NodePoolRequirement(
                key="kubernetes.io/arch",
                values=[self.default_service_architecture.lower()],
            ),
            NodePoolRequirement(key="kubernetes.io/os", values=["linux"]),
            NodePoolRequirement(key="karpenter.sh/capacity-type", values=capacity),
        ]
        if self.excluded_instance_families or self.instance_family_min_values:
            reqs.append(
                NodePoolRequirement(
                    key="karpenter.k8s.aws/instance-family",
                    operator="NotIn" if self.excluded_instance_families else "Exists",
                    values=sorted(self.excluded_instance_families),
                    min_values=self.instance_family_min_values,
                )
            )
        reqs.extend(self.extra_requirements)
        return reqs

    def to_template_context(self) -> Dict[str, Any]:
        return {
            "global_node_pools": {
                "requirements": [r.model_dump() for r in self.requirements()],
                "termination_grace_period": self.termination_grace_period,
            },
        }


# ---------------------------------------------------------------------------
# Portal ingress (OAuth2 proxy in front)
# ---------------------------------------------------------------------------


class PortalIngressContext(BaseModel):
    full_name: str
    host_name: str
    cluster_issuer: str = "letsencrypt-qovery"
    ingress_class: str = "nginx-qovery"
    cookie_name: str = "_oauth2_proxy"
    port: int = 80
    labels: Dict[str, str] = Field(default_factory=dict)

    def to_template_context(self) -> Dict[str, Any]:
        return {
            "full_name": self.full_name,
            "host_name": self.host_name,
            "cluster_issuer": self.cluster_issuer,
            "ingress_class": self.ingress_class,
            "oauth_cookie_name": self.cookie_name,
            "portal_port": self.port,
            "labels": dict(sorted(self.labels.items())),
        }
