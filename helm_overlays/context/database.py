"""Template context for containerised database values files.

Builds the variables consumed by ``chart_values/mongodb`` and
``chart_values/redis``: identity, credentials, image location, resources,
service exposure, node placement and annotation/label groups.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from helm_overlays.context.groups import (
    AnnotationsGroup,
    KeyValue,
    LabelsGroup,
    annotations_group_context,
    labels_group_context,
)
from helm_overlays.context.identity import ServiceIdentity
from helm_overlays.context.placement import NodePlacement, arch_preset
from helm_overlays.context.resources import ResourceRequirements

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY = "public.ecr.aws"
DEFAULT_REPOSITORY_PREFIX = "r3m4q3r9/pub-mirror-"

_VERSION_RE = re.compile(r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:[-+].*)?$")


class DatabaseKind(str, Enum):
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    MONGODB = "mongodb"
    REDIS = "redis"


class DatabaseMode(str, Enum):
    CONTAINER = "container"
    MANAGED = "managed"


class DatabaseVersion(BaseModel):
    """``major[.minor[.patch]]`` with an optional pre-release suffix."""

    major: int
    minor: Optional[int] = None
    patch: Optional[int] = None

    @classmethod
    def parse(cls, raw: str) -> "DatabaseVersion":
        m = _VERSION_RE.match(raw.strip())
        if not m:
            raise ValueError(f"Unparseable database version: {raw!r}")
        major, minor, patch = m.groups()
        return cls(
            major=int(major),
            minor=int(minor) if minor is not None else None,
            patch=int(patch) if patch is not None else None,
        )

    def __str__(self) -> str:
        parts = [str(self.major)]
        if self.minor is not None:
            parts.append(str(self.minor))
            if self.patch is not None:
                parts.append(str(self.patch))
        return ".".join(parts)


def default_placement(kind: DatabaseKind, version: DatabaseVersion) -> NodePlacement:
    """Architecture constraints for images without arm64 builds."""
    if kind == DatabaseKind.MONGODB:
        return arch_preset("amd64")
    if kind == DatabaseKind.REDIS and version.major == 5:
        return arch_preset("amd64")
    if kind == DatabaseKind.POSTGRESQL and version.major == 10:
        return arch_preset("amd64")
    return NodePlacement()


#: Major versions the mirrored container images exist for.
SUPPORTED_CONTAINER_VERSIONS: Dict[DatabaseKind, frozenset] = {
    DatabaseKind.POSTGRESQL: frozenset(range(10, 17)),
    DatabaseKind.MYSQL: frozenset({5, 8}),
    DatabaseKind.MONGODB: frozenset({4, 5, 6, 7}),
    DatabaseKind.REDIS: frozenset({5, 6, 7}),
}


def check_container_version(kind: DatabaseKind, raw: str) -> DatabaseVersion:
    """Parse *raw* and reject versions without a container image.

    Raises:
        ValueError: If *raw* does not parse or its major version is not
            supported for *kind*.
    """
    version = DatabaseVersion.parse(raw)
    if version.major not in SUPPORTED_CONTAINER_VERSIONS[kind]:
        supported = ", ".join(str(v) for v in sorted(SUPPORTED_CONTAINER_VERSIONS[kind]))
        raise ValueError(
            f"Version {raw} for {kind.value} is not supported "
            f"(supported major versions: {supported})"
        )
    return version


class ClusterSettings(BaseModel):
    """Cluster-wide knobs that influence database rendering."""

    karpenter_enabled: bool = False
    alb_controller_enabled: bool = False
    deny_public_access: Dict[DatabaseKind, bool] = Field(default_factory=dict)
    kubernetes_cluster_id: str = ""
    kubernetes_cluster_name: str = ""
    resource_expiration_in_seconds: Optional[int] = None


class DatabaseServiceContext(BaseModel):
    """Everything a database values template needs."""

    identity: ServiceIdentity
    kind: DatabaseKind
    mode: DatabaseMode = DatabaseMode.CONTAINER
    version: str
    fqdn: str = ""
    fqdn_id: str = ""
    login: str = ""
    password: str
    port: int
    disk_size_in_gib: int = Field(default=10, gt=0)
    disk_type: str = ""
    publicly_accessible: bool = False
    resources: Optional[ResourceRequirements] = None
    cluster: ClusterSettings = Field(default_factory=ClusterSettings)
    registry_name: str = DEFAULT_REGISTRY
    repository_prefix: str = DEFAULT_REPOSITORY_PREFIX
    annotations_groups: List[AnnotationsGroup] = Field(default_factory=list)
    additional_annotations: List[KeyValue] = Field(default_factory=list)
    labels_groups: List[LabelsGroup] = Field(default_factory=list)

    @model_validator(mode="after")
    def _container_needs_resources(self) -> "DatabaseServiceContext":
        if self.mode == DatabaseMode.CONTAINER and self.resources is None:
            raise ValueError("container databases require resources")
        if not self.identity.namespace:
            raise ValueError("identity.namespace is required for databases")
        if self.publicly_accessible and not self.fqdn:
            raise ValueError("publicly accessible databases require an fqdn")
        if self.mode == DatabaseMode.CONTAINER:
            check_container_version(self.kind, self.version)
        else:
            DatabaseVersion.parse(self.version)
        return self

    # -- derived values ------------------------------------------------------

    @property
    def parsed_version(self) -> DatabaseVersion:
        return DatabaseVersion.parse(self.version)

    @property
    def effective_publicly_accessible(self) -> bool:
        denied = self.cluster.deny_public_access.get(self.kind, False)
        return self.publicly_accessible and not denied

    def resolved_fqdn(self) -> str:
        """Public FQDN when exposed, in-cluster DNS name otherwise."""
        if self.publicly_accessible:
            return self.fqdn
        namespace = self.identity.namespace
        if self.mode == DatabaseMode.MANAGED:
            return f"{self.identity.id}-dns.{namespace}.svc.cluster.local"
        return f"{self.identity.sanitized_name}.{namespace}.svc.cluster.local"

    def placement(self) -> NodePlacement:
        placement = default_placement(self.kind, self.parsed_version)
        if self.cluster.karpenter_enabled:
            placement.target_stable_node_pool()
        return placement

    # -- context -------------------------------------------------------------

    def to_template_context(self) -> Dict[str, Any]:
        repository_name = f"{self.repository_prefix}{self.kind.value}"
        ctx: Dict[str, Any] = self.identity.to_template_context()
        ctx.update(
            {
                "registry_name": self.registry_name,
                "repository_name": repository_name,
                "repository_name_minideb": f"{self.repository_prefix}minideb",
                "repository_name_bitnami_shell": f"{self.repository_prefix}bitnami-shell",
                "repository_with_registry": f"{self.registry_name}/{repository_name}",
                "version": self.version,
                "version_major": self.parsed_version.major,
                "kubernetes_cluster_id": self.cluster.kubernetes_cluster_id,
                "kubernetes_cluster_name": self.cluster.kubernetes_cluster_name,
                "fqdn_id": self.fqdn_id,
                "fqdn": self.resolved_fqdn(),
                "service_name": self.fqdn_id or self.identity.sanitized_name,
                "database_id": self.identity.id,
                "database_db_name": self.identity.name,
                "database_login": self.login,
                "database_password": self.password,
                "database_port": self.port,
                "database_disk_size_in_gib": self.disk_size_in_gib,
                "database_disk_type": self.disk_type,
                "publicly_accessible": self.effective_publicly_accessible,
                "aws_load_balancer_type": (
                    "external" if self.cluster.alb_controller_enabled else "nlb"
                ),
                "resource_expiration_in_seconds": self.cluster.resource_expiration_in_seconds,
                "annotations_group": annotations_group_context(self.annotations_groups),
                "additional_annotations": [kv.model_dump() for kv in self.additional_annotations],
                "labels_group": labels_group_context(self.labels_groups),
            }
        )
        if self.resources is not None:
            ctx.update(self.resources.to_template_context())
        ctx.update(self.placement().to_template_context())
        logger.debug(
            "Database context built for %s (%s %s)",
            self.identity.sanitized_name,
            self.kind.value,
            self.version,
        )
        return ctx
