"""Template context models (the values schema)."""

from helm_overlays.context.cluster import (
    STORAGE_CLASS_CATALOG,
    IngressNginxContext,
    KarpenterContext,
    NodePoolRequirement,
    PortalIngressContext,
    StorageClassContext,
    StorageProvider,
)
from helm_overlays.context.database import (
    ClusterSettings,
    DatabaseKind,
    DatabaseMode,
    DatabaseServiceContext,
    DatabaseVersion,
)
from helm_overlays.context.groups import (
    AnnotationScope,
    AnnotationsGroup,
    KeyValue,
    LabelsGroup,
    annotations_group_context,
    labels_group_context,
)
from helm_overlays.context.identity import (
    ServiceIdentity,
    ServiceRef,
    sanitize_name,
    to_short_id,
)
from helm_overlays.context.placement import NodePlacement
from helm_overlays.context.registry import ReleaseKind, build_context
from helm_overlays.context.resources import ResourceRequirements
from helm_overlays.context.services import (
    BackendConfig,
    ContainerServiceContext,
    RegistryCredentials,
    TerraformServiceContext,
)

__all__ = [
    "STORAGE_CLASS_CATALOG",
    "AnnotationScope",
    "AnnotationsGroup",
    "BackendConfig",
    "ClusterSettings",
    "ContainerServiceContext",
    "DatabaseKind",
    "DatabaseMode",
    "DatabaseServiceContext",
    "DatabaseVersion",
    "IngressNginxContext",
    "KarpenterContext",
    "KeyValue",
    "LabelsGroup",
    "NodePlacement",
    "NodePoolRequirement",
    "PortalIngressContext",
    "RegistryCredentials",
    "ReleaseKind",
    "ResourceRequirements",
    "ServiceIdentity",
    "ServiceRef",
    "StorageClassContext",
    "StorageProvider",
    "TerraformServiceContext",
    "annotations_group_context",
    "build_context",
    "labels_group_context",
    "sanitize_name",
    "to_short_id",
]
