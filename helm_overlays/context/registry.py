"""Map a release ``kind`` to the model that builds its template context."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Mapping, Type

from pydantic import BaseModel

from helm_overlays.context.cluster import (
    IngressNginxContext,
    KarpenterContext,
    PortalIngressContext,
    StorageClassContext,
)
from helm_overlays.context.database import DatabaseServiceContext
from helm_overlays.context.services import (
    ContainerServiceContext,
    TerraformServiceContext,
)


class ReleaseKind(str, Enum):
    DATABASE = "database"
    CONTAINER_PDB = "container_pdb"
    TERRAFORM_SERVICE = "terraform_service"
    INGRESS_NGINX = "ingress_nginx"
    STORAGE_CLASS = "storage_class"
    KARPENTER = "karpenter"
    PORTAL_INGRESS = "portal_ingress"
    STATIC = "static"


CONTEXT_MODELS: Dict[ReleaseKind, Type[BaseModel]] = {
    ReleaseKind.DATABASE: DatabaseServiceContext,
    ReleaseKind.CONTAINER_PDB: ContainerServiceContext,
    ReleaseKind.TERRAFORM_SERVICE: TerraformServiceContext,
    ReleaseKind.INGRESS_NGINX: IngressNginxContext,
    ReleaseKind.STORAGE_CLASS: StorageClassContext,
    ReleaseKind.KARPENTER: KarpenterContext,
    ReleaseKind.PORTAL_INGRESS: PortalIngressContext,
}


def build_context(kind: ReleaseKind, parameters: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate *parameters* for *kind* and return the template context.

    ``static`` releases pass their parameters through untouched.

    Raises:
        pydantic.ValidationError: If *parameters* do not fit the model.
    """
    if kind == ReleaseKind.STATIC:
        return dict(parameters)
    model = CONTEXT_MODELS[kind].model_validate(dict(parameters))
    return model.to_template_context()  # type: ignore[attr-defined]
