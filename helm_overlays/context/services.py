"""Template contexts for container and terraform service charts."""

from __future__ import annotations

import base64
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from helm_overlays.context.groups import (
    AnnotationsGroup,
    KeyValue,
    LabelsGroup,
    annotations_group_context,
    labels_group_context,
)
from helm_overlays.context.identity import ServiceIdentity, ServiceRef


def _common(
    identity: ServiceIdentity,
    service: ServiceRef,
    annotations_groups: List[AnnotationsGroup],
    labels_groups: List[LabelsGroup],
) -> Dict[str, Any]:
    ctx = identity.to_template_context()
    ctx["service"] = service.to_template_context()
    ctx["annotations_group"] = annotations_group_context(annotations_groups)
    ctx["labels_group"] = labels_group_context(labels_groups)
    return ctx


class ContainerServiceContext(BaseModel):
    """Context for ``common/charts/container`` (the PodDisruptionBudget).

    The PDB is only emitted for stateless services; the template checks
    ``service.storages | length == 0``.
    """

    identity: ServiceIdentity
    service: ServiceRef
    annotations_groups: List[AnnotationsGroup] = Field(default_factory=list)
    labels_groups: List[LabelsGroup] = Field(default_factory=list)

    def to_template_context(self) -> Dict[str, Any]:
        return _common(
            self.identity, self.service, self.annotations_groups, self.labels_groups
        )


class BackendConfig(BaseModel):
    """Terraform backend configuration shipped as a Secret."""

    secret_name: str
    configs: List[str] = Field(default_factory=list)


class RegistryCredentials(BaseModel):
    """Image pull secret; omitted from the output when ``docker_json_config`` is empty."""

    secret_name: str = ""
    docker_json_config: str = ""


class TerraformServiceContext(BaseModel):
    """Context for ``common/charts/terraform-service`` (PDB + Secrets).

    Environment variable values are base64 encoded here because the
    Secret carries them under ``data``.
    """

    identity: ServiceIdentity
    service: ServiceRef
    environment_variables: List[KeyValue] = Field(default_factory=list)
    backend_config: BackendConfig
    registry: Optional[RegistryCredentials] = None
    annotations_groups: List[AnnotationsGroup] = Field(default_factory=list)
    labels_groups: List[LabelsGroup] = Field(default_factory=list)

    def to_template_context(self) -> Dict[str, Any]:
        ctx = _common(
            self.identity, self.service, self.annotations_groups, self.labels_groups
        )
        ctx["environment_variables"] = [
            {
                "key": ev.key,
                "value": base64.b64encode(ev.value.encode("utf-8")).decode("ascii"),
            }
            for ev in self.environment_variables
        ]
        ctx["backend_config"] = self.backend_config.model_dump()
        registry = self.registry or RegistryCredentials()
        ctx["registry"] = registry.model_dump()
        return ctx
