"""Service identity fields shared by every template context.

Templates reference a service by several derived names: the short id
(``zXXXXXXXX``) used in Kubernetes labels, the long UUID, and a sanitized
name that is safe as a Helm release / resource name.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

#: Kubernetes object names are DNS-1123 labels.
MAX_NAME_LENGTH = 63


def to_short_id(long_id: UUID | str) -> str:
    """Return the short identifier for *long_id*: ``z`` + first 8 hex chars."""
    return f"z{str(long_id)[:8]}"


def sanitize_name(name: str, *, max_length: int = MAX_NAME_LENGTH) -> str:
    """Lowercase *name* and collapse every non ``[a-z0-9]`` run into ``-``.

    Leading and trailing dashes are dropped so the result is a valid
    DNS-1123 label.

    Raises:
        ValueError: If nothing usable is left after sanitising.
    """
    cleaned = _NON_ALNUM.sub("-", name.lower()).strip("-")
    cleaned = cleaned[:max_length].rstrip("-")
    if not cleaned:
        raise ValueError(f"Cannot derive a Kubernetes name from {name!r}")
    return cleaned


class ServiceIdentity(BaseModel):
    """Identity of the service a template is rendered for."""

    long_id: UUID
    name: str
    environment_long_id: UUID
    project_long_id: UUID
    owner_id: str = ""
    namespace: str = ""
    kube_name: Optional[str] = None
    version: str = ""

    @property
    def id(self) -> str:
        return to_short_id(self.long_id)

    @property
    def environment_id(self) -> str:
        return to_short_id(self.environment_long_id)

    @property
    def sanitized_name(self) -> str:
        return sanitize_name(self.kube_name or self.name)

    def to_template_context(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "long_id": str(self.long_id),
            "name": self.name,
            "sanitized_name": self.sanitized_name,
            "environment_id": self.environment_id,
            "environment_short_id": self.environment_id,
            "environment_long_id": str(self.environment_long_id),
            "project_long_id": str(self.project_long_id),
            "owner_id": self.owner_id,
            "namespace": self.namespace,
        }


class ServiceRef(BaseModel):
    """The ``service`` object some chart templates dereference."""

    name: str
    long_id: UUID
    type: str = Field(default="container")
    version: str = ""
    storages: list = Field(default_factory=list)

    def to_template_context(self) -> Dict[str, Any]:
        return {
            "name": sanitize_name(self.name),
            "long_id": str(self.long_id),
            "type": self.type,
            "version": self.version,
            "storages": list(self.storages),
        }
