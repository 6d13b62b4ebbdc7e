"""Annotation and label groups.

A group is a named set of key/value pairs attached to one or more
*scopes*.  Templates iterate a scope with::

    {%- for key, value in annotations_group.pods.items() %}

so the context always carries every scope, empty when nothing targets it.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List

from pydantic import BaseModel, Field


class AnnotationScope(str, Enum):
    """Kubernetes objects an annotations group can target."""

    SERVICE = "service"
    PODS = "pods"
    STATEFUL_SET = "stateful_set"
    SECRETS = "secrets"
    JOB = "job"
    DEPLOYMENT = "deployment"
    HPA = "hpa"
    INGRESS = "ingress"


class LabelScope(str, Enum):
    """Labels currently only apply to every object."""

    COMMON = "common"


class KeyValue(BaseModel):
    key: str
    value: str


class AnnotationsGroup(BaseModel):
    """Named annotations applied to the listed scopes."""

    name: str = ""
    annotations: List[KeyValue] = Field(default_factory=list)
    scopes: List[AnnotationScope] = Field(default_factory=list)


class LabelsGroup(BaseModel):
    """Named labels; ``propagate_to_cloud_provider`` is carried but unused here."""

    name: str = ""
    labels: List[KeyValue] = Field(default_factory=list)
    propagate_to_cloud_provider: bool = False


def _merge(
    scopes: Iterable[str],
    assignments: Iterable[tuple[Iterable[str], List[KeyValue]]],
) -> Dict[str, Dict[str, str]]:
    merged: Dict[str, Dict[str, str]] = {scope: {} for scope in scopes}
    for targets, pairs in assignments:
        for scope in targets:
            for kv in pairs:
                merged[scope][kv.key] = kv.value
    return {scope: dict(sorted(values.items())) for scope, values in merged.items()}


def annotations_group_context(
    groups: Iterable[AnnotationsGroup],
) -> Dict[str, Dict[str, str]]:
    """Merge *groups* into ``{scope: {key: value}}``; later groups win."""
    return _merge(
        (s.value for s in AnnotationScope),
        (([s.value for s in g.scopes], g.annotations) for g in groups),
    )


def labels_group_context(
    groups: Iterable[LabelsGroup],
) -> Dict[str, Dict[str, str]]:
    """Merge *groups* into ``{"common": {key: value}}``; later groups win."""
    return _merge(
        (s.value for s in LabelScope),
        (([LabelScope.COMMON.value], g.labels) for g in groups),
    )
