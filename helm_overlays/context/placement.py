"""Node affinity and tolerations."""

from __future__ import annotations

import json
from typing import Any, Dict, List

from pydantic import BaseModel, Field

STABLE_NODE_POOL_KEY = "karpenter.sh/nodepool"
STABLE_NODE_POOL_NAME = "stable"
STABLE_NODE_POOL_TAINT = "nodepool/stable"


class NodePlacement(BaseModel):
    """Where the pods of a release may be scheduled.

    ``node_affinity`` maps a node label to the single value it must carry;
    ``toleration`` maps a taint key to its effect.  The ``preset_*`` triple
    feeds the bitnami charts' ``nodeAffinityPreset`` block.
    """

    node_affinity: Dict[str, str] = Field(default_factory=dict)
    toleration: Dict[str, str] = Field(default_factory=dict)
    preset_type: str = ""
    preset_key: str = ""
    preset_values: List[str] = Field(default_factory=list)

    def target_stable_node_pool(self) -> "NodePlacement":
        """Pin to the Karpenter ``stable`` pool and tolerate its taint."""
        self.node_affinity[STABLE_NODE_POOL_KEY] = STABLE_NODE_POOL_NAME
        self.toleration[STABLE_NODE_POOL_TAINT] = "NoSchedule"
        return self

    def to_template_context(self) -> Dict[str, Any]:
        return {
            "node_affinity": dict(sorted(self.node_affinity.items())),
            "toleration": dict(sorted(self.toleration.items())),
            "node_affinity_type": self.preset_type,
            "node_affinity_key": self.preset_key,
            # emitted inline as a YAML flow sequence
            "node_affinity_values": json.dumps(self.preset_values),
        }


def arch_preset(arch: str = "amd64") -> NodePlacement:
    """Hard requirement on ``kubernetes.io/arch``."""
    key = "kubernetes.io/arch"
    return NodePlacement(
        node_affinity={key: arch},
        preset_type="hard",
        preset_key=key,
        preset_values=[arch],
    )
