"""CPU and memory quantities as Kubernetes renders them."""

from __future__ import annotations

from pydantic import BaseModel, model_validator


class KubernetesCpu(BaseModel):
    """CPU quantity in millicores (``250`` renders as ``250m``)."""

    millis: int

    def __str__(self) -> str:
        return f"{self.millis}m"


class KubernetesMemory(BaseModel):
    """Memory quantity in mebibytes (``512`` renders as ``512Mi``)."""

    mebibytes: int

    def __str__(self) -> str:
        return f"{self.mebibytes}Mi"


def milli_cpu(value: int) -> KubernetesCpu:
    return KubernetesCpu(millis=value)


def mebibytes(value: int) -> KubernetesMemory:
    return KubernetesMemory(mebibytes=value)


class ResourceRequirements(BaseModel):
    """Requests and limits for one container.

    Requests must be strictly positive and never exceed their limit.
    """

    cpu_request_in_milli: int
    cpu_limit_in_milli: int
    ram_request_in_mib: int
    ram_limit_in_mib: int

    @model_validator(mode="after")
    def _check_bounds(self) -> "ResourceRequirements":
        if self.cpu_request_in_milli > self.cpu_limit_in_milli:
            raise ValueError(
                "cpu_request_in_milli must be less or equal to cpu_limit_in_milli"
            )
        if self.cpu_request_in_milli <= 0:
            raise ValueError("cpu_request_in_milli must be greater than 0")
        if self.ram_request_in_mib > self.ram_limit_in_mib:
            raise ValueError(
                "ram_request_in_mib must be less or equal to ram_limit_in_mib"
            )
        if self.ram_request_in_mib <= 0:
            raise ValueError("ram_request_in_mib must be greater than 0")
        return self

    @property
    def request_cpu(self) -> KubernetesCpu:
        return milli_cpu(self.cpu_request_in_milli)

    @property
    def limit_cpu(self) -> KubernetesCpu:
        return milli_cpu(self.cpu_limit_in_milli)

    @property
    def request_memory(self) -> KubernetesMemory:
        return mebibytes(self.ram_request_in_mib)

    @property
    def limit_memory(self) -> KubernetesMemory:
        return mebibytes(self.ram_limit_in_mib)

    def to_template_context(self) -> dict:
        return {
            "cpu_request_in_milli": str(self.request_cpu),
            "cpu_limit_in_milli": str(self.limit_cpu),
            "ram_request_in_mib": str(self.request_memory),
            "ram_limit_in_mib": str(self.limit_memory),
        }
