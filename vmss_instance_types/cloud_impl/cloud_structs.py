import math
from dataclasses import dataclass, field

from vmss_instance_types.constants import (
    CAPABILITY_MEMORY_GB,
    CAPABILITY_VCPUS,
    RESOURCE_TYPE_VIRTUAL_MACHINES,
)


@dataclass(frozen=True)
class InstanceType:
    instance_type: str
    vcpu: int
    memory_mb: int
    gpu_count: int = 0


@dataclass
class VmssTemplate:
    sku_name: str
    location: str
    resource_type: str = RESOURCE_TYPE_VIRTUAL_MACHINES


# Wraps a single item of https://learn.microsoft.com/en-us/rest/api/compute/resource-skus/list
@dataclass
class SkuDescriptor:
    name: str
    resource_type: str
    locations: list[str] = field(default_factory=list)
    capabilities: list[tuple[str, str]] = field(default_factory=list)
    provider_description: dict = field(default_factory=dict)

    @classmethod
    def from_arm(cls, sku: dict) -> "SkuDescriptor":
        return cls(
            name=sku.get("name", ""),
            resource_type=sku.get("resourceType", ""),
            locations=list(sku.get("locations") or []),
            capabilities=[
                (cap.get("name", ""), cap.get("value", ""))
                for cap in sku.get("capabilities") or []
            ],
            provider_description=sku,
        )

    def capability(self, name: str) -> str | None:
        for cap_name, cap_value in self.capabilities:
            if cap_name == name:
                return cap_value
        return None

    def is_available_in(self, region: str) -> bool:
        return any(loc.lower() == region.lower() for loc in self.locations)

    def vcpu(self) -> int:
        value = self.capability(CAPABILITY_VCPUS)
        if value is None:
            raise ValueError(
                f"missing capability {CAPABILITY_VCPUS} for SKU {self.name}"
            )
        vcpu = int(value)
        if vcpu <= 0:
            raise ValueError(
                f"non-positive vCPU count {value} for SKU {self.name}"
            )
        return vcpu

    def memory_gb(self) -> float:
        value = self.capability(CAPABILITY_MEMORY_GB)
        if value is None:
            raise ValueError(
                f"missing capability {CAPABILITY_MEMORY_GB} for SKU {self.name}"
            )
        memory_gb = float(value)
        if not math.isfinite(memory_gb) or memory_gb < 0:
            raise ValueError(
                f"invalid memory size {value} for SKU {self.name}"
            )
        return memory_gb
