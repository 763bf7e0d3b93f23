import logging
import os.path
from types import MappingProxyType
from typing import Mapping

import yaml
from pydantic import BaseModel, ValidationError, model_validator
from typing_extensions import Self

from vmss_instance_types.cloud_impl.cloud_structs import InstanceType

BUNDLED_CATALOG_PATH = os.path.join(
    os.path.dirname(__file__), "data", "instance_types.yaml"
)

logger = logging.getLogger(__name__)


class CatalogEntry(BaseModel):
    vcpu: int
    memory_mb: int
    gpu: int = 0

    @model_validator(mode="after")
    def check_capacity(self) -> Self:
        if self.vcpu <= 0:
            raise ValueError("vcpu must be > 0")
        if self.memory_mb < 0:
            raise ValueError("memory_mb must be >= 0")
        if self.gpu < 0:
            raise ValueError("gpu must be >= 0")
        return self


def parse_static_catalog_from_yaml(
    catalog_yaml: str,
) -> Mapping[str, InstanceType]:
    """Expects a mapping of SKU name to capacity:
    Standard_D2s_v3:
      vcpu: 2
      memory_mb: 8192
      gpu: 0
    """
    raw = yaml.safe_load(catalog_yaml)
    if not isinstance(raw, dict):
        raise ValueError("Static catalog must be a mapping of SKU names")
    catalog: dict[str, InstanceType] = {}
    for name, entry in raw.items():
        try:
            ce = CatalogEntry(**(entry or {}))
        except (ValidationError, TypeError) as e:
            raise ValueError(
                f"Invalid static catalog entry {name}: {e}"
            ) from e
        catalog[str(name)] = InstanceType(
            instance_type=str(name),
            vcpu=ce.vcpu,
            memory_mb=ce.memory_mb,
            gpu_count=ce.gpu,
        )
    return MappingProxyType(catalog)


def load_static_catalog(path: str | None = None) -> Mapping[str, InstanceType]:
    """Meant to be called once on startup, the result is never mutated"""
    path = os.path.expanduser(path or BUNDLED_CATALOG_PATH)
    logger.debug("Loading static instance type catalog from %s", path)
    with open(path) as f:
        catalog = parse_static_catalog_from_yaml(f.read())
    logger.debug("Loaded %s static instance types", len(catalog))
    return catalog


def lookup(
    catalog: Mapping[str, InstanceType], name: str
) -> InstanceType | None:
    """Keys are case-sensitive, lookups are not"""
    name_lower = name.lower()
    for k, v in catalog.items():
        if k.lower() == name_lower:
            return v
    return None
