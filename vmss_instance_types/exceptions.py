class InstanceTypeResolutionError(Exception):
    """Base for all failures to map a VMSS SKU to an InstanceType"""


class NotSupportedError(InstanceTypeResolutionError):
    """Neither the SKU nor its promo-stripped variant is known"""

    def __init__(self, sku_name: str, cause: Exception | None = None):
        self.sku_name = sku_name
        self.cause = cause
        msg = f"instance type {sku_name!r} not supported"
        if cause is not None:
            msg += f". Error {cause}"
        super().__init__(msg)


class CacheConstructionError(InstanceTypeResolutionError):
    """Region scoped SKU cache could not be initialized"""

    def __init__(self, region: str, cause: Exception | str | None = None):
        self.region = region
        self.cause = cause
        msg = f"failed to instantiate SKU cache for region {region!r}"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)


class FactExtractionError(InstanceTypeResolutionError):
    def __init__(self, sku_name: str, fact: str, cause: Exception):
        self.sku_name = sku_name
        self.fact = fact
        self.cause = cause
        super().__init__(
            f"failed to parse {fact} from sku {sku_name!r}: {cause}"
        )


class SkuNotFoundError(Exception):
    """Cache miss for a (name, resource type, region) key"""

    def __init__(self, name: str, resource_type: str, region: str):
        self.name = name
        self.resource_type = resource_type
        self.region = region
        super().__init__(
            f"failed to find SKU {name!r} with resource type {resource_type!r} in region {region!r}"
        )
