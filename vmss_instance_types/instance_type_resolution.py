import logging
from typing import Callable, Mapping, Protocol, Type, TypeVar

from vmss_instance_types.cloud_impl.cloud_structs import (
    InstanceType,
    SkuDescriptor,
    VmssTemplate,
)
from vmss_instance_types.cloud_impl.cloud_util import (
    get_gpu_count_from_sku,
    is_promo_sku,
    memory_gb_to_mb,
    strip_promo_suffix,
)
from vmss_instance_types.constants import (
    RESOLUTION_MODE_DYNAMIC,
    RESOLUTION_MODE_DYNAMIC_WITH_STATIC_FALLBACK,
    RESOLUTION_MODE_STATIC,
    RESOLUTION_MODE_STATIC_WITH_DYNAMIC_FALLBACK,
)
from vmss_instance_types.exceptions import (
    CacheConstructionError,
    FactExtractionError,
    InstanceTypeResolutionError,
    NotSupportedError,
    SkuNotFoundError,
)
from vmss_instance_types.static_catalog import lookup

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SkuCacheHandle(Protocol):
    def get(
        self, name: str, resource_type: str, region: str
    ) -> SkuDescriptor: ...


SkuCacheFactory = Callable[[str], SkuCacheHandle]


def resolve_static(
    sku_name: str, catalog: Mapping[str, InstanceType]
) -> InstanceType:
    instance_type = lookup(catalog, sku_name)

    if instance_type is None and is_promo_sku(sku_name):
        logger.debug(
            "No exact match found for %s, checking standard types", sku_name
        )
        instance_type = lookup(catalog, strip_promo_suffix(sku_name))

    if instance_type is None:
        raise NotSupportedError(sku_name)
    return instance_type


def _extract_fact(sku_name: str, fact: str, extractor: Callable[[], T]) -> T:
    try:
        return extractor()
    except (ValueError, TypeError, OverflowError) as e:
        logger.debug("Failed to parse %s from sku %r %s", fact, sku_name, e)
        raise FactExtractionError(sku_name, fact, e) from e


def resolve_dynamic(
    template: VmssTemplate, cache_factory: SkuCacheFactory
) -> InstanceType:
    """Authoritative SKU facts from the region scoped Resource SKUs cache.
    Cache construction problems surface as CacheConstructionError, unknown SKUs
    as NotSupportedError and malformed SKU capabilities as FactExtractionError.
    """
    sku_name = template.sku_name
    try:
        cache = cache_factory(template.location)
    except CacheConstructionError as e:
        logger.debug("Failed to instantiate cache, err: %s", e)
        raise
    except Exception as e:
        logger.debug("Failed to instantiate cache, err: %s", e)
        raise CacheConstructionError(template.location, e) from e

    try:
        sku = cache.get(sku_name, template.resource_type, template.location)
    except SkuNotFoundError as e:
        logger.debug(
            "No exact match found for %s, checking standard types. Error %s",
            sku_name,
            e,
        )
        try:
            sku = cache.get(
                strip_promo_suffix(sku_name),
                template.resource_type,
                template.location,
            )
        except SkuNotFoundError as fallback_err:
            raise NotSupportedError(sku_name, fallback_err) from fallback_err

    vcpu = _extract_fact(sku_name, "vcpu", sku.vcpu)
    gpu_count = _extract_fact(
        sku_name, "gpu", lambda: get_gpu_count_from_sku(sku)
    )
    memory_mb = _extract_fact(
        sku_name, "memoryMb", lambda: memory_gb_to_mb(sku.memory_gb())
    )

    return InstanceType(
        instance_type=sku.name,
        vcpu=vcpu,
        memory_mb=memory_mb,
        gpu_count=gpu_count,
    )


def _require_catalog(
    catalog: Mapping[str, InstanceType] | None,
) -> Mapping[str, InstanceType]:
    if catalog is None:
        raise ValueError("Static resolution requires a catalog")
    return catalog


def _require_cache_factory(
    cache_factory: SkuCacheFactory | None,
) -> SkuCacheFactory:
    if cache_factory is None:
        raise ValueError("Dynamic resolution requires a SKU cache factory")
    return cache_factory


class InstanceTypeResolutionStrategy:

    @classmethod
    def execute(
        cls,
        template: VmssTemplate,
        catalog: Mapping[str, InstanceType] | None,
        cache_factory: SkuCacheFactory | None,
    ) -> InstanceType:
        raise NotImplementedError(
            f"{cls.__name__} has not implemented the execute method"
        )


class InstanceTypeResolutionStatic(InstanceTypeResolutionStrategy):

    @classmethod
    def execute(
        cls,
        template: VmssTemplate,
        catalog: Mapping[str, InstanceType] | None,
        cache_factory: SkuCacheFactory | None,
    ) -> InstanceType:
        return resolve_static(template.sku_name, _require_catalog(catalog))


class InstanceTypeResolutionDynamic(InstanceTypeResolutionStrategy):

    @classmethod
    def execute(
        cls,
        template: VmssTemplate,
        catalog: Mapping[str, InstanceType] | None,
        cache_factory: SkuCacheFactory | None,
    ) -> InstanceType:
        return resolve_dynamic(template, _require_cache_factory(cache_factory))


class InstanceTypeResolutionStaticWithDynamicFallback(
    InstanceTypeResolutionStrategy
):
    """Only unknown SKUs go to the API"""

    @classmethod
    def execute(
        cls,
        template: VmssTemplate,
        catalog: Mapping[str, InstanceType] | None,
        cache_factory: SkuCacheFactory | None,
    ) -> InstanceType:
        try:
            return resolve_static(
                template.sku_name, _require_catalog(catalog)
            )
        except NotSupportedError:
            logger.debug(
                "SKU %s not in the static catalog, querying Resource SKUs API",
                template.sku_name,
            )
        return resolve_dynamic(template, _require_cache_factory(cache_factory))


class InstanceTypeResolutionDynamicWithStaticFallback(
    InstanceTypeResolutionStrategy
):
    """Prefer fresh API data, any dynamic failure falls back to the static catalog"""

    @classmethod
    def execute(
        cls,
        template: VmssTemplate,
        catalog: Mapping[str, InstanceType] | None,
        cache_factory: SkuCacheFactory | None,
    ) -> InstanceType:
        try:
            return resolve_dynamic(
                template, _require_cache_factory(cache_factory)
            )
        except InstanceTypeResolutionError as e:
            logger.warning(
                "Failed to get SKU %s info dynamically, falling back to the static catalog: %s",
                template.sku_name,
                e,
            )
        return resolve_static(template.sku_name, _require_catalog(catalog))


class InstanceTypeResolution:

    @classmethod
    def get_resolution_strategy(
        cls, resolution_mode: str
    ) -> Type[InstanceTypeResolutionStrategy]:
        strategy = {
            RESOLUTION_MODE_STATIC: InstanceTypeResolutionStatic,
            RESOLUTION_MODE_DYNAMIC: InstanceTypeResolutionDynamic,
            RESOLUTION_MODE_STATIC_WITH_DYNAMIC_FALLBACK: InstanceTypeResolutionStaticWithDynamicFallback,
            RESOLUTION_MODE_DYNAMIC_WITH_STATIC_FALLBACK: InstanceTypeResolutionDynamicWithStaticFallback,
        }
        mode = resolution_mode.lower().strip()
        if mode not in strategy:
            raise ValueError(
                f"Unknown resolution mode {resolution_mode!r}, expected one of: {', '.join(strategy)}"
            )
        return strategy[mode]

    @classmethod
    def get_modes_with_descriptions(cls) -> dict[str, str]:
        return {
            RESOLUTION_MODE_STATIC: "Bundled catalog only. No API calls, might lag behind newly released SKUs",
            RESOLUTION_MODE_DYNAMIC: "Resource SKUs API only (cached per region). Requires Azure credentials",
            RESOLUTION_MODE_STATIC_WITH_DYNAMIC_FALLBACK: "Bundled catalog first, API only for SKUs not in the catalog. Lowest latency",
            RESOLUTION_MODE_DYNAMIC_WITH_STATIC_FALLBACK: "API first, bundled catalog if the API fails. Most up-to-date data. DEFAULT",
        }


def resolve(
    template: VmssTemplate,
    resolution_mode: str,
    catalog: Mapping[str, InstanceType] | None = None,
    cache_factory: SkuCacheFactory | None = None,
) -> InstanceType:
    strategy_cls = InstanceTypeResolution.get_resolution_strategy(
        resolution_mode
    )
    logger.debug(
        "Resolving SKU %s in region %s using %s ...",
        template.sku_name,
        template.location,
        strategy_cls.__name__,
    )
    return strategy_cls.execute(template, catalog, cache_factory)
