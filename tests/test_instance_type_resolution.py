import pytest

from vmss_instance_types.cloud_impl.cloud_structs import (
    InstanceType,
    SkuDescriptor,
    VmssTemplate,
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
    NotSupportedError,
    SkuNotFoundError,
)
from vmss_instance_types.instance_type_resolution import (
    InstanceTypeResolution,
    InstanceTypeResolutionDynamicWithStaticFallback,
    InstanceTypeResolutionStatic,
    resolve,
    resolve_dynamic,
    resolve_static,
)
from vmss_instance_types.static_catalog import parse_static_catalog_from_yaml

REGION = "westeurope"

CATALOG = parse_static_catalog_from_yaml(
    """
Standard_D2s_v3:
  vcpu: 2
  memory_mb: 8192
Standard_DS2_v2:
  vcpu: 2
  memory_mb: 7168
Standard_DS3_v2:
  vcpu: 4
  memory_mb: 14336
Standard_DS3_v2_Promo:
  vcpu: 40
  memory_mb: 1024
Standard_NC6:
  vcpu: 6
  memory_mb: 57344
  gpu: 1
"""
)


def sku(name: str, *capabilities: tuple[str, str]) -> SkuDescriptor:
    return SkuDescriptor(
        name=name,
        resource_type="virtualMachines",
        locations=[REGION],
        capabilities=list(capabilities),
    )


SKUS: list[SkuDescriptor] = [
    sku("Standard_D4s_v3", ("vCPUs", "4"), ("MemoryGB", "16")),
    sku("Standard_A2m_v2", ("vCPUs", "2"), ("MemoryGB", "7.5")),
    sku("Standard_NC12", ("vCPUs", "12"), ("MemoryGB", "112"), ("GPUs", "2")),
    sku("Standard_DS2_v2", ("vCPUs", "2"), ("MemoryGB", "7")),
    sku("Standard_Broken_vcpu", ("vCPUs", "2.5"), ("MemoryGB", "8")),
    sku(
        "Standard_Broken_gpu", ("vCPUs", "2"), ("MemoryGB", "8"), ("GPUs", "")
    ),
    sku("Standard_Broken_mem", ("vCPUs", "2"), ("MemoryGB", "lots")),
    sku("Standard_No_caps"),
    sku("Standard_Zero_vcpu", ("vCPUs", "0"), ("MemoryGB", "8")),
    sku("Standard_Negative_vcpu", ("vCPUs", "-2"), ("MemoryGB", "8")),
    sku("Standard_Negative_mem", ("vCPUs", "2"), ("MemoryGB", "-4")),
    sku("Standard_NC6", ("vCPUs", "6"), ("MemoryGB", "nan")),
    sku("Standard_Inf_mem", ("vCPUs", "2"), ("MemoryGB", "inf")),
]


class FakeSkuCache:
    def __init__(self, skus: list[SkuDescriptor]):
        self.skus = skus
        self.queries: list[tuple[str, str, str]] = []

    def get(self, name: str, resource_type: str, region: str) -> SkuDescriptor:
        self.queries.append((name, resource_type, region))
        for s in self.skus:
            if (
                s.name.lower() == name.lower()
                and s.resource_type == resource_type
                and s.is_available_in(region)
            ):
                return s
        raise SkuNotFoundError(name, resource_type, region)


def cache_factory_for(cache: FakeSkuCache):
    def _factory(region: str) -> FakeSkuCache:
        assert region == REGION
        return cache

    return _factory


def failing_cache_factory(region: str) -> FakeSkuCache:
    raise CacheConstructionError(region, "credentials expired")


def test_resolve_static_any_casing():
    for name in CATALOG:
        for variant in (name, name.lower(), name.upper()):
            assert resolve_static(variant, CATALOG) == CATALOG[name]


def test_resolve_static_promo_fallback():
    expected = CATALOG["Standard_D2s_v3"]
    for name in (
        "Standard_D2s_v3_Promo",
        "standard_d2s_v3_PROMO",
        "Standard_D2s_Promo_v3",
    ):
        assert resolve_static(name, CATALOG) == expected


def test_resolve_static_exact_promo_entry_wins():
    assert resolve_static("Standard_DS3_v2_Promo", CATALOG).vcpu == 40


def test_resolve_static_not_supported():
    for name in ("Standard_D64s_v3", "Standard_D64s_v3_Promo"):
        with pytest.raises(NotSupportedError) as exc_info:
            resolve_static(name, CATALOG)
        assert exc_info.value.sku_name == name
        assert name in str(exc_info.value)


def test_resolve_dynamic():
    cache = FakeSkuCache(SKUS)
    it = resolve_dynamic(
        VmssTemplate(sku_name="Standard_D4s_v3", location=REGION),
        cache_factory_for(cache),
    )
    assert it == InstanceType(
        instance_type="Standard_D4s_v3", vcpu=4, memory_mb=16384, gpu_count=0
    )
    assert cache.queries == [("Standard_D4s_v3", "virtualMachines", REGION)]


def test_resolve_dynamic_gpu():
    it = resolve_dynamic(
        VmssTemplate(sku_name="standard_nc12", location=REGION),
        cache_factory_for(FakeSkuCache(SKUS)),
    )
    assert it.vcpu == 12
    assert it.gpu_count == 2
    assert it.memory_mb == 112 * 1024


def test_resolve_dynamic_fractional_memory_truncated():
    it = resolve_dynamic(
        VmssTemplate(sku_name="Standard_A2m_v2", location=REGION),
        cache_factory_for(FakeSkuCache(SKUS)),
    )
    assert it.memory_mb == 7168


def test_resolve_dynamic_promo_fallback():
    factory = cache_factory_for(FakeSkuCache(SKUS))
    direct = resolve_dynamic(
        VmssTemplate(sku_name="Standard_DS2_v2", location=REGION), factory
    )
    cache = FakeSkuCache(SKUS)
    via_promo = resolve_dynamic(
        VmssTemplate(sku_name="Standard_DS2_v2_Promo", location=REGION),
        cache_factory_for(cache),
    )
    assert via_promo == direct
    assert [q[0] for q in cache.queries] == [
        "Standard_DS2_v2_Promo",
        "Standard_DS2_v2",
    ]


def test_resolve_dynamic_not_supported():
    cache = FakeSkuCache(SKUS)
    with pytest.raises(NotSupportedError) as exc_info:
        resolve_dynamic(
            VmssTemplate(sku_name="Standard_X1_Promo", location=REGION),
            cache_factory_for(cache),
        )
    assert exc_info.value.sku_name == "Standard_X1_Promo"
    assert "Standard_X1_Promo" in str(exc_info.value)
    assert isinstance(exc_info.value.cause, SkuNotFoundError)
    assert len(cache.queries) == 2


def test_resolve_dynamic_other_region_not_supported():
    cache = FakeSkuCache(SKUS)
    with pytest.raises(NotSupportedError):
        resolve_dynamic(
            VmssTemplate(sku_name="Standard_D4s_v3", location="eastus"),
            lambda region: cache,
        )


def test_resolve_dynamic_cache_construction_error():
    with pytest.raises(CacheConstructionError):
        resolve_dynamic(
            VmssTemplate(sku_name="Standard_D4s_v3", location=REGION),
            failing_cache_factory,
        )


def test_resolve_dynamic_wraps_factory_errors():
    def broken_factory(region: str) -> FakeSkuCache:
        raise ConnectionError("no route to host")

    with pytest.raises(CacheConstructionError) as exc_info:
        resolve_dynamic(
            VmssTemplate(sku_name="Standard_D4s_v3", location=REGION),
            broken_factory,
        )
    assert exc_info.value.region == REGION
    assert isinstance(exc_info.value.__cause__, ConnectionError)
    assert not isinstance(exc_info.value, NotSupportedError)


def test_resolve_dynamic_fact_extraction_errors():
    test_values = [
        ("Standard_Broken_vcpu", "vcpu"),
        ("Standard_Broken_gpu", "gpu"),
        ("Standard_Broken_mem", "memoryMb"),
        ("Standard_No_caps", "vcpu"),
        ("Standard_Zero_vcpu", "vcpu"),
        ("Standard_Negative_vcpu", "vcpu"),
        ("Standard_Negative_mem", "memoryMb"),
        ("Standard_NC6", "memoryMb"),
        ("Standard_Inf_mem", "memoryMb"),
    ]
    for name, fact in test_values:
        with pytest.raises(FactExtractionError) as exc_info:
            resolve_dynamic(
                VmssTemplate(sku_name=name, location=REGION),
                cache_factory_for(FakeSkuCache(SKUS)),
            )
        assert exc_info.value.fact == fact
        assert exc_info.value.sku_name == name
        assert isinstance(exc_info.value.__cause__, ValueError)


def test_get_resolution_strategy():
    assert (
        InstanceTypeResolution.get_resolution_strategy(" Static ")
        is InstanceTypeResolutionStatic
    )
    assert (
        InstanceTypeResolution.get_resolution_strategy(
            RESOLUTION_MODE_DYNAMIC_WITH_STATIC_FALLBACK
        )
        is InstanceTypeResolutionDynamicWithStaticFallback
    )
    with pytest.raises(ValueError):
        InstanceTypeResolution.get_resolution_strategy("fastest")
    assert set(InstanceTypeResolution.get_modes_with_descriptions()) == {
        RESOLUTION_MODE_STATIC,
        RESOLUTION_MODE_DYNAMIC,
        RESOLUTION_MODE_STATIC_WITH_DYNAMIC_FALLBACK,
        RESOLUTION_MODE_DYNAMIC_WITH_STATIC_FALLBACK,
    }


def test_resolve_static_mode_does_no_io():
    it = resolve(
        VmssTemplate(sku_name="Standard_NC6", location=REGION),
        RESOLUTION_MODE_STATIC,
        catalog=CATALOG,
        cache_factory=failing_cache_factory,
    )
    assert it.gpu_count == 1


def test_resolve_static_with_dynamic_fallback():
    cache = FakeSkuCache(SKUS)
    it = resolve(
        VmssTemplate(sku_name="Standard_D2s_v3", location=REGION),
        RESOLUTION_MODE_STATIC_WITH_DYNAMIC_FALLBACK,
        catalog=CATALOG,
        cache_factory=cache_factory_for(cache),
    )
    assert it == CATALOG["Standard_D2s_v3"]
    assert not cache.queries

    it = resolve(
        VmssTemplate(sku_name="Standard_NC12", location=REGION),
        RESOLUTION_MODE_STATIC_WITH_DYNAMIC_FALLBACK,
        catalog=CATALOG,
        cache_factory=cache_factory_for(cache),
    )
    assert it.gpu_count == 2


def test_resolve_dynamic_with_static_fallback():
    it = resolve(
        VmssTemplate(sku_name="Standard_NC6", location=REGION),
        RESOLUTION_MODE_DYNAMIC_WITH_STATIC_FALLBACK,
        catalog=CATALOG,
        cache_factory=failing_cache_factory,
    )
    assert it == CATALOG["Standard_NC6"]

    it = resolve(
        VmssTemplate(sku_name="Standard_DS2_v2", location=REGION),
        RESOLUTION_MODE_DYNAMIC_WITH_STATIC_FALLBACK,
        catalog=CATALOG,
        cache_factory=cache_factory_for(FakeSkuCache(SKUS)),
    )
    assert it.memory_mb == 7168

    with pytest.raises(NotSupportedError):
        resolve(
            VmssTemplate(sku_name="Standard_X1", location=REGION),
            RESOLUTION_MODE_DYNAMIC_WITH_STATIC_FALLBACK,
            catalog=CATALOG,
            cache_factory=failing_cache_factory,
        )


def test_resolve_dynamic_mode_propagates_cache_errors():
    with pytest.raises(CacheConstructionError):
        resolve(
            VmssTemplate(sku_name="Standard_NC6", location=REGION),
            RESOLUTION_MODE_DYNAMIC,
            catalog=CATALOG,
            cache_factory=failing_cache_factory,
        )


def test_resolve_missing_dependencies():
    template = VmssTemplate(sku_name="Standard_NC6", location=REGION)
    with pytest.raises(ValueError):
        resolve(template, RESOLUTION_MODE_STATIC)
    with pytest.raises(ValueError):
        resolve(template, RESOLUTION_MODE_DYNAMIC, catalog=CATALOG)


def test_resolve_dynamic_with_static_fallback_on_malformed_memory():
    it = resolve(
        VmssTemplate(sku_name="Standard_NC6", location=REGION),
        RESOLUTION_MODE_DYNAMIC_WITH_STATIC_FALLBACK,
        catalog=CATALOG,
        cache_factory=cache_factory_for(FakeSkuCache(SKUS)),
    )
    assert it == CATALOG["Standard_NC6"]
