from vmss_instance_types.cloud_impl.cloud_structs import SkuDescriptor
from vmss_instance_types.constants import CAPABILITY_GPUS, PROMO_SKU_MARKER


def is_promo_sku(sku_name: str) -> bool:
    return PROMO_SKU_MARKER in sku_name.lower()


def strip_promo_suffix(sku_name: str) -> str:
    """Standard_DS2_v2_Promo -> Standard_DS2_v2. All occurrences are removed,
    not only a trailing one, and the rest of the name keeps its casing"""
    marker_len = len(PROMO_SKU_MARKER)
    stripped = ""
    i = 0
    while i < len(sku_name):
        if sku_name[i : i + marker_len].lower() == PROMO_SKU_MARKER:
            i += marker_len
        else:
            stripped += sku_name[i]
            i += 1
    return stripped


def is_same_sku_family(sku_name_a: str, sku_name_b: str) -> bool:
    return (
        strip_promo_suffix(sku_name_a).lower()
        == strip_promo_suffix(sku_name_b).lower()
    )


def get_gpu_count_from_sku(sku: SkuDescriptor) -> int:
    """0 if no GPUs capability listed. Malformed values raise"""
    if not sku.capabilities:
        raise ValueError(f"sku capabilities are empty for SKU {sku.name}")
    gpus = sku.capability(CAPABILITY_GPUS)
    if gpus is None:
        return 0
    gpu_count = int(gpus)
    if gpu_count < 0:
        raise ValueError(f"negative GPU count {gpus} for SKU {sku.name}")
    return gpu_count


def memory_gb_to_mb(memory_gb: float) -> int:
    """Whole gigabytes only, 7.5 GB -> 7168 MB"""
    return int(memory_gb) * 1024
