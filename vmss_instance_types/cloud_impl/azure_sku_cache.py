import glob
import json
import logging
import os
import time
from datetime import date

import requests
from azure.core.credentials import TokenCredential

from vmss_instance_types.cloud_impl.azure_client import (
    get_auth_headers,
    get_credential,
)
from vmss_instance_types.cloud_impl.cloud_structs import SkuDescriptor
from vmss_instance_types.constants import (
    AZURE_API_TIMEOUT_S,
    AZURE_MGMT_URL,
    AZURE_SKUS_API_VERSION,
    DEFAULT_CONFIG_DIR,
    SKU_CACHE_FILE_RETENTION_DAYS,
    SKU_CACHE_TTL_S,
)
from vmss_instance_types.exceptions import (
    CacheConstructionError,
    SkuNotFoundError,
)
from vmss_instance_types.util import (
    get_default_azure_subscription_id_from_local_profile,
    timed_cache,
)

CONFIG_DIR_SKU_CACHE_SUBDIR = "sku_cache"

logger = logging.getLogger(__name__)
logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_sku_cache_dir(config_dir: str = DEFAULT_CONFIG_DIR) -> str:
    return os.path.expanduser(
        os.path.join(config_dir, CONFIG_DIR_SKU_CACHE_SUBDIR)
    )


def get_cached_sku_listing(
    cache_file: str, config_dir: str = DEFAULT_CONFIG_DIR
) -> list[dict]:
    cache_path = os.path.join(get_sku_cache_dir(config_dir), cache_file)
    if os.path.exists(cache_path):
        logger.debug("Reading cached Azure SKU listing: %s", cache_path)
        try:
            with open(cache_path, "r") as f:
                sku_listing = json.loads(f.read())
            if isinstance(sku_listing, list) and all(
                isinstance(x, dict) for x in sku_listing
            ):
                return sku_listing
            logger.error(
                "Unexpected cached Azure SKU listing format in: %s, ignoring",
                cache_path,
            )
        except Exception:
            logger.error(
                "Failed to read cached Azure SKU listing from: %s", cache_path
            )
    return []


def write_sku_cache_file_as_json(
    cache_file: str,
    sku_listing: list[dict],
    config_dir: str = DEFAULT_CONFIG_DIR,
) -> None:
    cache_dir = get_sku_cache_dir(config_dir)
    os.makedirs(cache_dir, exist_ok=True)
    with open(os.path.join(cache_dir, cache_file), "w") as f:
        json.dump(sku_listing, f)


def try_clean_up_old_sku_cache_files(
    older_than_days: int, config_dir: str = DEFAULT_CONFIG_DIR
) -> None:
    """Delete old per region JSON files
    ~/.vmss-instance-types/sku_cache/azure_skus_westeurope_20241115.json
    """
    epoch = time.time()
    for pd in sorted(
        glob.glob(os.path.join(get_sku_cache_dir(config_dir), "azure_skus_*"))
    ):
        try:
            st = os.stat(pd)
            if epoch - st.st_mtime > 3600 * 24 * older_than_days:
                os.unlink(pd)
        except Exception:
            logger.info("Failed to clean up old SKU listing JSON %s", pd)


def list_resource_skus_via_http(
    region: str, subscription_id: str, credential: TokenCredential
) -> list[dict]:
    """Pages through the ARM Resource SKUs API:
    https://management.azure.com/subscriptions/{id}/providers/Microsoft.Compute/skus?$filter=location eq 'westeurope'
    """
    headers = get_auth_headers(credential)
    url = (
        f"{AZURE_MGMT_URL}/subscriptions/{subscription_id}/providers/"
        f"Microsoft.Compute/skus?api-version={AZURE_SKUS_API_VERSION}"
        f"&$filter=location eq '{region}'"
    )
    skus: list[dict] = []
    while url:
        logger.debug("requests.get: %s", url)
        r = requests.get(url, headers=headers, timeout=AZURE_API_TIMEOUT_S)
        if r.status_code != 200:
            logger.error(
                "Failed to retrieve Azure SKU listing - retcode: %s, URL: %s",
                r.status_code,
                url,
            )
            raise CacheConstructionError(
                region, f"Resource SKUs API returned HTTP {r.status_code}"
            )
        data = r.json()
        skus.extend(data.get("value", []))
        url = data.get("nextLink")
    return skus


def get_resource_skus_for_region(
    region: str,
    subscription_id: str,
    credential: TokenCredential,
    config_dir: str = DEFAULT_CONFIG_DIR,
) -> list[dict]:
    today = date.today()
    cache_file = (
        f"azure_skus_{region.lower()}_{today.strftime('%Y%m%d')}.json"
    )
    cached_listing = get_cached_sku_listing(cache_file, config_dir)
    if cached_listing:
        return cached_listing

    logger.debug(
        "Fetching Azure SKU listing for region %s to %s ...",
        region,
        cache_file,
    )
    sku_listing = list_resource_skus_via_http(
        region, subscription_id, credential
    )
    if not sku_listing:
        raise CacheConstructionError(
            region, "Resource SKUs API returned no SKUs"
        )

    try:
        write_sku_cache_file_as_json(cache_file, sku_listing, config_dir)
        try_clean_up_old_sku_cache_files(
            SKU_CACHE_FILE_RETENTION_DAYS, config_dir
        )
    except OSError:
        logger.warning(
            "Failed to store Azure SKU listing for region %s under %s",
            region,
            config_dir,
        )
    return sku_listing


class SkuCache:
    """Region scoped, read-only after construction"""

    def __init__(self, region: str, skus: list[SkuDescriptor]):
        self.region = region
        self.skus = skus

    @classmethod
    def construct(
        cls,
        region: str,
        subscription_id: str = "",
        credential: TokenCredential | None = None,
        config_dir: str = DEFAULT_CONFIG_DIR,
    ) -> "SkuCache":
        if not region:
            raise CacheConstructionError(region, "no region given")
        subscription_id = (
            subscription_id
            or get_default_azure_subscription_id_from_local_profile()
            or ""
        )
        if not subscription_id:
            raise CacheConstructionError(
                region,
                "no subscription ID given and no default AZ CLI profile found",
            )
        try:
            sku_listing = get_resource_skus_for_region(
                region,
                subscription_id,
                credential or get_credential(),
                config_dir,
            )
        except CacheConstructionError:
            raise
        except Exception as e:
            logger.error(
                "Failed to instantiate SKU cache for region %s: %s", region, e
            )
            raise CacheConstructionError(region, e) from e
        logger.debug(
            "SKU cache for region %s holds %s SKUs", region, len(sku_listing)
        )
        return cls(region, [SkuDescriptor.from_arm(x) for x in sku_listing])

    def get(self, name: str, resource_type: str, region: str) -> SkuDescriptor:
        for sku in self.skus:
            if (
                sku.name.lower() == name.lower()
                and sku.resource_type == resource_type
                and sku.is_available_in(region)
            ):
                return sku
        raise SkuNotFoundError(name, resource_type, region)


@timed_cache(seconds=SKU_CACHE_TTL_S)
def get_sku_cache(
    region: str,
    subscription_id: str = "",
    config_dir: str = DEFAULT_CONFIG_DIR,
) -> SkuCache:
    return SkuCache.construct(
        region, subscription_id=subscription_id, config_dir=config_dir
    )
