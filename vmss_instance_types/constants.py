DEFAULT_CONFIG_DIR = "~/.vmss-instance-types"

# Azure Resource SKUs API resource types
RESOURCE_TYPE_VIRTUAL_MACHINES = "virtualMachines"

AZURE_MGMT_URL = "https://management.azure.com"
AZURE_SKUS_API_VERSION = "2021-07-01"
AZURE_API_TIMEOUT_S = 60

# SKU capability names as listed by Microsoft.Compute/skus
CAPABILITY_VCPUS = "vCPUs"
CAPABILITY_MEMORY_GB = "MemoryGB"
CAPABILITY_GPUS = "GPUs"

# Promotional pricing tier marker, e.g. Standard_DS2_v2_Promo
PROMO_SKU_MARKER = "_promo"

RESOLUTION_MODE_STATIC = "static"
RESOLUTION_MODE_DYNAMIC = "dynamic"
RESOLUTION_MODE_STATIC_WITH_DYNAMIC_FALLBACK = "static-with-dynamic-fallback"
RESOLUTION_MODE_DYNAMIC_WITH_STATIC_FALLBACK = "dynamic-with-static-fallback"

DEFAULT_RESOLUTION_MODE = RESOLUTION_MODE_DYNAMIC_WITH_STATIC_FALLBACK

SKU_CACHE_TTL_S = 3600
SKU_CACHE_FILE_RETENTION_DAYS = 7
