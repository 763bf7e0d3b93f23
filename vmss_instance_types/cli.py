import functools
import logging
import os

from prettytable import PrettyTable
from tap import Tap

from vmss_instance_types.cloud_impl.azure_client import set_credentials
from vmss_instance_types.cloud_impl.azure_sku_cache import get_sku_cache
from vmss_instance_types.cloud_impl.cloud_structs import (
    InstanceType,
    VmssTemplate,
)
from vmss_instance_types.constants import (
    DEFAULT_CONFIG_DIR,
    DEFAULT_RESOLUTION_MODE,
    RESOLUTION_MODE_DYNAMIC,
    RESOLUTION_MODE_STATIC,
)
from vmss_instance_types.exceptions import InstanceTypeResolutionError
from vmss_instance_types.instance_type_resolution import (
    InstanceTypeResolution,
    resolve,
)
from vmss_instance_types.static_catalog import load_static_catalog

logger = logging.getLogger(__name__)


def str_to_bool(param: str) -> bool:
    if not param:
        return False
    if param.strip().lower() == "on":
        return True
    if param.strip().lower()[0] == "t":
        return True
    if param.strip().lower()[0] == "y":
        return True
    return False


class ArgumentParser(Tap):
    sku: str = os.getenv("VMSSIT_SKU", "")  # E.g. Standard_D2s_v3
    region: str = os.getenv(
        "VMSSIT_REGION", ""
    )  # Scale set location, e.g. westeurope. Not needed for --mode=static
    mode: str = os.getenv(
        "VMSSIT_MODE", DEFAULT_RESOLUTION_MODE
    )  # See --list-modes
    subscription_id: str = os.getenv(
        "VMSSIT_SUBSCRIPTION_ID", ""
    )  # Defaults to the AZ CLI default subscription
    catalog_path: str = os.getenv(
        "VMSSIT_CATALOG_PATH", ""
    )  # Non-default static catalog YAML
    config_dir: str = os.getenv(
        "VMSSIT_CONFIG_DIR", DEFAULT_CONFIG_DIR
    )  # SKU listing disk cache location
    azure_tenant_id: str = os.getenv("VMSSIT_AZURE_TENANT_ID", "")
    azure_client_id: str = os.getenv("VMSSIT_AZURE_CLIENT_ID", "")
    azure_client_secret: str = os.getenv("VMSSIT_AZURE_CLIENT_SECRET", "")
    list_modes: bool = str_to_bool(
        os.getenv("VMSSIT_LIST_MODES", "false")
    )  # Display available resolution modes and exit
    list_catalog: bool = str_to_bool(
        os.getenv("VMSSIT_LIST_CATALOG", "false")
    )  # Display the static catalog and exit
    verbose: bool = str_to_bool(
        os.getenv("VMSSIT_VERBOSE", "false")
    )  # More chat


def validate_and_parse_args() -> ArgumentParser:
    args = ArgumentParser(
        prog="vmss-instance-types",
        description="Resolves Azure VMSS SKUs to vCPU / memory / GPU capacity",
        underscores_to_dashes=True,
    ).parse_args()

    return args


def check_cli_args_valid(args: ArgumentParser) -> None:
    if args.list_modes or args.list_catalog:
        return
    if not args.sku:
        logger.error("--sku input expected")
        exit(1)
    try:
        InstanceTypeResolution.get_resolution_strategy(args.mode)
    except ValueError as e:
        logger.error("%s. Run --list-modes for details", e)
        exit(1)
    if args.mode.lower().strip() != RESOLUTION_MODE_STATIC and not args.region:
        logger.error("--region input expected for --mode=%s", args.mode)
        exit(1)


def get_resolution_failure_hint(mode: str) -> str:
    if mode.lower().strip() == RESOLUTION_MODE_DYNAMIC:
        return "Check Azure credentials and --region / --subscription-id"
    return ""


def instance_types_to_table(instance_types: list[InstanceType]) -> PrettyTable:
    tab = PrettyTable(["Instance type", "vCPU", "Memory (MB)", "GPU"])
    tab.align["Instance type"] = "l"
    for it in instance_types:
        tab.add_row([it.instance_type, it.vcpu, it.memory_mb, it.gpu_count])
    return tab


def list_modes_and_exit() -> None:
    tab = PrettyTable(["Mode", "Description"])
    tab.align = "l"
    modes = InstanceTypeResolution.get_modes_with_descriptions()
    for mode, descr in modes.items():
        tab.add_row([mode, descr])
    print(tab)
    exit(0)


def main():  # pragma: no cover
    args = validate_and_parse_args()

    logging.basicConfig(
        format=(
            "%(asctime)s %(levelname)s %(threadName)s %(filename)s:%(lineno)d %(message)s"
            if args.verbose
            else "%(message)s"
        ),
        level=(logging.DEBUG if args.verbose else logging.INFO),
    )

    if args.list_modes:
        list_modes_and_exit()

    check_cli_args_valid(args)

    catalog = load_static_catalog(args.catalog_path or None)

    if args.list_catalog:
        print(instance_types_to_table(list(catalog.values())))
        exit(0)

    set_credentials(
        tenant_id=args.azure_tenant_id,
        client_id=args.azure_client_id,
        client_secret=args.azure_client_secret,
    )
    cache_factory = functools.partial(
        get_sku_cache,
        subscription_id=args.subscription_id,
        config_dir=args.config_dir,
    )

    template = VmssTemplate(sku_name=args.sku, location=args.region)
    try:
        instance_type = resolve(template, args.mode, catalog, cache_factory)
    except InstanceTypeResolutionError as e:
        logger.error("Failed to resolve SKU %s: %s", args.sku, e)
        hint = get_resolution_failure_hint(args.mode)
        if hint:
            logger.error(hint)
        exit(1)

    print(instance_types_to_table([instance_type]))
