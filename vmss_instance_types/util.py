import datetime
import functools
import json
import logging
import os

logger = logging.getLogger(__name__)


def get_default_azure_subscription_id_from_local_profile() -> str | None:
    """Assumes AZ CLI login done"""
    local_az_profile_file = os.path.expanduser("~/.azure/azureProfile.json")

    profiles = {}
    try:
        with open(local_az_profile_file) as f:
            profiles = json.loads(f.read().replace("\uFEFF", ""))
    except Exception:
        logger.debug(
            "Could not read local Azure CLI profile from %s",
            local_az_profile_file,
        )
    if not profiles:
        return None
    default_profile = [
        p for p in profiles.get("subscriptions", []) if p.get("isDefault")
    ]
    if not default_profile:
        return None
    return default_profile[0].get("id")


def timed_cache(**timedelta_kwargs):
    """From https://gist.github.com/Morreski/c1d08a3afa4040815eafd3891e16b945"""

    def _wrapper(f):
        update_delta = datetime.timedelta(**timedelta_kwargs)
        next_update = (
            datetime.datetime.now(datetime.timezone.utc) + update_delta
        )
        # Apply @lru_cache to f with no cache size limit
        f = functools.lru_cache(None)(f)

        @functools.wraps(f)
        def _wrapped(*args, **kwargs):
            nonlocal next_update
            now = datetime.datetime.now(datetime.timezone.utc)
            if now >= next_update:
                f.cache_clear()
                next_update = now + update_delta
            return f(*args, **kwargs)

        _wrapped.cache_clear = f.cache_clear
        return _wrapped

    return _wrapper
