"""Resource discovery backends and the resolver that chains them."""

from .base import DiscoveryBackend, build_alias_set, first_match, parse_resource_list
from .builtin import BuiltinResources
from .cache import DiskDiscoveryCache, host_cache_key
from .live import LiveDiscovery, version_priority
from .resolver import ResourceResolver

__all__ = [
    "BuiltinResources",
    "DiscoveryBackend",
    "DiskDiscoveryCache",
    "LiveDiscovery",
    "ResourceResolver",
    "build_alias_set",
    "first_match",
    "host_cache_key",
    "parse_resource_list",
    "version_priority",
]
