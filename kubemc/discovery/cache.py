"""Resolution from kubectl's on-disk discovery cache.

kubectl stores one ``APIResourceList`` JSON document per group/version under
``<cache-dir>/discovery/<host key>/``. Reading those files avoids a discovery
round trip for every invocation against a server kubectl has already seen.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Any, List, Optional, Set

from kubemc.discovery.base import first_match, parse_resource_list
from kubemc.models import AliasEntry, ResolvedResource

logger = logging.getLogger(__name__)

_HOST_KEY_INVALID = re.compile(r"[^\w.]", re.ASCII)


def host_cache_key(server_url: str) -> str:
    """Derive the cache directory name kubectl uses for ``server_url``.

    >>> host_cache_key("https://carson.cloud.example.io:443")
    'carson.cloud.example.io_443'
    """

    host = server_url.replace("https://", "").replace("http://", "").replace("/", "")
    return _HOST_KEY_INVALID.sub("_", host)


class DiskDiscoveryCache:
    """Discovery backend reading a pre-populated cache tree."""

    name = "cache"

    def __init__(self, cache_root: Path | str) -> None:
        self.cache_root = Path(cache_root)

    def host_dir(self, server_url: str) -> Path:
        return self.cache_root / host_cache_key(server_url)

    def load_entries(self, server_url: str) -> List[AliasEntry]:
        """Parse every readable resource list cached for ``server_url``."""

        entries: List[AliasEntry] = []
        for path in _collect_json_files(self.host_dir(server_url)):
            try:
                document = json.loads(path.read_text(encoding="utf-8"))
                entries.extend(parse_resource_list(document))
            except (OSError, UnicodeDecodeError, ValueError, RecursionError) as exc:
                logger.debug("Skipping discovery cache file %s: %s", path, exc)
        return entries

    def lookup(self, server_url: str, name: str) -> Optional[ResolvedResource]:
        host_dir = self.host_dir(server_url)
        if not host_dir.is_dir():
            logger.debug("No discovery cache for %s at %s", server_url, host_dir)
            return None
        entry = first_match(self.load_entries(server_url), name)
        if entry is None:
            logger.debug("Discovery cache for %s has no alias %r", server_url, name)
            return None
        return ResolvedResource.from_entry(entry, self.name)

    async def find(self, connection: Any, name: str) -> Optional[ResolvedResource]:
        return await asyncio.to_thread(self.lookup, connection.server, name)


def _collect_json_files(root: Path, visited: Optional[Set[Path]] = None) -> List[Path]:
    """Walk ``root`` recursively, skipping anything that cannot be read.

    Each real directory is entered once, so symlink loops end the walk
    instead of recursing forever.
    """

    files: List[Path] = []
    visited = set() if visited is None else visited
    try:
        real_root = root.resolve()
        if real_root in visited:
            logger.debug("Skipping already visited cache directory %s", root)
            return files
        visited.add(real_root)
        children = sorted(root.iterdir())
    except (OSError, RuntimeError) as exc:
        logger.debug("Cannot read discovery cache directory %s: %s", root, exc)
        return files

    for child in children:
        try:
            if child.is_dir():
                files.extend(_collect_json_files(child, visited))
            elif child.is_file() and child.suffix == ".json":
                files.append(child)
        except OSError as exc:
            logger.debug("Skipping discovery cache entry %s: %s", child, exc)
    return files
