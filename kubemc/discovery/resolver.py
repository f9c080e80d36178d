"""Cache-then-live resolution of user-typed resource names."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, List, Optional

from kubemc.discovery.base import DiscoveryBackend
from kubemc.discovery.builtin import BuiltinResources
from kubemc.discovery.cache import DiskDiscoveryCache
from kubemc.discovery.live import LiveDiscovery
from kubemc.errors import KubeMCError, ResourceNotFoundError
from kubemc.models import ResolvedResource

logger = logging.getLogger(__name__)


class ResourceResolver:
    """Ask each backend in order until one knows the resource.

    Backends are consulted in the order given; a miss or a backend error
    falls through to the next one.
    """

    def __init__(self, backends: Iterable[DiscoveryBackend]) -> None:
        self._backends: List[DiscoveryBackend] = list(backends)
        if not self._backends:
            raise ValueError("ResourceResolver needs at least one backend")

    @classmethod
    def default(
        cls,
        cache_root: Path | str,
        *,
        builtin: bool = False,
        request_timeout: Optional[float] = None,
    ) -> "ResourceResolver":
        """Disk cache first, live discovery second, optional built-in table first."""

        backends: List[DiscoveryBackend] = []
        if builtin:
            backends.append(BuiltinResources())
        backends.append(DiskDiscoveryCache(cache_root))
        backends.append(LiveDiscovery(request_timeout=request_timeout))
        return cls(backends)

    @property
    def backends(self) -> List[DiscoveryBackend]:
        return list(self._backends)

    async def resolve(self, connection: Any, name: str) -> ResolvedResource:
        cluster = getattr(connection, "name", None)
        last_error: Optional[KubeMCError] = None
        for backend in self._backends:
            try:
                resolved = await backend.find(connection, name)
            except KubeMCError as exc:
                logger.debug("%s discovery failed for %s: %s", backend.name, cluster, exc)
                last_error = exc
                continue
            if resolved is not None:
                logger.debug(
                    "Resolved %r to %s/%s via %s for %s",
                    name,
                    resolved.descriptor.api_version,
                    resolved.descriptor.plural,
                    backend.name,
                    cluster,
                )
                return resolved
        raise ResourceNotFoundError(name, cluster=cluster) from last_error
