"""Resolution against a live API server's discovery endpoints."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from kubernetes.client import ApiClient
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from kubemc.discovery.base import parse_resource_list
from kubemc.errors import ClusterConnectionError
from kubemc.models import AliasEntry, ResolvedResource

logger = logging.getLogger(__name__)

_VERSION_PATTERN = re.compile(r"^v(\d+)(?:(alpha|beta)(\d+))?$")
_STABILITY = {None: 2, "beta": 1, "alpha": 0}


def version_priority(version: str) -> Tuple[int, int, int]:
    """Sort key ranking Kubernetes API versions from most to least stable.

    GA versions come first, then beta, then alpha, each with the highest
    number first. Versions that do not follow the convention sort last.
    Use with ``sorted(..., key=version_priority, reverse=True)``.
    """

    match = _VERSION_PATTERN.match(version)
    if not match:
        return (-1, 0, 0)
    major, stability, minor = match.groups()
    return (_STABILITY[stability], int(major), int(minor or 0))


def get_json(
    api_client: ApiClient, path: str, request_timeout: Optional[float] = None
) -> Any:
    """GET ``path`` and return the decoded JSON body."""

    return api_client.call_api(
        path,
        "GET",
        header_params={"Accept": "application/json"},
        auth_settings=["BearerToken"],
        response_type="object",
        _return_http_data_only=True,
        _request_timeout=request_timeout,
    )


class LiveDiscovery:
    """Discovery backend asking the connected server for its catalog."""

    name = "live"

    def __init__(self, request_timeout: Optional[float] = None) -> None:
        self.request_timeout = request_timeout

    def group_versions(self, api_client: ApiClient) -> Dict[str, List[str]]:
        """Map each API group to its versions, most preferred first."""

        try:
            core = get_json(api_client, "/api", self.request_timeout) or {}
            groups = get_json(api_client, "/apis", self.request_timeout) or {}
        except (ApiException, HTTPError, OSError) as exc:
            raise ClusterConnectionError(
                f"failed to discover api resources: {exc}"
            ) from exc

        catalog: Dict[str, List[str]] = {
            "": _ordered_versions(core.get("versions") or [], None)
        }
        for group in groups.get("groups") or []:
            versions = [v.get("version") for v in group.get("versions") or []]
            preferred = (group.get("preferredVersion") or {}).get("version")
            catalog[group.get("name", "")] = _ordered_versions(
                [v for v in versions if v], preferred
            )
        return catalog

    def group_entries(
        self, api_client: ApiClient, group: str, versions: Iterable[str]
    ) -> List[AliasEntry]:
        """Resources of ``group``, each taken from its most stable version."""

        seen = set()
        entries: List[AliasEntry] = []
        for version in versions:
            group_version = f"{group}/{version}" if group else version
            path = f"/apis/{group_version}" if group else f"/api/{version}"
            try:
                document = get_json(api_client, path, self.request_timeout)
                listed = parse_resource_list(document)
            except (ApiException, HTTPError, OSError, ValueError) as exc:
                logger.debug("Skipping %s during discovery: %s", group_version, exc)
                continue
            for entry in listed:
                if entry.descriptor.plural in seen:
                    continue
                seen.add(entry.descriptor.plural)
                entries.append(entry)
        return entries

    def lookup(self, api_client: ApiClient, name: str) -> Optional[ResolvedResource]:
        # min() over group names mirrors kubectl's group preference
        matches = []
        for group, versions in self.group_versions(api_client).items():
            for entry in self.group_entries(api_client, group, versions):
                if entry.matches(name):
                    matches.append((group, entry))
                    break
        if not matches:
            return None
        _, entry = min(matches, key=lambda match: match[0])
        return ResolvedResource.from_entry(entry, self.name)

    async def find(self, connection: Any, name: str) -> Optional[ResolvedResource]:
        return await asyncio.to_thread(self.lookup, connection.api_client, name)


def _ordered_versions(versions: List[str], preferred: Optional[str]) -> List[str]:
    ordered = sorted(versions, key=version_priority, reverse=True)
    if preferred and preferred in ordered:
        ordered.remove(preferred)
        ordered.insert(0, preferred)
    return ordered
