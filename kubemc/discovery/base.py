"""Discovery backend interface and the matching rules every backend shares."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from kubemc.models import AliasEntry, ResolvedResource, ResourceDescriptor, Scope


class DiscoveryBackend(Protocol):
    """A source able to turn a resource name into a descriptor and scope."""

    name: str

    async def find(self, connection: Any, name: str) -> Optional[ResolvedResource]:
        """Return the resource for ``name`` or None when this backend misses."""


def split_group_version(group_version: str) -> Tuple[str, str]:
    """Split ``apps/v1`` into ``("apps", "v1")`` and ``v1`` into ``("", "v1")``."""

    if "/" in group_version:
        group, version = group_version.split("/", 1)
        return group, version
    return "", group_version


def build_alias_set(
    kind: str, plural: str, short_names: Optional[Iterable[str]] = None
) -> frozenset:
    aliases = {kind.lower(), plural.lower()}
    aliases.update(short.lower() for short in short_names or ())
    return frozenset(aliases)


def parse_resource_list(document: Any) -> List[AliasEntry]:
    """Build alias entries from one ``APIResourceList`` document.

    Raises ValueError when the document does not have the expected shape so
    callers can decide whether a bad document is fatal.
    """

    if not isinstance(document, dict):
        raise ValueError("resource list must be a JSON object")
    group_version = document.get("groupVersion")
    resources = document.get("resources")
    if not isinstance(group_version, str) or not group_version:
        raise ValueError("resource list has no groupVersion")
    if not isinstance(resources, list):
        raise ValueError(f"resource list {group_version} has no resources")

    group, version = split_group_version(group_version)
    entries: List[AliasEntry] = []
    for resource in resources:
        entry = _entry_from_resource(resource, group, version, group_version)
        if entry is not None:
            entries.append(entry)
    return entries


def _entry_from_resource(
    resource: Dict[str, Any], group: str, version: str, group_version: str
) -> Optional[AliasEntry]:
    if not isinstance(resource, dict):
        raise ValueError(f"malformed resource in {group_version}")
    name = resource.get("name")
    kind = resource.get("kind")
    namespaced = resource.get("namespaced")
    if not isinstance(name, str) or not isinstance(kind, str):
        raise ValueError(f"resource in {group_version} is missing name or kind")
    if not isinstance(namespaced, bool):
        raise ValueError(f"resource {name} in {group_version} has no namespaced flag")
    short_names = resource.get("shortNames") or []
    if not isinstance(short_names, list) or not all(
        isinstance(short, str) for short in short_names
    ):
        raise ValueError(f"resource {name} in {group_version} has invalid shortNames")

    # subresources such as pods/log share the parent's kind
    if "/" in name:
        return None

    descriptor = ResourceDescriptor(
        group=group,
        version=version,
        api_version=group_version,
        kind=kind,
        plural=name,
    )
    return AliasEntry(
        descriptor=descriptor,
        scope=Scope.NAMESPACED if namespaced else Scope.CLUSTER,
        aliases=build_alias_set(kind, name, short_names),
    )


def first_match(entries: Iterable[AliasEntry], name: str) -> Optional[AliasEntry]:
    for entry in entries:
        if entry.matches(name):
            return entry
    return None
