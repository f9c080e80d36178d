"""Well-known core and apps resources that never need discovery."""

from __future__ import annotations

from typing import Any, List, Optional, Tuple

from kubemc.discovery.base import build_alias_set, first_match
from kubemc.models import AliasEntry, ResolvedResource, ResourceDescriptor, Scope

# (api_version, kind, plural, short names, scope)
_WELL_KNOWN: List[Tuple[str, str, str, Tuple[str, ...], Scope]] = [
    ("v1", "Pod", "pods", ("po",), Scope.NAMESPACED),
    ("v1", "Node", "nodes", ("no",), Scope.CLUSTER),
    ("v1", "Namespace", "namespaces", ("ns",), Scope.CLUSTER),
    ("v1", "ConfigMap", "configmaps", ("cm",), Scope.NAMESPACED),
    ("v1", "Secret", "secrets", (), Scope.NAMESPACED),
    ("v1", "Service", "services", ("svc",), Scope.NAMESPACED),
    ("v1", "PersistentVolumeClaim", "persistentvolumeclaims", ("pvc",), Scope.NAMESPACED),
    ("apps/v1", "Deployment", "deployments", ("deploy",), Scope.NAMESPACED),
    ("apps/v1", "DaemonSet", "daemonsets", ("ds",), Scope.NAMESPACED),
    ("apps/v1", "ReplicaSet", "replicasets", ("rs",), Scope.NAMESPACED),
    ("apps/v1", "StatefulSet", "statefulsets", ("sts",), Scope.NAMESPACED),
]


def _build_entries() -> List[AliasEntry]:
    entries = []
    for api_version, kind, plural, short_names, scope in _WELL_KNOWN:
        group, _, version = api_version.rpartition("/")
        descriptor = ResourceDescriptor(
            group=group,
            version=version,
            api_version=api_version,
            kind=kind,
            plural=plural,
        )
        entries.append(
            AliasEntry(
                descriptor=descriptor,
                scope=scope,
                aliases=build_alias_set(kind, plural, short_names),
            )
        )
    return entries


class BuiltinResources:
    """Discovery backend answering from a fixed table."""

    name = "builtin"

    def __init__(self) -> None:
        self._entries = _build_entries()

    def lookup(self, name: str) -> Optional[ResolvedResource]:
        entry = first_match(self._entries, name)
        if entry is None:
            return None
        return ResolvedResource.from_entry(entry, self.name)

    async def find(self, connection: Any, name: str) -> Optional[ResolvedResource]:
        return self.lookup(name)
