"""Data model shared by discovery, the client factory and the fan-out executor."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterator, List, Optional

from kubemc.errors import KubeMCError


class Scope(str, Enum):
    """Whether a resource type lives inside a namespace."""

    CLUSTER = "cluster"
    NAMESPACED = "namespaced"


@dataclass(frozen=True)
class ResourceDescriptor:
    """Fully-qualified identity of a REST collection type."""

    group: str
    version: str
    api_version: str
    kind: str
    plural: str

    @property
    def base_path(self) -> str:
        if not self.group:
            return f"/api/{self.version}"
        return f"/apis/{self.group}/{self.version}"

    def collection_path(self, namespace: Optional[str] = None) -> str:
        """REST path of the collection, cluster-wide when ``namespace`` is None."""

        if namespace:
            return f"{self.base_path}/namespaces/{namespace}/{self.plural}"
        return f"{self.base_path}/{self.plural}"


@dataclass(frozen=True)
class AliasEntry:
    """A descriptor and scope reachable by any of its lowercase aliases."""

    descriptor: ResourceDescriptor
    scope: Scope
    aliases: FrozenSet[str]

    def matches(self, name: str) -> bool:
        return name.lower() in self.aliases


@dataclass(frozen=True)
class ResolvedResource:
    """Result of a discovery lookup.

    ``source`` records which backend answered; it does not take part in
    equality so the same resource resolved from the cache and from the live
    server compares equal.
    """

    descriptor: ResourceDescriptor
    scope: Scope
    source: str = field(default="", compare=False)

    @classmethod
    def from_entry(cls, entry: AliasEntry, source: str) -> "ResolvedResource":
        return cls(descriptor=entry.descriptor, scope=entry.scope, source=source)


@dataclass(frozen=True)
class ClusterTarget:
    """Connection coordinates for one cluster, as read from the config."""

    name: str
    context: Optional[str] = None
    cluster: Optional[str] = None
    user: Optional[str] = None
    kubeconfig: Optional[str] = None


class PipelineStage(str, Enum):
    """Progress of one cluster through connect, resolve and list."""

    NOT_STARTED = "not-started"
    CONNECTED = "connected"
    RESOLVED = "resolved"
    LISTED = "listed"
    FAILED = "failed"


@dataclass
class ClusterPipelineState:
    """Working record for a single cluster; owned by exactly one task."""

    target: ClusterTarget
    stage: PipelineStage = PipelineStage.NOT_STARTED
    failed_stage: Optional[PipelineStage] = None
    connection: Any = None
    resolved: Optional[ResolvedResource] = None
    client: Any = None
    items: Optional[List[Dict[str, Any]]] = None
    error: Optional[KubeMCError] = None

    def advance(self, stage: PipelineStage) -> None:
        if self.stage in (PipelineStage.LISTED, PipelineStage.FAILED):
            raise RuntimeError(f"pipeline for {self.target.name} already finished")
        self.stage = stage

    def fail(self, error: KubeMCError) -> None:
        if self.stage is PipelineStage.FAILED:
            return
        self.failed_stage = self.stage
        self.stage = PipelineStage.FAILED
        self.error = error


@dataclass
class ListOutcome:
    """Items listed from one cluster, in the server's order."""

    cluster_name: str
    kind: str
    items: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class ClusterFailure:
    """A cluster that did not make it to the list call."""

    cluster_name: str
    stage: PipelineStage
    error: KubeMCError


@dataclass
class FanOutResult:
    """Aggregate of one fan-out run.

    Iterating yields the successful ``ListOutcome`` records in arrival order.
    """

    outcomes: List[ListOutcome] = field(default_factory=list)
    failures: List[ClusterFailure] = field(default_factory=list)

    def __iter__(self) -> Iterator[ListOutcome]:
        return iter(self.outcomes)

    def __len__(self) -> int:
        return len(self.outcomes)

    def __getitem__(self, index: int) -> ListOutcome:
        return self.outcomes[index]

    @property
    def all_failed(self) -> bool:
        """True when targets were attempted and none of them succeeded."""

        return bool(self.failures) and not self.outcomes
