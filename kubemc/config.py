"""mcconfig file handling and resolved runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from kubemc.errors import ConfigError
from kubemc.models import ClusterTarget

API_VERSION = "mcconfig/v1alpha1"
CONFIG_ENV = "MCCONFIG"
KUBECONFIG_ENV = "KUBECONFIG"
CACHE_DIR_ENV = "KUBECACHEDIR"

# --------------------------------------------------------------------------- #
# Config document
# --------------------------------------------------------------------------- #


@dataclass
class ClusterEntry:
    """One cluster of a clusterset, referencing names in the kubeconfig."""

    cluster: Optional[str] = None
    user: Optional[str] = None
    context: Optional[str] = None
    name: Optional[str] = None
    kubeconfig: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.context or self.cluster or ""

    @classmethod
    def from_dict(cls, data: Any) -> "ClusterEntry":
        if not isinstance(data, dict):
            raise ConfigError(f"cluster entry must be a mapping, got {data!r}")
        values = {}
        for key in ("cluster", "user", "context", "name", "kubeconfig"):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"cluster entry field '{key}' must be a string")
            values[key] = value
        entry = cls(**values)
        if not entry.cluster and not entry.context:
            raise ConfigError("cluster entry needs a 'cluster' or a 'context'")
        return entry

    def to_dict(self) -> Dict[str, str]:
        data = {}
        for key in ("name", "context", "cluster", "user", "kubeconfig"):
            value = getattr(self, key)
            if value:
                data[key] = value
        return data

    def to_target(self) -> ClusterTarget:
        return ClusterTarget(
            name=self.display_name,
            context=self.context,
            cluster=self.cluster,
            user=self.user,
            kubeconfig=self.kubeconfig,
        )


@dataclass
class Clusterset:
    """Named group of clusters queried together."""

    name: str
    clusters: List[ClusterEntry] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Clusterset":
        if not isinstance(data, dict) or not isinstance(data.get("name"), str):
            raise ConfigError("clusterset must be a mapping with a 'name'")
        clusters = data.get("clusters") or []
        if not isinstance(clusters, list):
            raise ConfigError(f"clusterset {data['name']} 'clusters' must be a list")
        return cls(
            name=data["name"],
            clusters=[ClusterEntry.from_dict(c) for c in clusters],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "clusters": [c.to_dict() for c in self.clusters]}

    def targets(self) -> List[ClusterTarget]:
        return [entry.to_target() for entry in self.clusters]


@dataclass
class MCConfig:
    """Multi-cluster configuration stored as YAML."""

    api_version: str = API_VERSION
    current_clusterset: str = ""
    clustersets: List[Clusterset] = field(default_factory=list)
    namespace: Optional[str] = None
    timeout: Optional[float] = None
    max_concurrency: Optional[int] = None
    builtin_resources: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "MCConfig":
        if not isinstance(data, dict):
            raise ConfigError("config must be a mapping")
        clustersets = data.get("clustersets") or []
        if not isinstance(clustersets, list):
            raise ConfigError("'clustersets' must be a list")

        timeout = data.get("timeout")
        if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0):
            raise ConfigError("'timeout' must be a positive number of seconds")
        max_concurrency = data.get("max-concurrency")
        if max_concurrency is not None and (isinstance(max_concurrency, bool) or not isinstance(max_concurrency, int) or max_concurrency < 1):
            raise ConfigError("'max-concurrency' must be a positive integer")

        return cls(
            api_version=data.get("apiVersion", API_VERSION),
            current_clusterset=data.get("current-clusterset") or "",
            clustersets=[Clusterset.from_dict(c) for c in clustersets],
            namespace=data.get("namespace") or None,
            timeout=timeout,
            max_concurrency=max_concurrency,
            builtin_resources=bool(data.get("builtin-resources", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "apiVersion": self.api_version,
            "current-clusterset": self.current_clusterset,
        }
        if self.namespace:
            data["namespace"] = self.namespace
        if self.timeout is not None:
            data["timeout"] = self.timeout
        if self.max_concurrency is not None:
            data["max-concurrency"] = self.max_concurrency
        if self.builtin_resources:
            data["builtin-resources"] = True
        data["clustersets"] = [c.to_dict() for c in self.clustersets]
        return data

    @classmethod
    def parse(cls, text: str) -> "MCConfig":
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError(f"failed to parse config: {e}") from e
        return cls.from_dict(data or {})

    def yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False)

    @classmethod
    def load(cls, path: Path | str) -> "MCConfig":
        try:
            with open(path, "r") as f:
                return cls.parse(f.read())
        except OSError as e:
            raise ConfigError(f"failed to load config {path}: {e}") from e

    @classmethod
    def load_or_default(cls, path: Path | str) -> "MCConfig":
        if not os.path.exists(path):
            return cls()
        return cls.load(path)

    def save(self, path: Path | str) -> None:
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                f.write(self.yaml())
        except OSError as e:
            raise ConfigError(f"failed to save config {path}: {e}") from e

    def get_clusterset(self, name: Optional[str] = None) -> Clusterset:
        wanted = name or self.current_clusterset
        if not wanted:
            raise ConfigError("no clusterset selected; set current-clusterset or pass --clusterset")
        for clusterset in self.clustersets:
            if clusterset.name == wanted:
                return clusterset
        raise ConfigError(f"clusterset '{wanted}' not found")


def config_path(explicit: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Path:
    """Explicit path, then $MCCONFIG, then ~/.kube/mcconfig."""

    environ = os.environ if environ is None else environ
    if explicit:
        return Path(explicit).expanduser()
    if environ.get(CONFIG_ENV):
        return Path(environ[CONFIG_ENV]).expanduser()
    return Path.home() / ".kube" / "mcconfig"


# --------------------------------------------------------------------------- #
# Resolved settings
# --------------------------------------------------------------------------- #


@dataclass
class Settings:
    """Concrete values injected into the resolver, factory and executor."""

    kubeconfig: List[str]
    cache_root: Path
    timeout: Optional[float] = None
    max_concurrency: Optional[int] = None
    builtin_resources: bool = False
    default_namespace: Optional[str] = None

    @classmethod
    def resolve(
        cls,
        mcconfig: MCConfig,
        *,
        kubeconfig: Optional[str] = None,
        cache_dir: Optional[str] = None,
        timeout: Optional[float] = None,
        max_concurrency: Optional[int] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "Settings":
        """Merge CLI flags, the config document and the environment.

        Flags win over the config file, which wins over defaults. The
        environment is only consulted here so the rest of the code never
        reads process state.
        """

        environ = os.environ if environ is None else environ
        home = Path.home()

        if kubeconfig:
            kubeconfig_paths = [kubeconfig]
        elif environ.get(KUBECONFIG_ENV):
            kubeconfig_paths = [p for p in environ[KUBECONFIG_ENV].split(os.pathsep) if p]
        else:
            kubeconfig_paths = [str(home / ".kube" / "config")]

        if cache_dir:
            cache_base = Path(cache_dir).expanduser()
        elif environ.get(CACHE_DIR_ENV):
            cache_base = Path(environ[CACHE_DIR_ENV]).expanduser()
        else:
            cache_base = home / ".kube" / "cache"

        return cls(
            kubeconfig=kubeconfig_paths,
            cache_root=cache_base / "discovery",
            timeout=timeout if timeout is not None else mcconfig.timeout,
            max_concurrency=max_concurrency if max_concurrency is not None else mcconfig.max_concurrency,
            builtin_resources=mcconfig.builtin_resources,
            default_namespace=mcconfig.namespace,
        )
