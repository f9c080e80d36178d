"""Connections to individual clusters and namespace-bound list clients."""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml
from kubernetes import config
from kubernetes.client import ApiClient
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError

from kubemc import debug
from kubemc.discovery.live import get_json
from kubemc.errors import ClusterConnectionError, ConfigError, RequestError
from kubemc.models import ClusterTarget, ResolvedResource, Scope

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "default"

# kubeconfig fields holding file paths, relative to the kubeconfig's directory
_PATH_FIELDS = {
    "clusters": ("cluster", ("certificate-authority",)),
    "users": ("user", ("client-certificate", "client-key", "tokenFile")),
}


def load_kubeconfig(paths: Sequence[str]) -> Dict[str, Any]:
    """Load and merge kubeconfig files the way kubectl does.

    The first file to define a cluster, user or context by name wins, as does
    the first non-empty ``current-context``.
    """

    merged: Dict[str, Any] = {"clusters": [], "users": [], "contexts": []}
    seen: Dict[str, set] = {section: set() for section in merged}
    loaded_any = False
    for raw_path in paths:
        path = Path(raw_path).expanduser()
        try:
            with open(path, "r") as f:
                document = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.debug("Kubeconfig %s does not exist", path)
            continue
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"failed to read kubeconfig {path}: {exc}") from exc
        if not isinstance(document, dict):
            raise ConfigError(f"kubeconfig {path} is not a mapping")
        loaded_any = True
        _absolutize_paths(document, path.parent)

        if not merged.get("current-context") and document.get("current-context"):
            merged["current-context"] = document["current-context"]
        for section in ("clusters", "users", "contexts"):
            for entry in document.get(section) or []:
                name = entry.get("name") if isinstance(entry, dict) else None
                if not name or name in seen[section]:
                    continue
                seen[section].add(name)
                merged[section].append(entry)

    if not loaded_any:
        raise ConfigError(f"no kubeconfig found at {os.pathsep.join(paths)}")
    return merged


def _absolutize_paths(document: Dict[str, Any], base_dir: Path) -> None:
    for section, (key, fields) in _PATH_FIELDS.items():
        for entry in document.get(section) or []:
            body = entry.get(key) if isinstance(entry, dict) else None
            if not isinstance(body, dict):
                continue
            for field_name in fields:
                value = body.get(field_name)
                if isinstance(value, str) and value and not os.path.isabs(value):
                    body[field_name] = str(base_dir / value)


def _find(document: Dict[str, Any], section: str, name: str) -> Optional[Dict[str, Any]]:
    for entry in document.get(section) or []:
        if entry.get("name") == name:
            return entry
    return None


@dataclass
class ClusterConnection:
    """An API client configured for one cluster target."""

    target: ClusterTarget
    api_client: ApiClient
    context_namespace: Optional[str] = None

    @property
    def name(self) -> str:
        return self.target.name

    @property
    def server(self) -> str:
        return self.api_client.configuration.host

    def close(self) -> None:
        self.api_client.close()


@dataclass
class BoundResourceClient:
    """A resolved resource bound to a namespace (or cluster-wide when None)."""

    connection: ClusterConnection
    resource: ResolvedResource
    namespace: Optional[str] = None
    request_timeout: Optional[float] = None

    @property
    def path(self) -> str:
        return self.resource.descriptor.collection_path(self.namespace)

    def list(self) -> List[Dict[str, Any]]:
        """List the collection with default parameters, preserving server order."""

        cluster = self.connection.name
        debug.log_request(cluster, {"method": "GET", "path": self.path})
        try:
            body = get_json(self.connection.api_client, self.path, self.request_timeout)
        except ApiException as exc:
            raise RequestError(
                f"list {self.path} failed: {exc.status} {exc.reason}", cluster=cluster
            ) from exc
        except (HTTPError, OSError) as exc:
            raise RequestError(f"list {self.path} failed: {exc}", cluster=cluster) from exc

        if not isinstance(body, dict):
            raise RequestError(f"unexpected response listing {self.path}", cluster=cluster)
        items = body.get("items") or []
        debug.log_response(cluster, {"path": self.path, "items": len(items)})
        return items


class ClientFactory:
    """Builds connections and bound clients from cluster targets."""

    def __init__(
        self,
        kubeconfig: Sequence[str],
        *,
        default_namespace: Optional[str] = None,
        request_timeout: Optional[float] = None,
    ) -> None:
        self.kubeconfig = list(kubeconfig)
        self.default_namespace = default_namespace
        self.request_timeout = request_timeout

    def connect(self, target: ClusterTarget) -> ClusterConnection:
        paths = [target.kubeconfig] if target.kubeconfig else self.kubeconfig
        document = load_kubeconfig(paths)
        context_name, document = self._select_context(target, document)
        context = (_find(document, "contexts", context_name) or {}).get("context") or {}

        try:
            api_client = config.new_client_from_config_dict(
                document, context=context_name, persist_config=False
            )
        except ConfigException as exc:
            raise ClusterConnectionError(
                f"invalid connection settings: {exc}", cluster=target.name
            ) from exc

        connection = ClusterConnection(
            target=target,
            api_client=api_client,
            context_namespace=context.get("namespace"),
        )
        logger.debug("Connected %s to %s", target.name, connection.server)
        return connection

    def _select_context(self, target: ClusterTarget, document: Dict[str, Any]):
        base_name = target.context or document.get("current-context")
        if not target.cluster and not target.user:
            if not target.context:
                raise ConfigError(
                    "cluster entry needs a context or a cluster", cluster=target.name
                )
            if _find(document, "contexts", target.context) is None:
                raise ConfigError(
                    f"context {target.context} not found in kubeconfig", cluster=target.name
                )
            return target.context, document

        base = _find(document, "contexts", base_name) if base_name else None
        if target.context and base is None:
            raise ConfigError(
                f"context {target.context} not found in kubeconfig", cluster=target.name
            )
        base_context = (base or {}).get("context") or {}
        cluster_name = target.cluster or base_context.get("cluster")
        user_name = target.user or base_context.get("user")
        if not cluster_name or _find(document, "clusters", cluster_name) is None:
            raise ConfigError(
                f"cluster {cluster_name} not found in kubeconfig", cluster=target.name
            )
        if user_name and _find(document, "users", user_name) is None:
            raise ConfigError(f"user {user_name} not found in kubeconfig", cluster=target.name)

        synthesized = {"cluster": cluster_name}
        if user_name:
            synthesized["user"] = user_name
        if base_context.get("namespace"):
            synthesized["namespace"] = base_context["namespace"]
        context_name = f"kubemc/{target.name}"
        document = copy.deepcopy(document)
        document["contexts"].append({"name": context_name, "context": synthesized})
        return context_name, document

    def build(
        self,
        connection: ClusterConnection,
        resource: ResolvedResource,
        namespace: Optional[str] = None,
        all_namespaces: bool = False,
    ) -> BoundResourceClient:
        if resource.scope is Scope.CLUSTER or all_namespaces:
            bound_namespace = None
        else:
            bound_namespace = (
                namespace
                or self.default_namespace
                or connection.context_namespace
                or DEFAULT_NAMESPACE
            )
        return BoundResourceClient(
            connection=connection,
            resource=resource,
            namespace=bound_namespace,
            request_timeout=self.request_timeout,
        )
