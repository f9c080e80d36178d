"""Shared error taxonomy.

Every failure raised inside a cluster pipeline is a ``KubeMCError`` so the
fan-out executor can catch it at the task boundary without swallowing
programming errors from unrelated code.
"""

from __future__ import annotations

from typing import Optional


class KubeMCError(RuntimeError):
    """Base class for per-cluster, recoverable failures."""

    def __init__(self, message: str, *, cluster: Optional[str] = None) -> None:
        super().__init__(message)
        self.cluster = cluster

    def __str__(self) -> str:
        message = super().__str__()
        if self.cluster:
            return f"[{self.cluster}] {message}"
        return message


class ConfigError(KubeMCError):
    """Raised when connection coordinates or the config file are malformed."""


class ClusterConnectionError(KubeMCError):
    """Raised when a cluster is unreachable or its credentials are unusable."""


class ResourceNotFoundError(KubeMCError):
    """Raised when no discovery backend can resolve a resource name."""

    def __init__(self, name: str, *, cluster: Optional[str] = None) -> None:
        super().__init__(f"resource {name} not found", cluster=cluster)
        self.name = name


class RequestError(KubeMCError):
    """Raised when the list call fails after the resource was resolved."""


class TargetTimeoutError(KubeMCError):
    """Raised when a cluster pipeline exceeds its configured timeout."""
