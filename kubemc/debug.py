"""Runtime-configurable debug logging utilities."""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Dict

_logger = logging.getLogger("kubemc")
_state_lock = threading.Lock()
_enabled = False

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def configure_root(level: int = logging.WARNING) -> None:
    """Ensure standard logging configuration is present."""

    if not logging.getLogger().handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)


def is_enabled() -> bool:
    """Return whether verbose debug logging is active."""

    with _state_lock:
        return _enabled


def enable() -> None:
    """Enable verbose logging for the kubemc loggers."""

    global _enabled
    with _state_lock:
        _enabled = True
    _logger.setLevel(logging.DEBUG)
    _logger.debug("Verbose debug mode enabled")


def _normalise(payload: Dict[str, Any]) -> str:
    try:
        return json.dumps(payload, separators=(",", ":"), sort_keys=True)
    except TypeError:
        return str(payload)


def log_request(cluster: str, payload: Dict[str, Any]) -> None:
    """Emit a structured debug line for an outgoing API request."""

    if not is_enabled():
        return
    logging.getLogger("kubemc.request").debug(
        "%s request: %s", cluster, _normalise(payload)
    )


def log_response(cluster: str, payload: Dict[str, Any]) -> None:
    """Emit a structured debug line for an API response."""

    if not is_enabled():
        return
    logging.getLogger("kubemc.response").debug(
        "%s response: %s", cluster, _normalise(payload)
    )


def log_stage(cluster: str, stage: str, elapsed: float) -> None:
    """Emit a debug line when a cluster pipeline reaches ``stage``."""

    if not is_enabled():
        return
    logging.getLogger("kubemc.pipeline").debug(
        "%s reached %s after %.3fs", cluster, stage, elapsed
    )
