"""Console rendering of fan-out results."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import yaml
from rich.console import Console
from rich.table import Table

from kubemc.models import FanOutResult, ListOutcome

OUTPUT_FORMATS = ("table", "json", "yaml")

_READY_KINDS = {"Pod", "Deployment", "StatefulSet", "ReplicaSet", "DaemonSet"}
_STATUS_KINDS = {"Pod", "Node"}


def format_age(created: Optional[str], now: Optional[datetime] = None) -> str:
    """Compact age such as ``3d4h``, ``2h5m``, ``4m10s`` or ``12s``."""

    if not created:
        return ""
    try:
        timestamp = datetime.strptime(created, "%Y-%m-%dT%H:%M:%SZ").replace(
            tzinfo=timezone.utc
        )
    except ValueError:
        return ""
    now = now or datetime.now(timezone.utc)
    seconds = max(int((now - timestamp).total_seconds()), 0)
    minutes, hours, days = seconds // 60, seconds // 3600, seconds // 86400

    if days > 2:
        return f"{days}d{hours - 24 * days}h"
    if hours > 0:
        return f"{hours}h{minutes - 60 * hours}m"
    if minutes > 0:
        return f"{minutes}m{seconds - 60 * minutes}s"
    return f"{seconds}s"


def object_ready(item: Dict[str, Any]) -> str:
    status = item.get("status") or {}
    containers = status.get("containerStatuses")
    if containers is not None:
        ready = sum(1 for c in containers if c.get("ready"))
        return f"{ready}/{len(containers)}"
    if "replicas" in status:
        return f"{status.get('readyReplicas', 0)}/{status['replicas']}"
    return ""


def object_status(item: Dict[str, Any]) -> str:
    status = item.get("status") or {}
    if status.get("phase"):
        return status["phase"]
    for condition in status.get("conditions") or []:
        if condition.get("type") == "Ready":
            return {"True": "Ready", "False": "NotReady"}.get(condition.get("status"), "")
    return ""


def _columns(outcomes: List[ListOutcome]) -> List[str]:
    kinds = {outcome.kind for outcome in outcomes}
    namespaced = any(
        (item.get("metadata") or {}).get("namespace")
        for outcome in outcomes
        for item in outcome.items
    )
    columns = ["CLUSTER"]
    if namespaced:
        columns.append("NAMESPACE")
    columns.append("NAME")
    if kinds & _READY_KINDS:
        columns.append("READY")
    if kinds & _STATUS_KINDS:
        columns.append("STATUS")
    columns.append("AGE")
    return columns


def build_rows(
    outcomes: Iterable[ListOutcome], now: Optional[datetime] = None
) -> tuple[List[str], List[List[str]]]:
    outcomes = list(outcomes)
    columns = _columns(outcomes)
    rows = []
    for outcome in outcomes:
        for item in outcome.items:
            metadata = item.get("metadata") or {}
            values = {
                "CLUSTER": outcome.cluster_name,
                "NAMESPACE": metadata.get("namespace", ""),
                "NAME": metadata.get("name", ""),
                "READY": object_ready(item),
                "STATUS": object_status(item),
                "AGE": format_age(metadata.get("creationTimestamp"), now),
            }
            rows.append([values[column] for column in columns])
    return columns, rows


def build_table(outcomes: Iterable[ListOutcome], now: Optional[datetime] = None) -> Table:
    columns, rows = build_rows(outcomes, now)
    table = Table(box=None, show_edge=False, pad_edge=False, header_style="bold")
    for column in columns:
        table.add_column(column, no_wrap=True)
    for row in rows:
        table.add_row(*row)
    return table


def _serialisable(result: FanOutResult) -> List[Dict[str, Any]]:
    return [
        {"cluster": outcome.cluster_name, "kind": outcome.kind, "items": outcome.items}
        for outcome in result
    ]


def render_outcomes(
    result: FanOutResult, console: Optional[Console] = None, output: str = "table"
) -> None:
    """Print successful outcomes to ``console`` in the requested format."""

    console = console or Console()
    if output == "json":
        console.print_json(json.dumps(_serialisable(result)))
    elif output == "yaml":
        console.print(yaml.safe_dump(_serialisable(result), sort_keys=False), end="", markup=False, highlight=False)
    elif output == "table":
        if not any(outcome.items for outcome in result):
            console.print("No resources found.")
            return
        console.print(build_table(result))
    else:
        raise ValueError(f"unknown output format {output!r}")
