"""Tests for table, json and yaml rendering."""

import json
from datetime import datetime, timezone

import pytest
import yaml
from rich.console import Console

from kubemc.models import FanOutResult, ListOutcome
from kubemc.output import build_rows, format_age, object_ready, object_status, render_outcomes

NOW = datetime(2024, 5, 10, 12, 0, 0, tzinfo=timezone.utc)


def _pod(name, namespace, created, ready=(True,), phase="Running"):
    return {
        "metadata": {"name": name, "namespace": namespace, "creationTimestamp": created},
        "status": {"phase": phase, "containerStatuses": [{"ready": r} for r in ready]},
    }


def _console():
    return Console(record=True, width=200, color_system=None)


@pytest.mark.parametrize(
    "created,expected",
    [
        ("2024-05-10T11:59:48Z", "12s"),
        ("2024-05-10T11:55:50Z", "4m10s"),
        ("2024-05-10T09:55:00Z", "2h5m"),
        ("2024-05-08T12:00:00Z", "48h0m"),
        ("2024-05-06T08:00:00Z", "4d4h"),
        ("2024-05-10T12:00:30Z", "0s"),
        (None, ""),
        ("yesterday", ""),
    ],
)
def test_format_age(created, expected):
    assert format_age(created, NOW) == expected


def test_object_ready():
    assert object_ready(_pod("a", "web", None, ready=(True, False))) == "1/2"
    assert object_ready({"status": {"replicas": 3, "readyReplicas": 2}}) == "2/3"
    assert object_ready({"status": {"replicas": 1}}) == "0/1"
    assert object_ready({"metadata": {"name": "cm"}}) == ""


def test_object_status():
    assert object_status(_pod("a", "web", None, phase="Pending")) == "Pending"
    node = {"status": {"conditions": [{"type": "MemoryPressure", "status": "False"}, {"type": "Ready", "status": "True"}]}}
    assert object_status(node) == "Ready"
    node["status"]["conditions"][1]["status"] = "False"
    assert object_status(node) == "NotReady"
    assert object_status({}) == ""


def test_rows_for_pods_across_clusters():
    outcomes = [
        ListOutcome("prod1", "Pod", [_pod("web-1", "web", "2024-05-10T11:55:50Z")]),
        ListOutcome("prod2", "Pod", [_pod("web-2", "web", "2024-05-10T11:59:48Z", ready=(False,))]),
    ]
    columns, rows = build_rows(outcomes, NOW)

    assert columns == ["CLUSTER", "NAMESPACE", "NAME", "READY", "STATUS", "AGE"]
    assert rows == [
        ["prod1", "web", "web-1", "1/1", "Running", "4m10s"],
        ["prod2", "web", "web-2", "0/1", "Running", "12s"],
    ]


def test_rows_for_cluster_scoped_kind():
    outcomes = [ListOutcome("prod1", "Namespace", [{"metadata": {"name": "kube-system"}}])]
    columns, rows = build_rows(outcomes, NOW)

    assert columns == ["CLUSTER", "NAME", "AGE"]
    assert rows == [["prod1", "kube-system", ""]]


def test_render_table():
    console = _console()
    result = FanOutResult(outcomes=[ListOutcome("prod1", "Pod", [_pod("web-1", "web", None)])])
    render_outcomes(result, console)

    text = console.export_text()
    assert "CLUSTER" in text
    assert "web-1" in text
    assert "prod1" in text


def test_render_empty_table():
    console = _console()
    render_outcomes(FanOutResult(outcomes=[ListOutcome("prod1", "Pod", [])]), console)
    assert console.export_text().strip() == "No resources found."


def test_render_json():
    console = _console()
    items = [{"metadata": {"name": "web-1"}}]
    render_outcomes(FanOutResult(outcomes=[ListOutcome("prod1", "Pod", items)]), console, "json")

    assert json.loads(console.export_text()) == [{"cluster": "prod1", "kind": "Pod", "items": items}]


def test_render_yaml():
    console = _console()
    items = [{"metadata": {"name": "[web-1]"}}]
    render_outcomes(FanOutResult(outcomes=[ListOutcome("prod1", "Pod", items)]), console, "yaml")

    assert yaml.safe_load(console.export_text()) == [{"cluster": "prod1", "kind": "Pod", "items": items}]


def test_render_unknown_format():
    with pytest.raises(ValueError):
        render_outcomes(FanOutResult(), _console(), "wide")
