"""Tests for verbose debug logging."""

import logging

import pytest

from kubemc import debug
from kubemc.client import BoundResourceClient, ClusterConnection
from kubemc.discovery.builtin import BuiltinResources
from kubemc.discovery.resolver import ResourceResolver
from kubemc.fanout import FanOutExecutor
from kubemc.models import ClusterTarget


class FakeApiClient:
    class configuration:
        host = "https://prod1.example.com:6443"

    def call_api(self, path, method, **kwargs):
        return {"items": [{"metadata": {"name": "web-1"}}]}

    def close(self):
        pass


class FakeFactory:
    def connect(self, target):
        return ClusterConnection(target=target, api_client=FakeApiClient())

    def build(self, connection, resource, namespace=None, all_namespaces=False):
        return BoundResourceClient(connection, resource, namespace or "default")


@pytest.fixture
def verbose(monkeypatch, caplog):
    """Turn verbose mode on for one test and restore it afterwards."""
    monkeypatch.setattr(debug, "_enabled", False)
    caplog.set_level(logging.DEBUG, logger="kubemc")
    logging.getLogger("kubemc").setLevel(logging.WARNING)
    debug.enable()
    return caplog


def test_quiet_by_default(monkeypatch, caplog):
    monkeypatch.setattr(debug, "_enabled", False)
    caplog.set_level(logging.DEBUG, logger="kubemc")

    debug.log_request("prod1", {"method": "GET", "path": "/api/v1/pods"})
    debug.log_stage("prod1", "connected", 0.5)

    assert not debug.is_enabled()
    assert caplog.records == []


def test_enable_turns_on_debug_level(verbose):
    logging.getLogger("kubemc").setLevel(logging.WARNING)
    debug.enable()

    assert debug.is_enabled()
    assert logging.getLogger("kubemc").level == logging.DEBUG
    assert "Verbose debug mode enabled" in verbose.text


def test_request_payload_is_compact_json(verbose):
    debug.log_request("prod1", {"path": "/api/v1/pods", "method": "GET"})

    record = verbose.records[-1]
    assert record.name == "kubemc.request"
    assert record.getMessage() == 'prod1 request: {"method":"GET","path":"/api/v1/pods"}'


def test_unserialisable_payload_falls_back_to_repr(verbose):
    debug.log_response("prod1", {"items": {1, 2}})
    assert "prod1 response: {'items': {1, 2}}" in verbose.text


@pytest.mark.asyncio
async def test_pipeline_logs_each_stage_with_timing(verbose):
    executor = FanOutExecutor(FakeFactory(), ResourceResolver([BuiltinResources()]))

    result = await executor.run([ClusterTarget(name="prod1", context="prod1")], "po")

    assert len(result) == 1
    stages = [r.getMessage() for r in verbose.records if r.name == "kubemc.pipeline"]
    assert [message.split()[2] for message in stages] == ["connected", "resolved", "listed"]
    assert all(message.startswith("prod1 reached ") for message in stages)
    requests = [r.getMessage() for r in verbose.records if r.name == "kubemc.request"]
    assert requests == ['prod1 request: {"method":"GET","path":"/api/v1/namespaces/default/pods"}']
