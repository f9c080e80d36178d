"""Tests for live discovery against a fake API server."""

from types import SimpleNamespace

import pytest
from kubernetes.client.rest import ApiException

from kubemc.discovery.live import LiveDiscovery, version_priority
from kubemc.errors import ClusterConnectionError
from kubemc.models import Scope


class FakeApiClient:
    """Answers GETs from a path -> body map."""

    def __init__(self, responses):
        self.responses = responses
        self.configuration = SimpleNamespace(host="https://live.example.com:6443")
        self.calls = []

    def call_api(self, path, method, **kwargs):
        self.calls.append(path)
        response = self.responses.get(path)
        if isinstance(response, Exception):
            raise response
        if response is None:
            raise ApiException(status=404, reason="Not Found")
        return response


def _group(name, versions, preferred):
    return {
        "name": name,
        "versions": [{"groupVersion": f"{name}/{v}", "version": v} for v in versions],
        "preferredVersion": {"groupVersion": f"{name}/{preferred}", "version": preferred},
    }


def _resources(group_version, *resources):
    return {"kind": "APIResourceList", "groupVersion": group_version, "resources": list(resources)}


def _resource(name, kind, namespaced=True, short_names=None):
    resource = {"name": name, "kind": kind, "namespaced": namespaced, "verbs": ["list"]}
    if short_names:
        resource["shortNames"] = short_names
    return resource


def _server(groups, listings):
    responses = {
        "/api": {"kind": "APIVersions", "versions": ["v1"]},
        "/api/v1": _resources("v1", _resource("pods", "Pod", short_names=["po"])),
        "/apis": {"kind": "APIGroupList", "groups": groups},
    }
    responses.update(listings)
    return FakeApiClient(responses)


def test_version_priority_orders_by_stability():
    versions = ["v1alpha1", "v2", "v1beta2", "v1", "v1beta1", "foo"]
    assert sorted(versions, key=version_priority, reverse=True) == [
        "v2",
        "v1",
        "v1beta2",
        "v1beta1",
        "v1alpha1",
        "foo",
    ]


def test_deployment_prefers_smallest_group_name():
    api = _server(
        [_group("extensions", ["v1beta1"], "v1beta1"), _group("apps", ["v1"], "v1")],
        {
            "/apis/extensions/v1beta1": _resources(
                "extensions/v1beta1", _resource("deployments", "Deployment")
            ),
            "/apis/apps/v1": _resources("apps/v1", _resource("deployments", "Deployment")),
        },
    )

    resolved = LiveDiscovery().lookup(api, "Deployment")

    assert resolved.descriptor.group == "apps"
    assert resolved.descriptor.api_version == "apps/v1"
    assert resolved.scope is Scope.NAMESPACED
    assert resolved.source == "live"


def test_resource_taken_from_most_stable_version():
    api = _server(
        [_group("example.io", ["v1alpha1", "v1beta1", "v1"], "v1")],
        {
            "/apis/example.io/v1": _resources("example.io/v1", _resource("widgets", "Widget")),
            "/apis/example.io/v1beta1": _resources(
                "example.io/v1beta1",
                _resource("widgets", "Widget"),
                _resource("gizmos", "Gizmo", namespaced=False),
            ),
            "/apis/example.io/v1alpha1": _resources(
                "example.io/v1alpha1", _resource("gizmos", "Gizmo", namespaced=False)
            ),
        },
    )
    live = LiveDiscovery()

    assert live.lookup(api, "widgets").descriptor.version == "v1"
    gizmo = live.lookup(api, "gizmo")
    assert gizmo.descriptor.version == "v1beta1"
    assert gizmo.scope is Scope.CLUSTER


def test_short_names_match_on_live_path():
    api = _server([], {})
    resolved = LiveDiscovery().lookup(api, "PO")
    assert resolved.descriptor.kind == "Pod"


def test_unavailable_group_is_skipped():
    api = _server(
        [_group("metrics.k8s.io", ["v1beta1"], "v1beta1")],
        {"/apis/metrics.k8s.io/v1beta1": ApiException(status=503, reason="Service Unavailable")},
    )

    assert LiveDiscovery().lookup(api, "pods").descriptor.kind == "Pod"
    assert "/apis/metrics.k8s.io/v1beta1" in api.calls


def test_no_match_returns_none():
    assert LiveDiscovery().lookup(_server([], {}), "widgets") is None


def test_unreachable_server_raises_connection_error():
    api = FakeApiClient({})
    with pytest.raises(ClusterConnectionError):
        LiveDiscovery().lookup(api, "pods")
