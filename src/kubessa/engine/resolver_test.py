from unittest.mock import MagicMock

from kubernetes.client.exceptions import ApiException
from kubernetes.dynamic.exceptions import ResourceNotFoundError, ResourceNotUniqueError
import pytest

from kubessa.engine.documents import GroupVersionKind
from kubessa.engine.errors import DiscoveryError, UnknownResourceError
from kubessa.engine.resolver import ResourceResolver


def _api_resource(name: str, namespaced: bool) -> MagicMock:
    resource = MagicMock()
    resource.name = name
    resource.namespaced = namespaced
    return resource


def test__ResourceResolver__resolve__maps_gvk() -> None:
    client = MagicMock()
    client.resources.get.return_value = _api_resource("deployments", namespaced=True)

    mapping = ResourceResolver(client).resolve(GroupVersionKind("apps", "v1", "Deployment"))

    assert mapping.resource == "deployments"
    assert mapping.namespaced is True
    assert mapping.gvk == GroupVersionKind("apps", "v1", "Deployment")
    client.resources.get.assert_called_once_with(api_version="apps/v1", kind="Deployment")


def test__ResourceResolver__resolve__core_group() -> None:
    client = MagicMock()
    client.resources.get.return_value = _api_resource("namespaces", namespaced=False)

    mapping = ResourceResolver(client).resolve(GroupVersionKind("", "v1", "Namespace"))

    assert mapping.namespaced is False
    client.resources.get.assert_called_once_with(api_version="v1", kind="Namespace")


def test__ResourceResolver__resolve__caches_discovery() -> None:
    client = MagicMock()
    client.resources.get.return_value = _api_resource("configmaps", namespaced=True)
    resolver = ResourceResolver(client)

    first = resolver.resolve(GroupVersionKind("", "v1", "ConfigMap"))
    second = resolver.resolve(GroupVersionKind("", "v1", "ConfigMap"))

    assert first is second
    assert client.resources.get.call_count == 1


def test__ResourceResolver__resolve__unknown_kind() -> None:
    client = MagicMock()
    client.resources.get.side_effect = ResourceNotFoundError("No matches found")
    gvk = GroupVersionKind("example.com", "v1", "Widget")

    with pytest.raises(UnknownResourceError) as excinfo:
        ResourceResolver(client).resolve(gvk)

    assert excinfo.value.gvk == gvk
    assert "example.com/v1, Kind=Widget" in str(excinfo.value)


def test__ResourceResolver__resolve__ambiguous_kind() -> None:
    client = MagicMock()
    client.resources.get.side_effect = ResourceNotUniqueError("Multiple matches found")

    with pytest.raises(UnknownResourceError):
        ResourceResolver(client).resolve(GroupVersionKind("example.com", "v1", "Widget"))


def test__ResourceResolver__resolve__failed_lookups_are_not_cached() -> None:
    client = MagicMock()
    client.resources.get.side_effect = [ResourceNotFoundError("No matches found"), _api_resource("widgets", True)]
    resolver = ResourceResolver(client)
    gvk = GroupVersionKind("example.com", "v1", "Widget")

    with pytest.raises(UnknownResourceError):
        resolver.resolve(gvk)
    assert resolver.resolve(gvk).resource == "widgets"


def test__ResourceResolver__resolve__discovery_failure() -> None:
    client = MagicMock()
    client.resources.get.side_effect = ApiException(status=503, reason="Service Unavailable")

    with pytest.raises(DiscoveryError):
        ResourceResolver(client).resolve(GroupVersionKind("apps", "v1", "Deployment"))
