from unittest.mock import MagicMock

from kubernetes.client.exceptions import ApiException
import pytest
from urllib3.exceptions import MaxRetryError

from kubessa.engine.documents import GroupVersionKind, decode_document
from kubessa.engine.errors import ApplyError
from kubessa.engine.executor import FIELD_MANAGER, ApplyExecutor
from kubessa.engine.resolver import ResourceMapping


def _mapping(gvk: GroupVersionKind, resource: str, namespaced: bool) -> ResourceMapping:
    return ResourceMapping(gvk=gvk, resource=resource, namespaced=namespaced, api=MagicMock())


CONFIGMAP = _mapping(GroupVersionKind("", "v1", "ConfigMap"), "configmaps", namespaced=True)
CLUSTERROLE = _mapping(GroupVersionKind("rbac.authorization.k8s.io", "v1", "ClusterRole"), "clusterroles", False)


def test__ApplyExecutor__apply__server_side_apply_with_field_manager() -> None:
    client = MagicMock()
    document = decode_document("apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: settings\n  namespace: web\n")

    ApplyExecutor(client).apply(document, CONFIGMAP)

    client.server_side_apply.assert_called_once_with(
        CONFIGMAP.api,
        body={"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "settings", "namespace": "web"}},
        name="settings",
        namespace="web",
        field_manager=FIELD_MANAGER,
    )
    client.patch.assert_not_called()
    client.create.assert_not_called()
    client.replace.assert_not_called()


def test__ApplyExecutor__apply__defaults_namespace() -> None:
    client = MagicMock()
    document = decode_document("apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: settings\n")

    ApplyExecutor(client).apply(document, CONFIGMAP)

    assert document.namespace == "default"
    kwargs = client.server_side_apply.call_args.kwargs
    assert kwargs["namespace"] == "default"
    assert kwargs["body"]["metadata"]["namespace"] == "default"


def test__ApplyExecutor__apply__cluster_scoped_has_no_namespace() -> None:
    client = MagicMock()
    document = decode_document(
        "apiVersion: rbac.authorization.k8s.io/v1\nkind: ClusterRole\nmetadata:\n  name: reader\n  namespace: web\n"
    )

    ApplyExecutor(client).apply(document, CLUSTERROLE)

    kwargs = client.server_side_apply.call_args.kwargs
    assert kwargs["namespace"] is None
    assert "namespace" not in kwargs["body"]["metadata"]


def test__ApplyExecutor__apply__cluster_scoped_is_not_defaulted() -> None:
    client = MagicMock()
    document = decode_document("apiVersion: rbac.authorization.k8s.io/v1\nkind: ClusterRole\nmetadata:\n  name: r\n")

    ApplyExecutor(client).apply(document, CLUSTERROLE)

    assert document.namespace == ""
    assert client.server_side_apply.call_args.kwargs["namespace"] is None


def test__ApplyExecutor__apply__custom_field_manager() -> None:
    client = MagicMock()
    document = decode_document("apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: settings\n")

    ApplyExecutor(client, field_manager="someone-else").apply(document, CONFIGMAP)

    assert client.server_side_apply.call_args.kwargs["field_manager"] == "someone-else"


def test__ApplyExecutor__apply__rejected_by_server() -> None:
    client = MagicMock()
    client.server_side_apply.side_effect = ApiException(status=409, reason="Conflict")
    document = decode_document("apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: settings\n")

    with pytest.raises(ApplyError) as excinfo:
        ApplyExecutor(client).apply(document, CONFIGMAP)

    assert excinfo.value.reference == "v1/ConfigMap default/settings"
    assert "409" in str(excinfo.value)


def test__ApplyExecutor__apply__unnamed_object_is_an_apply_error() -> None:
    client = MagicMock()
    client.server_side_apply.side_effect = ValueError("name is required to patch v1.ConfigMap")
    document = decode_document("apiVersion: v1\nkind: ConfigMap\nmetadata:\n  generateName: settings-\n")

    with pytest.raises(ApplyError) as excinfo:
        ApplyExecutor(client).apply(document, CONFIGMAP)

    assert "name is required" in str(excinfo.value)
    assert client.server_side_apply.call_args.kwargs["name"] == ""


def test__ApplyExecutor__apply__connection_failure() -> None:
    client = MagicMock()
    client.server_side_apply.side_effect = MaxRetryError(pool=None, url="/api/v1")  # type: ignore[arg-type]
    document = decode_document("apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: settings\n")

    with pytest.raises(ApplyError):
        ApplyExecutor(client).apply(document, CONFIGMAP)
