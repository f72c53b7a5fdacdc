import json

from kubernetes.client.exceptions import ApiException
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.resource import ResourceInstance
from loguru import logger
from urllib3.exceptions import HTTPError

from kubessa.engine.documents import ManifestDocument
from kubessa.engine.errors import ApplyError
from kubessa.engine.resolver import ResourceMapping

FIELD_MANAGER = "dron8s-plugin"
"""
The field manager that owns the fields applied by this tool. Changing it would orphan the fields owned by previous
applies.
"""

DEFAULT_NAMESPACE = "default"
""" The namespace that namespaced objects without a namespace are applied to. """


class ApplyExecutor:
    """
    Applies documents to the cluster with server-side apply.
    """

    def __init__(self, client: DynamicClient, field_manager: str = FIELD_MANAGER) -> None:
        self._client = client
        self.field_manager = field_manager

    def apply(self, document: ManifestDocument, mapping: ResourceMapping) -> ResourceInstance:
        """
        Server-side apply the *document* to the endpoint described by *mapping*. Namespaced objects without a namespace
        are moved to the `DEFAULT_NAMESPACE`, cluster-scoped objects are stripped of their namespace.

        Raises:
            ApplyError: If the API server rejects the patch or cannot be reached.
        """

        if mapping.namespaced:
            if not document.namespace:
                document.set_namespace(DEFAULT_NAMESPACE)
            namespace: str | None = document.namespace
        else:
            document.set_namespace(None)
            namespace = None

        wire = document.to_json()
        logger.debug(
            "PATCH {} ({} bytes, fieldManager={})",
            mapping.path(document.name or None, namespace),
            len(wire),
            self.field_manager,
        )

        try:
            return self._client.server_side_apply(
                mapping.api,
                body=json.loads(wire),
                name=document.name,
                namespace=namespace,
                field_manager=self.field_manager,
            )
        except ApiException as exc:
            raise ApplyError(
                f"Failed to apply {document.reference}: {exc.status} {exc.reason}",
                reference=document.reference,
            ) from exc
        except (ValueError, HTTPError) as exc:
            raise ApplyError(f"Failed to apply {document.reference}: {exc}", reference=document.reference) from exc
