from dataclasses import dataclass

from kubernetes.client.exceptions import ApiException
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import ResourceNotFoundError, ResourceNotUniqueError
from kubernetes.dynamic.resource import Resource
from loguru import logger
from urllib3.exceptions import HTTPError

from kubessa.engine.documents import GroupVersionKind
from kubessa.engine.errors import DiscoveryError, UnknownResourceError


@dataclass(frozen=True)
class ResourceMapping:
    """
    The REST endpoint that serves objects of a particular `GroupVersionKind`.
    """

    gvk: GroupVersionKind

    resource: str
    """ The plural resource name, e.g. `deployments`. """

    namespaced: bool
    """ Whether objects of this type live in a namespace. """

    api: Resource
    """ The discovered resource, used to issue requests with the dynamic client. """

    def path(self, name: str | None = None, namespace: str | None = None) -> str:
        return self.api.path(name=name, namespace=namespace if self.namespaced else None)


class ResourceResolver:
    """
    Maps a `GroupVersionKind` to its `ResourceMapping` using the API discovery of the cluster. Mappings are cached for
    the lifetime of the resolver, thus one resolver should be created per run.
    """

    def __init__(self, client: DynamicClient) -> None:
        self._client = client
        self._cache: dict[GroupVersionKind, ResourceMapping] = {}

    def resolve(self, gvk: GroupVersionKind) -> ResourceMapping:
        """
        Raises:
            UnknownResourceError: If the API server serves no (or no unique) resource type for *gvk*.
            DiscoveryError: If the API server could not be queried.
        """

        if (mapping := self._cache.get(gvk)) is not None:
            logger.trace("Resource mapping for {} served from cache", gvk)
            return mapping

        logger.debug("Discovering resource mapping for {}", gvk)
        try:
            api = self._client.resources.get(api_version=gvk.api_version, kind=gvk.kind)
        except ResourceNotFoundError as exc:
            raise UnknownResourceError(f"No resource type found for {gvk}", gvk=gvk) from exc
        except ResourceNotUniqueError as exc:
            raise UnknownResourceError(f"Multiple resource types found for {gvk}: {exc}", gvk=gvk) from exc
        except (ApiException, HTTPError) as exc:
            raise DiscoveryError(f"API discovery for {gvk} failed: {exc}") from exc

        mapping = ResourceMapping(gvk=gvk, resource=api.name, namespaced=bool(api.namespaced), api=api)
        self._cache[gvk] = mapping
        return mapping
