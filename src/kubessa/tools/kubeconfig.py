"""
Selection of the credentials used to talk to the Kubernetes API.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from tempfile import TemporaryDirectory

from kubernetes.client.api_client import ApiClient
from kubernetes.client.configuration import Configuration
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException
from kubernetes.config.incluster_config import load_incluster_config
from kubernetes.config.kube_config import new_client_from_config
from kubernetes.dynamic import DynamicClient
from loguru import logger
from urllib3.exceptions import HTTPError
import yaml

from kubessa.engine.errors import DiscoveryError


@dataclass
class ConnectionConfigError(Exception):
    message: str

    def __str__(self) -> str:
        return f"Could not configure the Kubernetes client: {self.message}"


@dataclass
class ClusterConnection:
    """
    A configured client for the Kubernetes API.
    """

    api_client: ApiClient
    in_cluster: bool

    state_dir: Path
    """ A private directory that lives as long as the connection, e.g. for the API discovery cache. """

    def dynamic_client(self) -> DynamicClient:
        """
        Create a dynamic client. Its API discovery cache is kept in the `state_dir`, thus it is not shared with other
        runs.

        Raises:
            DiscoveryError: If the API server cannot be reached or rejects the request for its version.
        """

        try:
            return DynamicClient(self.api_client, cache_file=str(self.state_dir / "discovery.json"))
        except (ApiException, HTTPError) as exc:
            host = self.api_client.configuration.host
            raise DiscoveryError(f"Could not reach the Kubernetes API server at {host}: {exc}") from exc


@contextmanager
def connect(kubeconfig: str | None = None) -> Iterator[ClusterConnection]:
    """
    Connect to the cluster described by the given kubeconfig content. The content is written to a temporary directory
    that is removed when the context exits. If no kubeconfig is given, the in-cluster service account configuration
    is used.

    Raises:
        ConnectionConfigError: If the configuration cannot be loaded.
    """

    with TemporaryDirectory() as tmp:
        state_dir = Path(tmp)

        if kubeconfig is None:
            logger.info("Using in-cluster configuration")
            configuration = Configuration()
            try:
                load_incluster_config(client_configuration=configuration)
            except ConfigException as exc:
                raise ConnectionConfigError(str(exc)) from exc
            api_client = ApiClient(configuration)
        else:
            logger.info("Using out-of-cluster configuration from the provided kubeconfig")
            kubeconfig_path = state_dir / "kubeconfig"
            kubeconfig_path.write_text(kubeconfig)
            try:
                api_client = new_client_from_config(config_file=str(kubeconfig_path), persist_config=False)
            except (ConfigException, yaml.YAMLError) as exc:
                raise ConnectionConfigError(str(exc)) from exc

        with api_client:
            yield ClusterConnection(api_client, in_cluster=kubeconfig is None, state_dir=state_dir)
