"""
Resolves a project environment to a namespace and a live cluster connection.
"""
import logging
from dataclasses import dataclass
from typing import Callable

from .errors import ClusterConnectionError, NotFoundError
from .kube_client import KubeClient, get_kube_client
from .store import EnvironmentStore

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, str], KubeClient]


@dataclass
class ClusterAccess:
    namespace: str
    cluster_id: str
    kube_client: KubeClient


class ClusterAccessResolver:
    """Environment -> namespace/cluster -> KubeClient."""

    def __init__(self, environments: EnvironmentStore, client_factory: ClientFactory = get_kube_client):
        self.environments = environments
        self.client_factory = client_factory

    def resolve(self, project_name: str, env_name: str) -> ClusterAccess:
        """
        Look up the environment and connect to its cluster.

        Raises:
            NotFoundError: environment unknown
            ClusterConnectionError: client could not be built
        """
        try:
            env = self.environments.find(project_name, env_name)
        except NotFoundError as e:
            raise NotFoundError(f"find project error: {e}") from e

        try:
            kube_client = self.client_factory(env.cluster_id, env.namespace)
        except ClusterConnectionError:
            raise
        except Exception as e:
            raise ClusterConnectionError(f"can't init k8s client: {e}") from e

        logger.info(
            f"Environment {project_name}/{env_name} -> namespace {env.namespace} "
            f"on cluster '{env.cluster_id or 'default'}'"
        )
        return ClusterAccess(namespace=env.namespace, cluster_id=env.cluster_id, kube_client=kube_client)
