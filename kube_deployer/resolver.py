"""
Finds the workloads and container a deploy job has to patch.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from kubernetes.client.rest import ApiException

from .errors import DeployJobError, NotFoundError, WorkloadNotFoundError
from .kube_client import KubeClient, service_selector
from .kube_types import Container, Workload, WorkloadKind
from .models import ServiceInfo
from .store import STATUS_DELETING, ServiceRegistry

logger = logging.getLogger(__name__)


@dataclass
class WorkloadMatch:
    workload: Workload
    container: Container

    @property
    def kind(self) -> WorkloadKind:
        return self.workload.kind


def first_container_match(workloads: Sequence[Workload], container_name: str) -> Optional[WorkloadMatch]:
    """First container named ``container_name``, scanning workloads then containers in order."""
    for workload in workloads:
        for container in workload.containers:
            if container.name == container_name:
                return WorkloadMatch(workload=workload, container=container)
    return None


class WorkloadResolver:
    """Identifies the (workload, container) pairs backing a service in a namespace."""

    def __init__(self, services: ServiceRegistry, kube_client: KubeClient):
        self.services = services
        self.kube_client = kube_client

    def find_service(self, service_name: str, project_name: str, service_type: str) -> ServiceInfo:
        """Look the service up in the project first, then as a shared service."""
        try:
            return self.services.find(
                service_name,
                project_name=project_name,
                exclude_status=STATUS_DELETING,
                service_type=service_type,
            )
        except NotFoundError:
            logger.debug(f"Service {service_name} not in project {project_name}, trying shared services")

        try:
            return self.services.find(
                service_name,
                exclude_status=STATUS_DELETING,
                service_type=service_type,
            )
        except NotFoundError as e:
            raise NotFoundError(f"find service {service_name} error: {e}") from e

    def resolve(
        self,
        service_name: str,
        project_name: str,
        container_name: str,
        env_name: str,
        service_type: str = "k8s",
    ) -> List[WorkloadMatch]:
        """
        Resolve the containers to patch.

        Args:
            service_name: Service name, also the workload name when the service declares its kind
            project_name: Project owning the environment
            container_name: Container to update
            env_name: Environment name, used in error messages
            service_type: Service registry type filter

        Returns:
            At most one match per workload kind, Deployments first

        Raises:
            NotFoundError: service or declared workload missing
            WorkloadNotFoundError: no container with the target name
            DeployJobError: workloads could not be listed
        """
        service = self.find_service(service_name, project_name, service_type)

        if service.workload_type is not None:
            matches = self._resolve_declared(service.workload_type, service_name, container_name)
        else:
            matches = self._scan(service_name, project_name, container_name)

        if not matches:
            raise WorkloadNotFoundError(
                f"service {service_name} container name {container_name} is not found in env {env_name}"
            )

        for match in matches:
            logger.info(
                f"Matched {match.kind.value} {match.workload.name}/{match.container.name} "
                f"(image {match.container.image})"
            )
        return matches

    def _resolve_declared(self, kind: WorkloadKind, name: str, container_name: str) -> List[WorkloadMatch]:
        try:
            workload = self.kube_client.get_workload(kind, name)
        except ApiException as e:
            raise NotFoundError(f"failed to get {kind.value} {self.kube_client.namespace}/{name}: {e}") from e
        if workload is None:
            raise NotFoundError(f"{kind.value} {self.kube_client.namespace}/{name} not found")

        match = first_container_match([workload], container_name)
        return [match] if match else []

    def _scan(self, service_name: str, project_name: str, container_name: str) -> List[WorkloadMatch]:
        selector = service_selector(project_name, service_name)
        try:
            deployments = self.kube_client.list_deployments(selector)
            statefulsets = self.kube_client.list_statefulsets(selector)
        except ApiException as e:
            raise DeployJobError(f"failed to list workloads with selector {selector}: {e}") from e

        logger.debug(
            f"Selector {selector}: {len(deployments)} deployments, {len(statefulsets)} statefulsets"
        )
        matches = []
        for workloads in (deployments, statefulsets):
            match = first_container_match(workloads, container_name)
            if match:
                matches.append(match)
        return matches
