"""
Applies the new image to matched workloads and keeps the replace ledger.
"""
import logging
from typing import Iterable

from kubernetes.client.rest import ApiException

from .errors import PatchError
from .kube_client import KubeClient
from .kube_types import WorkloadKind
from .models import DeploySpec, ReplaceResource
from .resolver import WorkloadMatch

logger = logging.getLogger(__name__)

_RESOURCE_PATHS = {
    WorkloadKind.DEPLOYMENT: "deployments",
    WorkloadKind.STATEFULSET: "statefulsets",
}


class ImagePatcher:

    def __init__(self, kube_client: KubeClient):
        self.kube_client = kube_client

    def patch(self, matches: Iterable[WorkloadMatch], spec: DeploySpec) -> None:
        """
        Update each matched container to ``spec.image``.

        Every successful update appends a ReplaceResource to
        ``spec.replace_resources``. The first failure stops the run; updates
        already applied stay in place.

        Raises:
            PatchError: the cluster rejected an update
        """
        for match in matches:
            workload, container = match.workload, match.container
            try:
                self.kube_client.update_container_image(match.kind, workload.name, container.name, spec.image)
            except ApiException as e:
                raise PatchError(
                    f"failed to update container image in {self.kube_client.namespace}/"
                    f"{_RESOURCE_PATHS[match.kind]}/{workload.name}/{container.name}: {e}"
                ) from e

            spec.replace_resources.append(ReplaceResource(
                kind=match.kind,
                name=workload.name,
                container=container.name,
                origin=container.image,
            ))
            logger.info(f"Replaced {workload.name}/{container.name}: {container.image} -> {spec.image}")
