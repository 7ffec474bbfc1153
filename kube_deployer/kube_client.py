"""
Kubernetes client for deploy job operations.
"""
import logging
from typing import Any, List, Optional
from kubernetes import client, config
from kubernetes.client.rest import ApiException

from .config import Settings, settings as default_settings
from .errors import ClusterConnectionError
from .kube_types import Container, ContainerStatus, Pod, Workload, WorkloadKind

logger = logging.getLogger(__name__)

# Labels stamped on every workload a project renders for a service
PRODUCT_LABEL = "s-product"
SERVICE_LABEL = "s-service"


def service_selector(project_name: str, service_name: str) -> str:
    """Label selector matching the workloads and pods of a project service."""
    return f"{PRODUCT_LABEL}={project_name},{SERVICE_LABEL}={service_name}"


def get_kube_client(cluster_id: str, namespace: str, settings: Optional[Settings] = None) -> "KubeClient":
    """
    Build a client bound to a cluster and namespace.

    Args:
        cluster_id: Kubeconfig context naming the cluster; empty selects the default cluster
        namespace: Target Kubernetes namespace
        settings: Settings holding kubeconfig location and default cluster options

    Returns:
        KubeClient for the namespace

    Raises:
        ClusterConnectionError: when no configuration can be loaded for the cluster
    """
    settings = settings or default_settings
    try:
        if cluster_id:
            api_client = config.new_client_from_config(
                config_file=settings.KUBECONFIG_PATH,
                context=cluster_id,
            )
        elif settings.K8S_IN_CLUSTER:
            config.load_incluster_config()
            api_client = client.ApiClient()
        else:
            api_client = config.new_client_from_config(
                config_file=settings.KUBECONFIG_PATH,
                context=settings.K8S_CONTEXT,
            )
    except Exception as e:
        logger.error(f"❌ Failed to initialize Kubernetes client for cluster '{cluster_id or 'default'}': {e}")
        raise ClusterConnectionError(f"can't init k8s client: {e}") from e

    return KubeClient(namespace=namespace, api_client=api_client)


def _containers(obj: Any) -> List[Container]:
    return [Container(name=c.name, image=c.image) for c in obj.spec.template.spec.containers or []]


def _to_workload(obj: Any, kind: WorkloadKind) -> Workload:
    status = obj.status
    replicas = obj.spec.replicas if obj.spec.replicas is not None else 1
    workload = Workload(
        kind=kind,
        name=obj.metadata.name,
        namespace=obj.metadata.namespace,
        containers=_containers(obj),
        replicas=replicas,
        generation=obj.metadata.generation or 0,
        labels=obj.metadata.labels or {},
    )
    if status is not None:
        workload.observed_generation = status.observed_generation or 0
        workload.updated_replicas = status.updated_replicas or 0
        workload.ready_replicas = status.ready_replicas or 0
        workload.available_replicas = getattr(status, "available_replicas", None) or 0
        if kind == WorkloadKind.STATEFULSET:
            workload.current_revision = status.current_revision
            workload.update_revision = status.update_revision
    return workload


def _container_status(cs: Any) -> ContainerStatus:
    state = cs.state
    if state is not None and state.waiting is not None:
        return ContainerStatus(
            name=cs.name,
            state="waiting",
            reason=state.waiting.reason or "",
            message=state.waiting.message or "",
        )
    if state is not None and state.terminated is not None:
        return ContainerStatus(
            name=cs.name,
            state="terminated",
            reason=state.terminated.reason or "",
            message=state.terminated.message or "",
        )
    return ContainerStatus(name=cs.name, state="running")


class KubeClient:
    """Kubernetes client for deploy job operations."""

    def __init__(self, namespace: str, api_client: client.ApiClient | None = None):
        """
        Initialize Kubernetes client.

        Args:
            namespace: Target Kubernetes namespace
            api_client: Configured API client; the process-wide default when omitted
        """
        self.namespace = namespace
        self.v1 = client.CoreV1Api(api_client)
        self.apps_v1 = client.AppsV1Api(api_client)
        logger.info(f"✅ Kubernetes client initialized for namespace: {namespace}")

    def list_deployments(self, label_selector: str) -> List[Workload]:
        """
        List deployments in the namespace.

        Args:
            label_selector: Label selector for filtering

        Returns:
            Workloads in listing order
        """
        try:
            deployments = self.apps_v1.list_namespaced_deployment(
                namespace=self.namespace,
                label_selector=label_selector
            )
        except ApiException as e:
            logger.error(f"Failed to list deployments: {e}")
            raise

        return [_to_workload(d, WorkloadKind.DEPLOYMENT) for d in deployments.items]

    def list_statefulsets(self, label_selector: str) -> List[Workload]:
        """
        List statefulsets in the namespace.

        Args:
            label_selector: Label selector for filtering

        Returns:
            Workloads in listing order
        """
        try:
            statefulsets = self.apps_v1.list_namespaced_stateful_set(
                namespace=self.namespace,
                label_selector=label_selector
            )
        except ApiException as e:
            logger.error(f"Failed to list statefulsets: {e}")
            raise

        return [_to_workload(s, WorkloadKind.STATEFULSET) for s in statefulsets.items]

    def get_deployment(self, name: str) -> Optional[Workload]:
        """Get a deployment by name, or None when it does not exist."""
        try:
            deployment = self.apps_v1.read_namespaced_deployment(name=name, namespace=self.namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            logger.error(f"Failed to get deployment {name}: {e}")
            raise
        return _to_workload(deployment, WorkloadKind.DEPLOYMENT)

    def get_statefulset(self, name: str) -> Optional[Workload]:
        """Get a statefulset by name, or None when it does not exist."""
        try:
            statefulset = self.apps_v1.read_namespaced_stateful_set(name=name, namespace=self.namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            logger.error(f"Failed to get statefulset {name}: {e}")
            raise
        return _to_workload(statefulset, WorkloadKind.STATEFULSET)

    def get_workload(self, kind: WorkloadKind, name: str) -> Optional[Workload]:
        if kind == WorkloadKind.STATEFULSET:
            return self.get_statefulset(name)
        return self.get_deployment(name)

    def update_container_image(self, kind: WorkloadKind, name: str, container: str, image: str) -> None:
        """
        Set the image of one container of a workload.

        The body is a strategic merge patch keyed on the container name, so the
        other containers of the pod template are left untouched.

        Args:
            kind: Workload kind
            name: Workload name
            container: Container name
            image: New image to deploy
        """
        body = {"spec": {"template": {"spec": {"containers": [{"name": container, "image": image}]}}}}
        try:
            if kind == WorkloadKind.STATEFULSET:
                self.apps_v1.patch_namespaced_stateful_set(name=name, namespace=self.namespace, body=body)
            else:
                self.apps_v1.patch_namespaced_deployment(name=name, namespace=self.namespace, body=body)
        except ApiException as e:
            logger.error(f"Failed to deploy image {image} to {kind.value} {name}: {e}")
            raise

        logger.info(f"✅ Deployed image {image} to {kind.value} {name}/{container}")

    def list_pods(self, label_selector: str | None = None) -> List[Pod]:
        """
        Get pods in the namespace.

        Args:
            label_selector: Optional label selector for filtering

        Returns:
            List of Pod objects
        """
        try:
            pods = self.v1.list_namespaced_pod(
                namespace=self.namespace,
                label_selector=label_selector
            )
        except ApiException as e:
            logger.error(f"Failed to get pods: {e}")
            raise

        pod_list = []
        for pod in pods.items:
            pod_list.append(Pod(
                name=pod.metadata.name,
                namespace=pod.metadata.namespace,
                status=pod.status.phase,
                labels=pod.metadata.labels or {},
                container_statuses=[_container_status(cs) for cs in pod.status.container_statuses or []],
                creation_timestamp=pod.metadata.creation_timestamp
            ))

        logger.debug(f"Retrieved {len(pod_list)} pods from namespace {self.namespace}")
        return pod_list
