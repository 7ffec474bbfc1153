"""
Pytest configuration and fixtures for kube-deployer tests.
"""

import pytest

from kube_deployer.config import Settings
from kube_deployer.kube_types import Container, Workload, WorkloadKind
from kube_deployer.models import Environment, ServiceInfo
from kube_deployer.store import EnvironmentStore, ServiceRegistry


def make_workload(name, kind=WorkloadKind.DEPLOYMENT, containers=None, ready=True, namespace="demo-dev"):
    """Build a workload; ``containers`` is a list of (name, image) pairs."""
    containers = containers if containers is not None else [(name, f"registry/{name}:v1")]
    workload = Workload(
        kind=kind,
        name=name,
        namespace=namespace,
        containers=[Container(name=n, image=i) for n, i in containers],
        replicas=2,
        generation=3,
        observed_generation=3,
    )
    if ready:
        workload.updated_replicas = 2
        workload.ready_replicas = 2
        workload.available_replicas = 2
    return workload


class FakeKubeClient:
    """In-memory stand-in for KubeClient recording every call."""

    def __init__(self, namespace="demo-dev"):
        self.namespace = namespace
        self.deployments = []
        self.statefulsets = []
        self.pods = []
        self.calls = []
        # (kind, name) -> list of results handed out in order; the last one repeats.
        # A result may be an exception instance, which is raised.
        self.get_results = {}
        self.patch_errors = {}
        self.list_error = None
        self.pods_error = None

    def list_deployments(self, label_selector):
        self.calls.append(("list_deployments", label_selector))
        if self.list_error:
            raise self.list_error
        return list(self.deployments)

    def list_statefulsets(self, label_selector):
        self.calls.append(("list_statefulsets", label_selector))
        if self.list_error:
            raise self.list_error
        return list(self.statefulsets)

    def get_workload(self, kind, name):
        self.calls.append(("get_workload", kind, name))
        results = self.get_results.get((kind, name))
        if results is None:
            pool = self.deployments if kind == WorkloadKind.DEPLOYMENT else self.statefulsets
            return next((w for w in pool if w.name == name), None)
        result = results.pop(0) if len(results) > 1 else results[0]
        if isinstance(result, Exception):
            raise result
        return result

    def update_container_image(self, kind, name, container, image):
        self.calls.append(("update_container_image", kind, name, container, image))
        if name in self.patch_errors:
            raise self.patch_errors[name]

    def list_pods(self, label_selector=None):
        self.calls.append(("list_pods", label_selector))
        if self.pods_error:
            raise self.pods_error
        return list(self.pods)

    def count(self, method):
        return sum(1 for call in self.calls if call[0] == method)


class FakeClock:
    """Monotonic clock whose sleep only advances time."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class FlagCancel:
    def __init__(self, value=False):
        self.value = value

    def is_set(self):
        return self.value


@pytest.fixture
def kube():
    return FakeKubeClient()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def environments():
    return EnvironmentStore([
        Environment(project_name="demo", env_name="dev", namespace="demo-dev"),
        Environment(project_name="demo", env_name="prod", namespace="demo-prod", cluster_id="prod-cluster"),
    ])


@pytest.fixture
def services():
    return ServiceRegistry([
        ServiceInfo(service_name="web", project_name="demo"),
    ])


@pytest.fixture
def settings():
    return Settings(DEPLOY_TIMEOUT_SECS=30, POLL_INTERVAL_SECS=2, CATALOG_PATH=None)
