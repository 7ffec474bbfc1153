"""
Deploy job controller: resolve the workloads of a service, patch their image
and wait for the rollout.
"""
import logging
import time
from typing import Callable, Optional

from pydantic import ValidationError

from .cluster import ClientFactory, ClusterAccessResolver
from .config import Settings, settings as default_settings
from .errors import DeployJobError
from .kube_client import KubeClient, get_kube_client, service_selector
from .models import DeploySpec, JobStatus, JobTask, WorkflowContext
from .patcher import ImagePatcher
from .resolver import WorkloadResolver
from .store import EnvironmentStore, ServiceRegistry
from .waiter import CancelSignal, ReadinessWaiter

logger = logging.getLogger(__name__)


class JobLogger(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        return f"[{self.extra['job']}] {msg}", kwargs


class DeployJobController:
    """
    Runs one deploy job to a terminal status.

    The controller owns ``job`` for its whole lifetime. ``run`` never raises:
    every outcome ends as passed, failed, timeout or cancelled on the job.
    """

    def __init__(
        self,
        job: JobTask,
        workflow_ctx: WorkflowContext,
        environments: EnvironmentStore,
        services: ServiceRegistry,
        ack: Optional[Callable[[], None]] = None,
        cancel: Optional[CancelSignal] = None,
        client_factory: Optional[ClientFactory] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.job = job
        self.workflow_ctx = workflow_ctx
        self.services = services
        self.ack = ack or (lambda: None)
        self.cancel = cancel
        self.settings = settings or default_settings
        self.clock = clock
        self.sleep = sleep
        self.logger = JobLogger(logger, {"job": job.name})

        if client_factory is None:
            def client_factory(cluster_id: str, namespace: str) -> KubeClient:
                return get_kube_client(cluster_id, namespace, self.settings)
        self.cluster_resolver = ClusterAccessResolver(environments, client_factory)

        self.namespace = ""
        self.kube_client: Optional[KubeClient] = None
        self.spec: Optional[DeploySpec] = None
        self.spec_error = ""
        try:
            self.spec = DeploySpec.model_validate(job.spec)
        except ValidationError as e:
            self.spec_error = f"invalid deploy spec: {e}"
            self.logger.error(self.spec_error)

    def run(self) -> JobStatus:
        """Resolve, patch and, unless skipped, wait. Returns the terminal status."""
        if not self.job.start():
            return self.job.status
        self.ack()
        try:
            self._run()
        except Exception as e:
            self.logger.exception(f"Unexpected deploy job error: {e}")
            self._finish(JobStatus.FAILED, str(e))
        return self.job.status

    def _run(self) -> None:
        if self.spec is None:
            self._finish(JobStatus.FAILED, self.spec_error)
            return

        try:
            self._deploy()
        except DeployJobError as e:
            self.logger.error(str(e))
            self._finish(JobStatus.FAILED, str(e))
            return

        if self.spec.skip_check_run_status:
            self._finish(JobStatus.PASSED)
            return
        self._wait()

    def _deploy(self) -> None:
        spec = self.spec
        project = self.workflow_ctx.project_name

        access = self.cluster_resolver.resolve(project, spec.env)
        self.namespace = access.namespace
        self.kube_client = access.kube_client
        spec.cluster_id = access.cluster_id

        resolver = WorkloadResolver(self.services, self.kube_client)
        matches = resolver.resolve(
            spec.service_name,
            project,
            spec.service_module,
            spec.env,
            service_type=spec.service_type,
        )

        ImagePatcher(self.kube_client).patch(matches, spec)
        if not spec.skip_check_run_status:
            self.timeout()
        self._save_spec()

    def _wait(self) -> None:
        waiter = ReadinessWaiter(
            self.kube_client,
            poll_interval=self.settings.POLL_INTERVAL_SECS,
            clock=self.clock,
            sleep=self.sleep,
        )
        timeout = self.timeout()
        self.logger.info(f"Waiting up to {timeout}s for {len(self.spec.replace_resources)} workloads")
        result = waiter.wait(
            self.spec.replace_resources,
            service_selector(self.workflow_ctx.project_name, self.spec.service_name),
            timeout,
            cancel=self.cancel,
        )
        self._finish(result.status, result.error)

    def timeout(self) -> int:
        if self.spec.timeout == 0:
            self.spec.timeout = self.settings.DEPLOY_TIMEOUT_SECS
        return self.spec.timeout

    def _save_spec(self) -> None:
        self.job.spec = self.spec.model_dump(mode="json")
        self.ack()

    def _finish(self, status: JobStatus, error: str = "") -> None:
        if self.job.finish(status, error):
            self.logger.info(f"Deploy job {status.value}")
            self.ack()
