"""
Waits for patched workloads to roll out.
"""
import logging
import time
from typing import Callable, List, NamedTuple, Optional, Protocol, Sequence

from .kube_client import KubeClient
from .kube_types import POD_PHASE_RUNNING, POD_PHASE_SUCCEEDED, Pod
from .models import JobStatus, ReplaceResource

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 2


class CancelSignal(Protocol):
    def is_set(self) -> bool: ...


class WaitResult(NamedTuple):
    status: JobStatus
    error: str = ""


def pod_error_messages(pods: Sequence[Pod]) -> List[str]:
    """
    Container errors of pods that are neither running nor completed.

    An empty container message means the container is still starting and is
    not reported.
    """
    messages = []
    for pod in pods:
        if pod.status in (POD_PHASE_RUNNING, POD_PHASE_SUCCEEDED):
            continue
        for cs in pod.container_statuses:
            if cs.message:
                messages.append(f"Status: {cs.state}, Reason: {cs.reason}, Message: {cs.message}")
    return messages


class ReadinessWaiter:
    """
    Polls the replace ledger until every workload is ready.

    Each iteration checks, in order: cancellation, then the deadline, then
    sleeps one poll interval and checks readiness of the ledger entries.
    """

    def __init__(
        self,
        kube_client: KubeClient,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.kube_client = kube_client
        self.poll_interval = poll_interval
        self.clock = clock
        self.sleep = sleep

    def wait(
        self,
        resources: Sequence[ReplaceResource],
        pod_selector: str,
        timeout: float,
        cancel: Optional[CancelSignal] = None,
    ) -> WaitResult:
        """
        Block until the resources are ready, the timeout elapses or the job is cancelled.

        Args:
            resources: Ledger entries to check, in ledger order
            pod_selector: Selector of the service pods, used for the deadline diagnostics
            timeout: Seconds from now before giving up
            cancel: Cancellation signal checked before every poll

        Returns:
            Terminal status and error detail
        """
        deadline = self.clock() + timeout
        ticks = 0

        while True:
            if cancel is not None and cancel.is_set():
                return WaitResult(JobStatus.CANCELLED, "job cancelled")

            remaining = deadline - self.clock()
            if remaining <= 0:
                return self._deadline_result(pod_selector)

            self.sleep(min(self.poll_interval, remaining))
            ticks += 1
            ready = self._ready(resources)

            # a cancellation that arrived during the tick discards its result
            if cancel is not None and cancel.is_set():
                return WaitResult(JobStatus.CANCELLED, "job cancelled")
            if ready:
                logger.info(f"All {len(resources)} workloads ready after {ticks} checks")
                return WaitResult(JobStatus.PASSED)

    def _ready(self, resources: Sequence[ReplaceResource]) -> bool:
        namespace = self.kube_client.namespace
        for resource in resources:
            try:
                workload = self.kube_client.get_workload(resource.kind, resource.name)
            except Exception as e:
                logger.error(
                    f"failed to check {resource.kind.value} ready status {namespace}/{resource.name}: {e}"
                )
                return False
            if workload is None:
                logger.error(f"failed to check {resource.kind.value} ready status {namespace}/{resource.name}: not found")
                return False
            if not workload.ready():
                logger.debug(
                    f"{resource.kind.value} {resource.name} not ready: "
                    f"{workload.updated_replicas} updated, {workload.ready_replicas} ready of {workload.replicas}"
                )
                return False
        return True

    def _deadline_result(self, pod_selector: str) -> WaitResult:
        try:
            pods = self.kube_client.list_pods(pod_selector)
        except Exception as e:
            msg = f"list pods error: {e}"
            logger.error(msg)
            return WaitResult(JobStatus.FAILED, msg)

        messages = pod_error_messages(pods)
        if messages:
            msg = "\n".join(messages)
            logger.error(msg)
            return WaitResult(JobStatus.FAILED, msg)

        logger.warning(f"Timed out waiting for pods matching {pod_selector}")
        return WaitResult(JobStatus.TIMEOUT)
