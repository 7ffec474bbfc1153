"""
Job records and catalog entries for deploy jobs.
"""
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .kube_types import WorkloadKind

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self not in (JobStatus.CREATED, JobStatus.RUNNING)


class ReplaceResource(BaseModel):
    """Ledger entry for one container image replaced by a deploy job."""
    kind: WorkloadKind
    name: str
    container: str
    origin: str = Field(..., description="Image the container ran before the update")


class DeploySpec(BaseModel):
    """Deploy job spec, rewritten onto the job record once the images are patched."""
    service_name: str
    service_module: str = Field(..., description="Container name inside the workload")
    image: str
    env: str = Field(..., description="Environment name")
    service_type: str = "k8s"
    cluster_id: str = ""
    timeout: int = Field(default=0, ge=0, description="Readiness timeout in seconds, 0 for the default")
    skip_check_run_status: bool = False
    replace_resources: List[ReplaceResource] = Field(default_factory=list)


class WorkflowContext(BaseModel):
    project_name: str
    workflow_name: str = ""
    task_id: int = 0


class JobTask(BaseModel):
    """Job record shared with the workflow engine."""
    name: str
    status: JobStatus = JobStatus.CREATED
    error: str = ""
    spec: Dict[str, Any] = Field(default_factory=dict)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    def start(self) -> bool:
        """
        Mark the job running.

        Returns:
            False when the job already finished; its terminal status is kept
        """
        if self.status.terminal:
            logger.warning(f"Job {self.name} already {self.status.value}, not starting again")
            return False
        self.status = JobStatus.RUNNING
        self.start_time = datetime.now(timezone.utc)
        return True

    def finish(self, status: JobStatus, error: str = "") -> bool:
        """
        Record the terminal status of the job.

        Returns:
            False when the job already had a terminal status, which is kept
        """
        if self.status.terminal:
            logger.warning(f"Job {self.name} already {self.status.value}, ignoring {status.value}")
            return False
        self.status = status
        self.error = error
        self.end_time = datetime.now(timezone.utc)
        return True


class Environment(BaseModel):
    project_name: str
    env_name: str
    namespace: str
    cluster_id: str = ""


class ServiceInfo(BaseModel):
    service_name: str
    project_name: str = Field(default="", description="Owning project, empty for shared services")
    type: str = "k8s"
    status: str = ""
    workload_type: Optional[WorkloadKind] = None
