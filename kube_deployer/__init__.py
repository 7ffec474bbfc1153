"""
Deploy job controller: patch the image of a service's workloads and wait for the rollout.
"""
from .controller import DeployJobController
from .models import DeploySpec, JobStatus, JobTask, ReplaceResource, WorkflowContext

__all__ = [
    "DeployJobController",
    "DeploySpec",
    "JobStatus",
    "JobTask",
    "ReplaceResource",
    "WorkflowContext",
]
