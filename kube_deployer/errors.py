"""
Errors raised by the deploy job stages.
"""


class DeployJobError(Exception):
    """Base class for deploy job failures that end the job as failed."""


class NotFoundError(DeployJobError):
    """An environment, service or workload lookup found nothing."""


class ClusterConnectionError(DeployJobError):
    """A Kubernetes client could not be built for a cluster."""


class WorkloadNotFoundError(DeployJobError):
    """No workload of the service has a container with the target name."""


class PatchError(DeployJobError):
    """A container image update was rejected."""
