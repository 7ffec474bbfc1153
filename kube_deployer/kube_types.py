"""
Type definitions for Kubernetes objects.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional
from datetime import datetime


class WorkloadKind(str, Enum):
    """Workload kinds a deploy job can patch."""
    DEPLOYMENT = "Deployment"
    STATEFULSET = "StatefulSet"


# Pod phases that never count as an error on the deadline pass
POD_PHASE_RUNNING = "Running"
POD_PHASE_SUCCEEDED = "Succeeded"


@dataclass
class Container:
    """Container entry of a pod template."""
    name: str
    image: str


@dataclass
class Workload:
    """Kubernetes Deployment or StatefulSet representation."""
    kind: WorkloadKind
    name: str
    namespace: str
    containers: List[Container]
    replicas: int = 1
    generation: int = 0
    observed_generation: int = 0
    updated_replicas: int = 0
    ready_replicas: int = 0
    available_replicas: int = 0
    current_revision: Optional[str] = None
    update_revision: Optional[str] = None
    labels: Dict[str, str] = field(default_factory=dict)

    def ready(self) -> bool:
        """Whether every desired replica runs the latest pod template."""
        if self.observed_generation < self.generation:
            return False
        if self.updated_replicas != self.replicas or self.ready_replicas != self.replicas:
            return False
        if self.kind == WorkloadKind.DEPLOYMENT:
            return self.available_replicas == self.replicas
        if self.current_revision and self.update_revision:
            return self.current_revision == self.update_revision
        return True


@dataclass
class ContainerStatus:
    """Per-container status reported on a pod."""
    name: str
    state: str  # "waiting", "running", "terminated"
    reason: str = ""
    message: str = ""


@dataclass
class Pod:
    """Kubernetes Pod representation."""
    name: str
    namespace: str
    status: str
    labels: Dict[str, str]
    container_statuses: List[ContainerStatus] = field(default_factory=list)
    creation_timestamp: Optional[datetime] = None
