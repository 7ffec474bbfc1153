"""
In-memory environment and service catalog.
"""
import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field

from .errors import NotFoundError
from .models import Environment, ServiceInfo

logger = logging.getLogger(__name__)

STATUS_DELETING = "deleting"


class Catalog(BaseModel):
    environments: List[Environment] = Field(default_factory=list)
    services: List[ServiceInfo] = Field(default_factory=list)


class EnvironmentStore:
    """Resolves a project environment to its namespace and cluster."""

    def __init__(self, environments: Iterable[Environment] = ()):
        self._environments: dict[Tuple[str, str], Environment] = {}
        for env in environments:
            self.add(env)

    def add(self, env: Environment) -> None:
        self._environments[(env.project_name, env.env_name)] = env

    def find(self, project_name: str, env_name: str) -> Environment:
        try:
            return self._environments[(project_name, env_name)]
        except KeyError:
            raise NotFoundError(f"environment {env_name} of project {project_name} not found") from None


class ServiceRegistry:
    """Service templates, owned by a project or shared across projects."""

    def __init__(self, services: Iterable[ServiceInfo] = ()):
        self._services: List[ServiceInfo] = list(services)

    def add(self, service: ServiceInfo) -> None:
        self._services.append(service)

    def find(
        self,
        service_name: str,
        project_name: Optional[str] = None,
        exclude_status: str = STATUS_DELETING,
        service_type: Optional[str] = None,
    ) -> ServiceInfo:
        """
        Find a service by name.

        Args:
            service_name: Service name
            project_name: Owning project; None searches every project
            exclude_status: Services in this status are skipped
            service_type: Only services of this type match when set

        Returns:
            First matching service in registration order
        """
        for svc in self._services:
            if svc.service_name != service_name:
                continue
            if project_name is not None and svc.project_name != project_name:
                continue
            if exclude_status and svc.status == exclude_status:
                continue
            if service_type and svc.type != service_type:
                continue
            return svc

        scope = f"project {project_name}" if project_name is not None else "any project"
        raise NotFoundError(f"service {service_name} not found in {scope}")


def load_catalog(path: str | Path) -> Tuple[EnvironmentStore, ServiceRegistry]:
    """
    Load environments and services from a JSON catalog file.

    Args:
        path: File with ``{"environments": [...], "services": [...]}``

    Returns:
        Environment store and service registry populated from the file
    """
    with open(path, encoding="utf-8") as f:
        catalog = Catalog.model_validate(json.load(f))

    logger.info(
        f"Loaded catalog {path}: {len(catalog.environments)} environments, {len(catalog.services)} services"
    )
    return EnvironmentStore(catalog.environments), ServiceRegistry(catalog.services)
