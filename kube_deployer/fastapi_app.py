# fastapi_app.py
from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .cluster import ClientFactory
from .config import Settings, settings as default_settings
from .controller import DeployJobController
from .models import DeploySpec, JobTask, WorkflowContext
from .store import EnvironmentStore, ServiceRegistry, load_catalog

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Models
# -----------------------------------------------------------------------------
class DeployRequest(BaseModel):
    project: str = Field(..., description="Project owning the environment")
    workflow: str = Field(default="", description="Workflow that triggered the job")
    env: str = Field(..., description="Environment name")
    service_name: str
    service_module: str = Field(..., description="Container to update")
    image: str
    service_type: str = Field(default="k8s")
    timeout: int = Field(default=0, ge=0, description="Readiness timeout in seconds, 0 for the default")
    skip_check_run_status: bool = False


class JobEntry:
    """A submitted job with its cancellation signal."""

    def __init__(self, job: JobTask, ctx: WorkflowContext):
        self.job = job
        self.ctx = ctx
        self.cancel = threading.Event()


# -----------------------------------------------------------------------------
# App
# -----------------------------------------------------------------------------
def create_app(
    environments: EnvironmentStore,
    services: ServiceRegistry,
    client_factory: Optional[ClientFactory] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    settings = settings or default_settings
    jobs: Dict[str, JobEntry] = {}

    app = FastAPI(title=settings.APP_NAME, version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _evict_finished() -> None:
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=settings.JOB_RETENTION_SECS)
        expired = [
            name for name, entry in list(jobs.items())
            if entry.job.status.terminal and entry.job.end_time is not None and entry.job.end_time <= cutoff
        ]
        for name in expired:
            del jobs[name]
        if expired:
            logger.info(f"Evicted {len(expired)} finished jobs")

    def _entry(name: str) -> JobEntry:
        entry = jobs.get(name)
        if entry is None:
            raise HTTPException(status_code=404, detail=f"Job {name} not found")
        return entry

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    @app.post("/api/jobs/deploy", status_code=202)
    def submit_deploy(req: DeployRequest, background_tasks: BackgroundTasks) -> Dict[str, Any]:
        """Register a deploy job and run it in the background."""
        name = f"deploy-{req.service_name}-{uuid.uuid4().hex[:8]}"
        spec = DeploySpec(
            service_name=req.service_name,
            service_module=req.service_module,
            image=req.image,
            env=req.env,
            service_type=req.service_type,
            timeout=req.timeout,
            skip_check_run_status=req.skip_check_run_status,
        )
        entry = JobEntry(
            JobTask(name=name, spec=spec.model_dump(mode="json")),
            WorkflowContext(project_name=req.project, workflow_name=req.workflow),
        )
        _evict_finished()
        jobs[name] = entry

        controller = DeployJobController(
            entry.job,
            entry.ctx,
            environments,
            services,
            ack=lambda: logger.debug(f"Job {name} is {entry.job.status.value}"),
            cancel=entry.cancel,
            client_factory=client_factory,
            settings=settings,
        )
        background_tasks.add_task(controller.run)
        logger.info(f"🚀 Submitted deploy job {name}: {req.service_name}/{req.service_module} -> {req.image}")
        return {"name": name, "status": entry.job.status.value}

    @app.get("/api/jobs/{name}")
    def get_job(name: str) -> Dict[str, Any]:
        return _entry(name).job.model_dump(mode="json")

    @app.post("/api/jobs/{name}/cancel")
    def cancel_job(name: str) -> Dict[str, Any]:
        entry = _entry(name)
        if entry.job.status.terminal:
            raise HTTPException(status_code=409, detail=f"Job {name} already {entry.job.status.value}")
        entry.cancel.set()
        logger.info(f"🛑 Cancellation requested for job {name}")
        return {"name": name, "status": entry.job.status.value, "cancel_requested": True}

    return app


def _load_stores(settings: Settings) -> tuple[EnvironmentStore, ServiceRegistry]:
    if not settings.CATALOG_PATH:
        logger.warning("⚠️ CATALOG_PATH not set, starting with an empty catalog")
        return EnvironmentStore(), ServiceRegistry()
    return load_catalog(settings.CATALOG_PATH)


logging.basicConfig(level=getattr(logging, default_settings.LOG_LEVEL.upper(), logging.INFO))
app = create_app(*_load_stores(default_settings))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=default_settings.HTTP_PORT)
