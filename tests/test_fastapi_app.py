"""
Tests for the deploy job API.
"""

import pytest
from fastapi.testclient import TestClient

from kube_deployer.config import Settings
from kube_deployer.fastapi_app import create_app

from conftest import make_workload


@pytest.fixture
def api(environments, services, kube):
    settings = Settings(DEPLOY_TIMEOUT_SECS=5, POLL_INTERVAL_SECS=0)
    app = create_app(environments, services, client_factory=lambda cluster_id, namespace: kube, settings=settings)
    return TestClient(app)


def deploy_body(**overrides):
    body = {
        "project": "demo",
        "workflow": "release",
        "env": "dev",
        "service_name": "web",
        "service_module": "web",
        "image": "registry/web:v2",
    }
    body.update(overrides)
    return body


def test_health(api):
    response = api.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


class TestDeployJobs:

    def test_submit_runs_job(self, api, kube):
        kube.deployments = [make_workload("web", containers=[("web", "registry/web:v1")])]

        response = api.post("/api/jobs/deploy", json=deploy_body())

        assert response.status_code == 202
        name = response.json()["name"]
        assert name.startswith("deploy-web-")

        job = api.get(f"/api/jobs/{name}").json()
        assert job["status"] == "passed"
        assert job["spec"]["replace_resources"] == [
            {"kind": "Deployment", "name": "web", "container": "web", "origin": "registry/web:v1"},
        ]
        assert job["spec"]["timeout"] == 5

    def test_failed_job_reports_error(self, api, kube):
        response = api.post("/api/jobs/deploy", json=deploy_body(skip_check_run_status=True))

        job = api.get(f"/api/jobs/{response.json()['name']}").json()
        assert job["status"] == "failed"
        assert job["error"] == "service web container name web is not found in env dev"

    def test_invalid_request(self, api):
        response = api.post("/api/jobs/deploy", json=deploy_body(timeout=-1))
        assert response.status_code == 422

    def test_unknown_job(self, api):
        assert api.get("/api/jobs/nope").status_code == 404
        assert api.post("/api/jobs/nope/cancel").status_code == 404

    def test_cancel_finished_job(self, api, kube):
        kube.deployments = [make_workload("web")]
        name = api.post("/api/jobs/deploy", json=deploy_body(skip_check_run_status=True)).json()["name"]

        response = api.post(f"/api/jobs/{name}/cancel")

        assert response.status_code == 409


class TestJobRetention:

    def make_api(self, environments, services, kube, retention):
        settings = Settings(DEPLOY_TIMEOUT_SECS=5, POLL_INTERVAL_SECS=0, JOB_RETENTION_SECS=retention)
        app = create_app(environments, services, client_factory=lambda cluster_id, namespace: kube, settings=settings)
        return TestClient(app)

    def test_finished_jobs_evicted_after_retention(self, environments, services, kube):
        kube.deployments = [make_workload("web")]
        api = self.make_api(environments, services, kube, retention=0)

        first = api.post("/api/jobs/deploy", json=deploy_body(skip_check_run_status=True)).json()["name"]
        second = api.post("/api/jobs/deploy", json=deploy_body(skip_check_run_status=True)).json()["name"]

        assert api.get(f"/api/jobs/{first}").status_code == 404
        assert api.get(f"/api/jobs/{second}").json()["status"] == "passed"

    def test_finished_jobs_kept_within_retention(self, environments, services, kube):
        kube.deployments = [make_workload("web")]
        api = self.make_api(environments, services, kube, retention=3600)

        first = api.post("/api/jobs/deploy", json=deploy_body(skip_check_run_status=True)).json()["name"]
        api.post("/api/jobs/deploy", json=deploy_body(skip_check_run_status=True))

        assert api.get(f"/api/jobs/{first}").json()["status"] == "passed"


def test_app_title_from_settings(environments, services):
    app = create_app(environments, services, settings=Settings(APP_NAME="release-deployer"))
    assert app.title == "release-deployer"
