"""
Tests for the image patcher.
"""

import pytest
from kubernetes.client.rest import ApiException

from kube_deployer.errors import PatchError
from kube_deployer.kube_types import WorkloadKind
from kube_deployer.models import DeploySpec
from kube_deployer.patcher import ImagePatcher
from kube_deployer.resolver import WorkloadMatch

from conftest import make_workload


def match(name, kind=WorkloadKind.DEPLOYMENT, image="web:1"):
    workload = make_workload(name, kind=kind, containers=[("web", image)])
    return WorkloadMatch(workload=workload, container=workload.containers[0])


@pytest.fixture
def spec():
    return DeploySpec(service_name="web", service_module="web", image="web:2", env="dev")


def test_records_original_images(kube, spec):
    ImagePatcher(kube).patch([match("web"), match("web-sts", kind=WorkloadKind.STATEFULSET, image="web:0")], spec)

    assert [(r.kind, r.name, r.container, r.origin) for r in spec.replace_resources] == [
        (WorkloadKind.DEPLOYMENT, "web", "web", "web:1"),
        (WorkloadKind.STATEFULSET, "web-sts", "web", "web:0"),
    ]
    assert ("update_container_image", WorkloadKind.STATEFULSET, "web-sts", "web", "web:2") in kube.calls


def test_same_image_still_recorded(kube, spec):
    ImagePatcher(kube).patch([match("web", image="web:2")], spec)

    assert spec.replace_resources[0].origin == spec.image


def test_failure_stops_without_rollback(kube, spec):
    kube.patch_errors["web-sts"] = ApiException(status=422, reason="Unprocessable Entity")

    with pytest.raises(PatchError) as exc:
        ImagePatcher(kube).patch(
            [match("web"), match("web-sts", kind=WorkloadKind.STATEFULSET), match("web-extra")],
            spec,
        )

    assert "failed to update container image in demo-dev/statefulsets/web-sts/web" in str(exc.value)
    assert [r.name for r in spec.replace_resources] == ["web"]
    assert kube.count("update_container_image") == 2
