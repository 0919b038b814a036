import pytest

from sspop import template_validator as tv

NAMESPACE = "kubevirt"
REPLICAS = 2


def _webhook():
    return tv.new_validating_webhook(
        NAMESPACE, "/virtualmachine-validate", "/template-validate", ["v1", "v1alpha3"]
    )


def test_image_from_environment():
    assert tv.template_validator_image({"VALIDATOR_IMAGE": "test-img"}) == "test-img"


def test_image_default_when_unset_or_empty():
    assert tv.template_validator_image({}) == tv.DEFAULT_TEMPLATE_VALIDATOR_IMAGE
    assert tv.template_validator_image({"VALIDATOR_IMAGE": ""}) == tv.DEFAULT_TEMPLATE_VALIDATOR_IMAGE


def test_cluster_role_rules():
    role = tv.new_cluster_role()
    assert role["metadata"]["name"] == "template:view"
    assert role["rules"][0]["apiGroups"] == ["template.openshift.io"]
    assert role["rules"][1]["resources"] == ["virtualmachines"]


def test_cluster_role_binding_subject():
    binding = tv.new_cluster_role_binding(NAMESPACE)
    assert binding["roleRef"]["name"] == "template:view"
    assert binding["subjects"] == [
        {"kind": "ServiceAccount", "name": "template-validator", "namespace": NAMESPACE}
    ]


def test_service_account():
    account = tv.new_service_account(NAMESPACE)
    assert account["metadata"]["namespace"] == NAMESPACE
    assert account["metadata"]["labels"] == {"kubevirt.io": "virt-template-validator"}


def test_service_ports():
    service = tv.new_service(NAMESPACE)
    assert service["spec"]["ports"] == [{"name": "webhook", "port": 443, "targetPort": 8443}]
    assert service["metadata"]["annotations"]["service.beta.openshift.io/serving-cert-secret-name"] == (
        "virt-template-validator-certs"
    )


def test_deployment_fields():
    deployment = tv.new_deployment(NAMESPACE, REPLICAS, "test-img")
    assert deployment["spec"]["replicas"] == REPLICAS
    pod = deployment["spec"]["template"]
    assert pod["metadata"]["labels"] == {
        "kubevirt.io": "virt-template-validator",
        "prometheus.kubevirt.io": "",
        "name": "virt-template-validator",
    }
    container = pod["spec"]["containers"][0]
    assert container["image"] == "test-img"
    assert container["args"] == ["-v=2", "--port=8443", "--cert-dir=/etc/webhook/certs"]
    assert container["readinessProbe"]["httpGet"]["path"] == "/readyz"


def test_webhook_rules_per_version():
    webhook = _webhook()
    vm_hook, template_hook = webhook["webhooks"]
    assert [rule["apiVersions"] for rule in vm_hook["rules"]] == [["v1"], ["v1alpha3"]]
    assert vm_hook["clientConfig"]["service"]["path"] == "/virtualmachine-validate"
    assert template_hook["rules"][0]["operations"] == ["DELETE"]
    assert template_hook["objectSelector"]["matchLabels"] == {"template.kubevirt.io/type": "base"}


def test_add_placement_fields():
    deployment = tv.new_deployment(NAMESPACE, REPLICAS, "test-img")
    placement = {"nodeSelector": {"zone": "a"}, "tolerations": [{"key": "k"}]}
    tv.add_placement_fields(deployment, placement)
    pod_spec = deployment["spec"]["template"]["spec"]
    assert pod_spec["nodeSelector"] == {"zone": "a"}
    assert pod_spec["tolerations"] == [{"key": "k"}]
    assert "affinity" not in pod_spec


def test_add_placement_none_leaves_deployment():
    deployment = tv.new_deployment(NAMESPACE, REPLICAS, "test-img")
    tv.add_placement_fields(deployment, None)
    assert deployment == tv.new_deployment(NAMESPACE, REPLICAS, "test-img")


def test_should_not_update_webhook_ca_bundle():
    found = _webhook()
    found["webhooks"][0]["clientConfig"]["caBundle"] = "testCaBundle"
    new = _webhook()
    tv.copy_found_ca_bundles(new["webhooks"], found["webhooks"])
    assert new["webhooks"][0]["clientConfig"]["caBundle"] == "testCaBundle"
    assert "caBundle" not in new["webhooks"][1]["clientConfig"]


def test_should_not_update_service_cluster_ip():
    found = tv.new_service(NAMESPACE)
    found["spec"]["clusterIP"] = "198.51.100.42"
    found["spec"]["ports"] = []
    updated = tv.update_service(tv.new_service(NAMESPACE), found)
    assert updated["spec"]["clusterIP"] == "198.51.100.42"
    assert updated["spec"]["ports"] == [{"name": "webhook", "port": 443, "targetPort": 8443}]


@pytest.mark.parametrize(
    "available, expect_problem",
    [(0, True), (REPLICAS, False)],
)
def test_should_report_status(available, expect_problem):
    deployment = tv.new_deployment(NAMESPACE, REPLICAS, "test-img")
    deployment["status"] = {"replicas": REPLICAS, "availableReplicas": available}
    status = tv.deployment_status(REPLICAS, deployment)
    if expect_problem:
        assert status["not_available"] == "No validator pods are running. Expected: 2"
        assert status["progressing"] == (
            "Not all template validator pods are running. Expected: 2, running: 0"
        )
        assert status["degraded"] == status["progressing"]
    else:
        assert status == {"not_available": None, "progressing": None, "degraded": None}


def test_partial_availability_is_progressing_only():
    status = tv.deployment_status(3, {"status": {"replicas": 3, "availableReplicas": 1}})
    assert status["not_available"] is None
    assert status["progressing"] == "Not all template validator pods are running. Expected: 3, running: 1"