"""Resources and helpers of the template validator operand."""

from __future__ import annotations

import copy
import os
from typing import Any, Iterable, Mapping, MutableMapping

from .common_templates import TEMPLATE_TYPE_LABEL, TEMPLATE_TYPE_LABEL_BASE_VALUE
from .csv_generator import TEMPLATE_VALIDATOR_IMAGE_KEY

DEFAULT_TEMPLATE_VALIDATOR_IMAGE = "quay.io/kubevirt/kubevirt-template-validator:latest"

CONTAINER_PORT = 8443
METRICS_PORT = 8443
KUBEVIRT_IO = "kubevirt.io"
SERVING_CERTS_NAME = "virt-template-validator-certs"
SECRET_NAME = SERVING_CERTS_NAME
VIRT_TEMPLATE_VALIDATOR = "virt-template-validator"
CLUSTER_ROLE_NAME = "template:view"
CLUSTER_ROLE_BINDING_NAME = "template-validator"
WEBHOOK_NAME = VIRT_TEMPLATE_VALIDATOR
SERVICE_ACCOUNT_NAME = "template-validator"
SERVICE_NAME = VIRT_TEMPLATE_VALIDATOR
DEPLOYMENT_NAME = VIRT_TEMPLATE_VALIDATOR
PROMETHEUS_LABEL = "prometheus.kubevirt.io"

OPERAND_NAME = "template-validator"
OPERAND_COMPONENT = "templating"

KUBEVIRT_GROUP = "kubevirt.io"
TEMPLATE_GROUP = "template.openshift.io"
TEMPLATE_VERSION = "v1"
RBAC_GROUP = "rbac.authorization.k8s.io"
RBAC_API_VERSION = f"{RBAC_GROUP}/v1"

WATCH_TYPES = ("ServiceAccount", "Service", "Deployment")
WATCH_CLUSTER_TYPES = ("ClusterRole", "ClusterRoleBinding", "ValidatingWebhookConfiguration")

_PLACEMENT_KEYS = ("affinity", "nodeSelector", "tolerations")
_SERVING_CERT_ANNOTATION = "service.beta.openshift.io/serving-cert-secret-name"


def _common_labels() -> dict[str, str]:
    return {KUBEVIRT_IO: VIRT_TEMPLATE_VALIDATOR}


def template_validator_image(environ: Mapping[str, str] | None = None) -> str:
    """Return the validator image from the environment, or the built-in default."""
    env = os.environ if environ is None else environ
    return env.get(TEMPLATE_VALIDATOR_IMAGE_KEY) or DEFAULT_TEMPLATE_VALIDATOR_IMAGE


def new_cluster_role() -> dict[str, Any]:
    """Return the cluster role letting the validator read templates and VMs."""
    read = ["get", "list", "watch"]
    return {
        "apiVersion": RBAC_API_VERSION,
        "kind": "ClusterRole",
        "metadata": {"name": CLUSTER_ROLE_NAME, "labels": {KUBEVIRT_IO: ""}},
        "rules": [
            {"apiGroups": [TEMPLATE_GROUP], "resources": ["templates"], "verbs": list(read)},
            {"apiGroups": [KUBEVIRT_GROUP], "resources": ["virtualmachines"], "verbs": list(read)},
        ],
    }


def new_service_account(namespace: str) -> dict[str, Any]:
    """Return the validator's service account."""
    return {
        "apiVersion": "v1",
        "kind": "ServiceAccount",
        "metadata": {
            "name": SERVICE_ACCOUNT_NAME,
            "namespace": namespace,
            "labels": _common_labels(),
        },
    }


def new_cluster_role_binding(namespace: str) -> dict[str, Any]:
    """Return the binding of the cluster role to the validator's service account."""
    return {
        "apiVersion": RBAC_API_VERSION,
        "kind": "ClusterRoleBinding",
        "metadata": {"name": CLUSTER_ROLE_BINDING_NAME, "labels": _common_labels()},
        "roleRef": {"kind": "ClusterRole", "name": CLUSTER_ROLE_NAME, "apiGroup": RBAC_GROUP},
        "subjects": [
            {"kind": "ServiceAccount", "name": SERVICE_ACCOUNT_NAME, "namespace": namespace}
        ],
    }


def new_service(namespace: str) -> dict[str, Any]:
    """Return the service in front of the validator pods."""
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {
            "name": SERVICE_NAME,
            "namespace": namespace,
            "labels": _common_labels(),
            "annotations": {_SERVING_CERT_ANNOTATION: SERVING_CERTS_NAME},
        },
        "spec": {
            "ports": [{"name": "webhook", "port": 443, "targetPort": CONTAINER_PORT}],
            "selector": _common_labels(),
        },
    }


def new_deployment(namespace: str, replicas: int, image: str) -> dict[str, Any]:
    """Return the deployment running the validator."""
    volume_name = "tls"
    cert_mount_path = "/etc/webhook/certs"

    pod_labels = _common_labels()
    pod_labels[PROMETHEUS_LABEL] = ""
    pod_labels["name"] = DEPLOYMENT_NAME

    container = {
        "name": "webhook",
        "image": image,
        "imagePullPolicy": "Always",
        "resources": {"requests": {"cpu": "50m", "memory": "150Mi"}},
        "args": ["-v=2", f"--port={CONTAINER_PORT}", f"--cert-dir={cert_mount_path}"],
        "volumeMounts": [{"name": volume_name, "mountPath": cert_mount_path, "readOnly": True}],
        "securityContext": {"readOnlyRootFilesystem": True},
        "ports": [
            {"name": "webhook", "containerPort": CONTAINER_PORT, "protocol": "TCP"},
            {"name": "metrics", "containerPort": METRICS_PORT, "protocol": "TCP"},
        ],
        "readinessProbe": {
            "httpGet": {"path": "/readyz", "port": CONTAINER_PORT, "scheme": "HTTPS"},
            "initialDelaySeconds": 5,
            "periodSeconds": 10,
        },
    }
    certs_source = {"secretName": SERVING_CERTS_NAME}
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {
            "name": DEPLOYMENT_NAME,
            "namespace": namespace,
            "labels": {"name": DEPLOYMENT_NAME},
        },
        "spec": {
            "replicas": replicas,
            "selector": {"matchLabels": _common_labels()},
            "template": {
                "metadata": {"name": VIRT_TEMPLATE_VALIDATOR, "labels": pod_labels},
                "spec": {
                    "serviceAccountName": SERVICE_ACCOUNT_NAME,
                    "priorityClassName": "system-cluster-critical",
                    "containers": [container],
                    "volumes": [{"name": volume_name, "secret": certs_source}],
                },
            },
        },
    }


def new_validating_webhook(
    service_namespace: str,
    vm_validate_path: str,
    template_validate_path: str,
    vm_api_versions: Iterable[str],
) -> dict[str, Any]:
    """Return the webhook configuration validating VMs and template deletion."""
    vm_rules = [
        {
            "operations": ["CREATE", "UPDATE"],
            "apiGroups": [KUBEVIRT_GROUP],
            "apiVersions": [version],
            "resources": ["virtualmachines"],
        }
        for version in vm_api_versions
    ]

    def service_ref(path: str) -> dict[str, Any]:
        return {"service": {"name": SERVICE_NAME, "namespace": service_namespace, "path": path}}

    return {
        "apiVersion": "admissionregistration.k8s.io/v1",
        "kind": "ValidatingWebhookConfiguration",
        "metadata": {
            "name": WEBHOOK_NAME,
            "annotations": {"service.beta.openshift.io/inject-cabundle": "true"},
        },
        "webhooks": [
            {
                "name": "virtualmachine-admission.ssp.kubevirt.io",
                "clientConfig": service_ref(vm_validate_path),
                "rules": vm_rules,
                "failurePolicy": "Fail",
                "sideEffects": "None",
                "admissionReviewVersions": ["v1"],
            },
            {
                "name": "template-admission.ssp.kubevirt.io",
                "clientConfig": service_ref(template_validate_path),
                "objectSelector": {
                    "matchLabels": {TEMPLATE_TYPE_LABEL: TEMPLATE_TYPE_LABEL_BASE_VALUE}
                },
                "rules": [
                    {
                        "operations": ["DELETE"],
                        "apiGroups": [TEMPLATE_GROUP],
                        "apiVersions": [TEMPLATE_VERSION],
                        "resources": ["templates"],
                    }
                ],
                "failurePolicy": "Fail",
                "sideEffects": "None",
                "admissionReviewVersions": ["v1"],
            },
        ],
    }


def add_placement_fields(deployment: MutableMapping[str, Any], placement: Mapping[str, Any] | None) -> None:
    """Copy the node placement into the deployment's pod spec, in place."""
    if placement is None:
        return
    pod_spec = deployment["spec"]["template"]["spec"]
    for key in _PLACEMENT_KEYS:
        value = placement.get(key)
        if value is None:
            pod_spec.pop(key, None)
        else:
            pod_spec[key] = copy.deepcopy(value)


def copy_found_ca_bundles(
    new_webhooks: Iterable[MutableMapping[str, Any]],
    found_webhooks: Iterable[Mapping[str, Any]],
) -> None:
    """Carry CA bundles of existing webhooks over to the new ones with the same name."""
    found_by_name: dict[str, Mapping[str, Any]] = {}
    for found in found_webhooks:
        found_by_name.setdefault(found.get("name"), found)
    for webhook in new_webhooks:
        found = found_by_name.get(webhook.get("name"))
        if found is None:
            continue
        found_config = found.get("clientConfig") or {}
        config = webhook.setdefault("clientConfig", {})
        if found_config.get("caBundle") is None:
            config.pop("caBundle", None)
        else:
            config["caBundle"] = found_config["caBundle"]


def update_service(
    new_service: MutableMapping[str, Any], found_service: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Replace the found service's spec with the new one, keeping its cluster IP."""
    new_spec = new_service.setdefault("spec", {})
    found_ip = (found_service.get("spec") or {}).get("clusterIP")
    if found_ip is None:
        new_spec.pop("clusterIP", None)
    else:
        new_spec["clusterIP"] = found_ip
    found_service["spec"] = copy.deepcopy(new_spec)
    return found_service


def deployment_status(replicas: int, deployment: Mapping[str, Any]) -> dict[str, str | None]:
    """Report availability of the validator deployment against the wanted replica count."""
    status = deployment.get("status") or {}
    available = status.get("availableReplicas", 0) or 0
    result: dict[str, str | None] = {"not_available": None, "progressing": None, "degraded": None}
    if replicas > 0 and available == 0:
        result["not_available"] = (
            f"No validator pods are running. Expected: {status.get('replicas', 0) or 0}"
        )
    if available != replicas:
        message = (
            "Not all template validator pods are running. "
            f"Expected: {replicas}, running: {available}"
        )
        result["progressing"] = message
        result["degraded"] = message
    return result