"""Resources of the deprecated node-labeller operand, which is now only removed."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol

from .api import NotFoundError

_log = logging.getLogger(__name__)

KUBEVIRT_NODE_LABELLER = "kubevirt-node-labeller"

SERVICE_ACCOUNT_NAME = KUBEVIRT_NODE_LABELLER
DAEMON_SET_NAME = KUBEVIRT_NODE_LABELLER
CONFIG_MAP_NAME = "kubevirt-cpu-plugin-configmap"
CLUSTER_ROLE_NAME = KUBEVIRT_NODE_LABELLER
CLUSTER_ROLE_BINDING_NAME = KUBEVIRT_NODE_LABELLER
SECURITY_CONTEXT_NAME = KUBEVIRT_NODE_LABELLER

OPERAND_NAME = "node-labeler"
OPERAND_COMPONENT = "schedule"

RBAC_GROUP = "rbac.authorization.k8s.io"
RBAC_API_VERSION = f"{RBAC_GROUP}/v1"

WATCH_TYPES = ("ServiceAccount", "ConfigMap", "DaemonSet")
WATCH_CLUSTER_TYPES = ("ClusterRole", "ClusterRoleBinding", "SecurityContextConstraints")

CPU_PLUGIN_CONFIGMAP = """obsoleteCPUs:
  - "486"
  - "pentium"
  - "pentium2"
  - "pentium3"
  - "pentiumpro"
  - "coreduo"
  - "n270"
  - "core2duo"
  - "Conroe"
  - "athlon"
  - "phenom"
minCPU: "Penryn\""""


class DeletingClient(Protocol):
    """The cluster operation the operand needs."""

    def delete(self, obj: dict[str, Any]) -> Any: ...


def new_cluster_role() -> dict[str, Any]:
    """Return the cluster role that allowed the labeller to update nodes."""
    return {
        "apiVersion": RBAC_API_VERSION,
        "kind": "ClusterRole",
        "metadata": {"name": CLUSTER_ROLE_NAME},
        "rules": [
            {"apiGroups": [""], "resources": ["nodes"], "verbs": ["get", "update", "patch"]}
        ],
    }


def new_service_account(namespace: str) -> dict[str, Any]:
    """Return the labeller's service account."""
    return {
        "apiVersion": "v1",
        "kind": "ServiceAccount",
        "metadata": {"name": SERVICE_ACCOUNT_NAME, "namespace": namespace},
    }


def new_cluster_role_binding(namespace: str) -> dict[str, Any]:
    """Return the binding of the cluster role to the labeller's service account."""
    return {
        "apiVersion": RBAC_API_VERSION,
        "kind": "ClusterRoleBinding",
        "metadata": {"name": CLUSTER_ROLE_BINDING_NAME},
        "roleRef": {"kind": "ClusterRole", "name": CLUSTER_ROLE_NAME, "apiGroup": RBAC_GROUP},
        "subjects": [
            {"kind": "ServiceAccount", "name": SERVICE_ACCOUNT_NAME, "namespace": namespace}
        ],
    }


def new_config_map(namespace: str) -> dict[str, Any]:
    """Return the CPU plugin configuration map."""
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": CONFIG_MAP_NAME, "namespace": namespace},
        "data": {"cpu-plugin-configmap.yaml": CPU_PLUGIN_CONFIGMAP},
    }


def new_daemon_set(namespace: str) -> dict[str, Any]:
    """Return a reference to the labeller daemon set."""
    return {
        "apiVersion": "apps/v1",
        "kind": "DaemonSet",
        "metadata": {"name": DAEMON_SET_NAME, "namespace": namespace},
    }


def new_security_context_constraint(namespace: str) -> dict[str, Any]:
    """Return the privileged security context constraints of the labeller."""
    return {
        "apiVersion": "security.openshift.io/v1",
        "kind": "SecurityContextConstraints",
        "metadata": {"name": SECURITY_CONTEXT_NAME},
        "allowPrivilegedContainer": True,
        "runAsUser": {"type": "RunAsAny"},
        "seLinuxContext": {"type": "RunAsAny"},
        "users": [f"system:serviceaccount:{namespace}:{SERVICE_ACCOUNT_NAME}"],
    }


def daemon_set_status(daemon_set: Mapping[str, Any]) -> dict[str, str | None]:
    """Report whether all labeller pods of the daemon set are ready."""
    status = daemon_set.get("status") or {}
    ready = status.get("numberReady", 0) or 0
    desired = status.get("desiredNumberScheduled", 0) or 0
    message = None
    if ready != desired:
        message = (
            "Not all node-labeler pods are ready. "
            f"(ready pods: {ready}, desired pods: {desired})"
        )
    return {"not_available": message, "progressing": message, "degraded": message}


def _delete(client: DeletingClient, obj: dict[str, Any]) -> None:
    try:
        client.delete(obj)
    except NotFoundError:
        return
    except Exception as err:
        _log.error('Error deleting "%s": %s', obj["metadata"]["name"], err)
        raise


class NodeLabellerOperand:
    """Removes every resource once deployed for the node labeller."""

    name = OPERAND_NAME
    watch_types = WATCH_TYPES
    watch_cluster_types = WATCH_CLUSTER_TYPES

    def reconcile(self, client: DeletingClient, namespace: str) -> list[dict[str, Any]]:
        """Delete all labeller resources; a missing one counts as deleted."""
        objects = [
            new_cluster_role(),
            new_service_account(namespace),
            new_config_map(namespace),
            new_cluster_role_binding(namespace),
            new_security_context_constraint(namespace),
            new_daemon_set(namespace),
        ]
        results = []
        for obj in objects:
            _delete(client, obj)
            results.append(
                {"resource": obj, "not_available": None, "progressing": None, "degraded": None}
            )
        return results

    def cleanup(self, client: DeletingClient, namespace: str) -> list[dict[str, Any]]:
        """Delete the cluster-scoped labeller resources."""
        objects = [
            new_cluster_role(),
            new_cluster_role_binding(namespace),
            new_security_context_constraint(namespace),
        ]
        results = []
        for obj in objects:
            _delete(client, obj)
            results.append({"resource": obj, "deleted": True})
        return results