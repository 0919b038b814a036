import pytest

from sspop.api import ConflictError, NotFoundError
from sspop.node_labeller import (
    CONFIG_MAP_NAME,
    NodeLabellerOperand,
    daemon_set_status,
    new_cluster_role,
    new_cluster_role_binding,
    new_config_map,
    new_daemon_set,
    new_security_context_constraint,
    new_service_account,
)

NAMESPACE = "kubevirt"


def _key(obj):
    meta = obj["metadata"]
    return obj["kind"], meta.get("namespace", ""), meta["name"]


class FakeClient:
    def __init__(self, fail_on=None):
        self.objects = {}
        self.fail_on = fail_on

    def create(self, obj):
        self.objects[_key(obj)] = obj

    def exists(self, obj):
        return _key(obj) in self.objects

    def delete(self, obj):
        if self.fail_on == obj["kind"]:
            raise ConflictError("conflict")
        key = _key(obj)
        if key not in self.objects:
            raise NotFoundError(key)
        del self.objects[key]


def _all_resources():
    return [
        new_cluster_role(),
        new_service_account(NAMESPACE),
        new_cluster_role_binding(NAMESPACE),
        new_config_map(NAMESPACE),
        new_daemon_set(NAMESPACE),
        new_security_context_constraint(NAMESPACE),
    ]


def test_reconcile_deletes_node_labeller():
    client = FakeClient()
    for obj in _all_resources():
        client.create(obj)
    results = NodeLabellerOperand().reconcile(client, NAMESPACE)
    assert len(results) == 6
    assert all(r["not_available"] is None for r in results)
    for obj in _all_resources():
        assert not client.exists(obj)


def test_reconcile_ignores_missing_resources():
    client = FakeClient()
    results = NodeLabellerOperand().reconcile(client, NAMESPACE)
    assert len(results) == 6
    assert client.objects == {}


def test_reconcile_propagates_other_errors():
    client = FakeClient(fail_on="ConfigMap")
    with pytest.raises(ConflictError):
        NodeLabellerOperand().reconcile(client, NAMESPACE)


def test_cleanup_removes_cluster_resources_only():
    client = FakeClient()
    for obj in _all_resources():
        client.create(obj)
    results = NodeLabellerOperand().cleanup(client, NAMESPACE)
    assert [r["resource"]["kind"] for r in results] == [
        "ClusterRole",
        "ClusterRoleBinding",
        "SecurityContextConstraints",
    ]
    assert all(r["deleted"] for r in results)
    assert not client.exists(new_cluster_role())
    assert client.exists(new_service_account(NAMESPACE))
    assert client.exists(new_daemon_set(NAMESPACE))


def test_cleanup_propagates_errors():
    client = FakeClient(fail_on="ClusterRoleBinding")
    with pytest.raises(ConflictError):
        NodeLabellerOperand().cleanup(client, NAMESPACE)


def test_operand_name():
    assert NodeLabellerOperand().name == "node-labeler"


def test_security_context_constraint_users():
    scc = new_security_context_constraint("ns1")
    assert scc["users"] == ["system:serviceaccount:ns1:kubevirt-node-labeller"]
    assert scc["allowPrivilegedContainer"] is True
    assert scc["runAsUser"] == {"type": "RunAsAny"}


def test_config_map_content():
    cm = new_config_map(NAMESPACE)
    assert cm["metadata"]["name"] == CONFIG_MAP_NAME
    data = cm["data"]["cpu-plugin-configmap.yaml"]
    assert data.startswith("obsoleteCPUs:\n")
    assert data.endswith('minCPU: "Penryn"')


def test_cluster_role_binding_subject_namespace():
    binding = new_cluster_role_binding("other")
    assert binding["subjects"][0]["namespace"] == "other"
    assert binding["roleRef"]["name"] == "kubevirt-node-labeller"


def test_daemon_set_status_not_ready():
    status = daemon_set_status({"status": {"numberReady": 1, "desiredNumberScheduled": 3}})
    expected = "Not all node-labeler pods are ready. (ready pods: 1, desired pods: 3)"
    assert status == {"not_available": expected, "progressing": expected, "degraded": expected}


def test_daemon_set_status_ready():
    status = daemon_set_status({"status": {"numberReady": 3, "desiredNumberScheduled": 3}})
    assert status == {"not_available": None, "progressing": None, "degraded": None}