"""Resources of the metrics operand."""

from __future__ import annotations

from typing import Any

PROMETHEUS_RULE_NAME = "prometheus-k8s-rules-cnv"

OPERAND_NAME = "metrics"
OPERAND_COMPONENT = "monitoring"

WATCH_TYPES = ("PrometheusRule",)

_RUNBOOK_BASE = "https://kubevirt.io/monitoring/runbooks/"


def _record(name: str, expr: str) -> dict[str, Any]:
    return {"record": name, "expr": expr}


def _alert(name: str, expr: str, summary: str, severity: str) -> dict[str, Any]:
    return {
        "alert": name,
        "expr": expr,
        "for": "5m",
        "annotations": {"summary": summary, "runbook_url": _RUNBOOK_BASE + name},
        "labels": {"severity": severity},
    }


def new_prometheus_rule(namespace: str) -> dict[str, Any]:
    """Return the PrometheusRule with the operator's recording and alerting rules."""
    rules = [
        _record(
            "cnv:vmi_status_running:count",
            'sum(kubevirt_vmi_phase_count{phase="running"}) by (node,os,workload,flavor)',
        ),
        _record(
            "kubevirt_ssp_operator_up_total",
            "sum(up{pod=~'ssp-operator.*'}) OR on() vector(0)",
        ),
        _record(
            "kubevirt_ssp_template_validator_up_total",
            "sum(up{pod=~'virt-template-validator.*'}) OR on() vector(0)",
        ),
        _alert(
            "SSPDown",
            "kubevirt_ssp_operator_up_total == 0",
            "All SSP operator pods are down.",
            "critical",
        ),
        _alert(
            "SSPTemplateValidatorDown",
            "kubevirt_ssp_template_validator_up_total == 0",
            "All Template Validator pods are down.",
            "critical",
        ),
        _record(
            "kubevirt_ssp_num_of_operator_reconciling_properly",
            "sum(ssp_operator_reconciling_properly)",
        ),
        _alert(
            "SSPFailingToReconcile",
            "(kubevirt_ssp_num_of_operator_reconciling_properly == 0) and (kubevirt_ssp_operator_up_total > 0)",
            "The ssp-operator pod is up but failing to reconcile",
            "critical",
        ),
        _record(
            "kubevirt_ssp_rejected_vms_total",
            "sum(increase(total_rejected_vms{pod=~'virt-template-validator.*'}[1h]))",
        ),
        _alert(
            "SSPHighRateRejectedVms",
            "kubevirt_ssp_rejected_vms_total > 5",
            "High rate of rejected Vms",
            "warning",
        ),
        _record(
            "kubevirt_ssp_total_restored_common_templates",
            "sum(increase(total_restored_common_templates{pod=~'ssp-operator.*'}[1h])) OR on() vector(0)",
        ),
        _alert(
            "SSPCommonTemplatesModificationReverted",
            "kubevirt_ssp_total_restored_common_templates > 0",
            "Common Templates manual modifications were reverted by the operator",
            "warning",
        ),
    ]
    return {
        "apiVersion": "monitoring.coreos.com/v1",
        "kind": "PrometheusRule",
        "metadata": {
            "name": PROMETHEUS_RULE_NAME,
            "namespace": namespace,
            "labels": {
                "prometheus": "k8s",
                "role": "alert-rules",
                "kubevirt.io": "prometheus-rules",
            },
        },
        "spec": {"groups": [{"name": "cnv.rules", "rules": rules}]},
    }