from sspop.metrics import PROMETHEUS_RULE_NAME, new_prometheus_rule


def _rules(rule):
    (group,) = rule["spec"]["groups"]
    assert group["name"] == "cnv.rules"
    return group["rules"]


def test_metrics_resource_metadata():
    rule = new_prometheus_rule("kubevirt")
    assert rule["kind"] == "PrometheusRule"
    assert rule["metadata"]["name"] == PROMETHEUS_RULE_NAME == "prometheus-k8s-rules-cnv"
    assert rule["metadata"]["namespace"] == "kubevirt"
    assert rule["metadata"]["labels"] == {
        "prometheus": "k8s",
        "role": "alert-rules",
        "kubevirt.io": "prometheus-rules",
    }


def test_records_in_order():
    records = [r["record"] for r in _rules(new_prometheus_rule("ns")) if "record" in r]
    assert records == [
        "cnv:vmi_status_running:count",
        "kubevirt_ssp_operator_up_total",
        "kubevirt_ssp_template_validator_up_total",
        "kubevirt_ssp_num_of_operator_reconciling_properly",
        "kubevirt_ssp_rejected_vms_total",
        "kubevirt_ssp_total_restored_common_templates",
    ]


def test_alerts_and_severities():
    alerts = {r["alert"]: r for r in _rules(new_prometheus_rule("ns")) if "alert" in r}
    assert {name: a["labels"]["severity"] for name, a in alerts.items()} == {
        "SSPDown": "critical",
        "SSPTemplateValidatorDown": "critical",
        "SSPFailingToReconcile": "critical",
        "SSPHighRateRejectedVms": "warning",
        "SSPCommonTemplatesModificationReverted": "warning",
    }
    for name, alert in alerts.items():
        assert alert["for"] == "5m"
        assert alert["annotations"]["runbook_url"].endswith("/" + name)
    assert alerts["SSPHighRateRejectedVms"]["expr"] == "kubevirt_ssp_rejected_vms_total > 5"
    assert alerts["SSPDown"]["annotations"]["summary"] == "All SSP operator pods are down."


def test_running_vmi_expression():
    first = _rules(new_prometheus_rule("ns"))[0]
    assert first["expr"] == (
        'sum(kubevirt_vmi_phase_count{phase="running"}) by (node,os,workload,flavor)'
    )


def test_each_call_returns_a_fresh_object():
    first = new_prometheus_rule("ns")
    first["metadata"]["labels"]["role"] = "changed"
    _rules(first).clear()
    second = new_prometheus_rule("ns")
    assert second["metadata"]["labels"]["role"] == "alert-rules"
    assert len(_rules(second)) == 11