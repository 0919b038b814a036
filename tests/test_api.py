import copy

from sspop.api import (
    API_VERSION,
    GOLDEN_IMAGES_NS_NAME,
    SSP,
    CommonTemplates,
    DataImportCronTemplate,
    ObjectMeta,
    SSPSpec,
    SSPStatus,
    TemplateValidator,
)


def _full_ssp():
    return SSP(
        metadata=ObjectMeta(
            name="test-ssp",
            namespace="test-ns",
            labels={"app": "ssp"},
            annotations={"kubevirt.io/operator.paused": "true"},
            finalizers=["ssp.kubevirt.io/finalizer"],
            generation=3,
        ),
        spec=SSPSpec(
            template_validator=TemplateValidator(
                replicas=5, placement={"nodeSelector": {"disk": "ssd"}}
            ),
            common_templates=CommonTemplates(
                namespace="test-templates-ns",
                data_import_cron_templates=[
                    DataImportCronTemplate(
                        metadata=ObjectMeta(name="test-name", namespace=GOLDEN_IMAGES_NS_NAME),
                        spec={"schedule": "* * * * *"},
                    )
                ],
            ),
        ),
        status=SSPStatus(phase="Deployed", paused=True, observed_generation=3),
    )


def test_round_trip_preserves_everything():
    ssp = _full_ssp()
    assert SSP.from_dict(ssp.to_dict()) == ssp


def test_to_dict_uses_group_version_and_kind():
    data = _full_ssp().to_dict()
    assert data["apiVersion"] == "ssp.kubevirt.io/v1beta1"
    assert data["kind"] == "SSP"
    assert API_VERSION == data["apiVersion"]


def test_to_dict_uses_json_field_names():
    data = _full_ssp().to_dict()
    assert data["spec"]["commonTemplates"]["namespace"] == "test-templates-ns"
    assert data["spec"]["templateValidator"]["replicas"] == 5
    assert data["status"]["observedGeneration"] == 3
    crons = data["spec"]["commonTemplates"]["dataImportCronTemplates"]
    assert crons[0]["metadata"]["name"] == "test-name"


def test_empty_status_is_omitted():
    ssp = SSP(metadata=ObjectMeta(name="test-ssp"))
    assert "status" not in ssp.to_dict()


def test_from_dict_of_empty_object_matches_defaults():
    assert SSP.from_dict({}) == SSP()


def test_to_dict_does_not_share_mutable_state():
    ssp = _full_ssp()
    data = ssp.to_dict()
    data["metadata"]["labels"]["app"] = "changed"
    data["spec"]["templateValidator"]["placement"]["nodeSelector"]["disk"] = "hdd"
    assert ssp.metadata.labels["app"] == "ssp"
    assert ssp.spec.template_validator.placement["nodeSelector"]["disk"] == "ssd"


def test_as_data_import_cron_copies_metadata_and_spec():
    template = DataImportCronTemplate(
        metadata=ObjectMeta(name="test-name", namespace=GOLDEN_IMAGES_NS_NAME),
        spec={"schedule": "* * * * *"},
    )
    cron = template.as_data_import_cron()
    assert cron["metadata"] == {"name": "test-name", "namespace": GOLDEN_IMAGES_NS_NAME}
    assert cron["spec"] == template.spec

    original = copy.deepcopy(template)
    cron["spec"]["schedule"] = "other"
    assert template == original


def test_data_import_cron_template_name_and_namespace():
    template = DataImportCronTemplate(metadata=ObjectMeta(name="test-name", namespace="ns"))
    assert (template.name, template.namespace) == ("test-name", "ns")