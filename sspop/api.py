"""Resource types of the ssp.kubevirt.io/v1beta1 API group."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

GROUP = "ssp.kubevirt.io"
VERSION = "v1beta1"
API_VERSION = f"{GROUP}/{VERSION}"
KIND = "SSP"

GOLDEN_IMAGES_NS_NAME = "kubevirt-os-images"
OPERATOR_PAUSED_ANNOTATION = "kubevirt.io/operator.paused"

DEFAULT_VALIDATOR_REPLICAS = 2


class NotFoundError(LookupError):
    """Raised by a client when a requested object does not exist."""


class ConflictError(RuntimeError):
    """Raised by a client when an update conflicts with a newer version."""


@dataclass
class ObjectMeta:
    """Standard object metadata."""

    name: str = ""
    namespace: str = ""
    generate_name: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    finalizers: list[str] = field(default_factory=list)
    owner_references: list[dict[str, Any]] = field(default_factory=list)
    generation: int = 0
    resource_version: str = ""
    uid: str = ""
    deletion_timestamp: str | None = None


_META_FIELDS = (
    ("name", "name"),
    ("namespace", "namespace"),
    ("generate_name", "generateName"),
    ("labels", "labels"),
    ("annotations", "annotations"),
    ("finalizers", "finalizers"),
    ("owner_references", "ownerReferences"),
    ("generation", "generation"),
    ("resource_version", "resourceVersion"),
    ("uid", "uid"),
    ("deletion_timestamp", "deletionTimestamp"),
)


def _meta_to_dict(meta: ObjectMeta) -> dict[str, Any]:
    result = {}
    for attr, key in _META_FIELDS:
        value = getattr(meta, attr)
        if value:
            result[key] = copy.deepcopy(value)
    return result


def _meta_from_dict(data: dict[str, Any] | None) -> ObjectMeta:
    data = data or {}
    kwargs = {attr: copy.deepcopy(data[key]) for attr, key in _META_FIELDS if data.get(key) is not None}
    return ObjectMeta(**kwargs)


@dataclass
class TemplateValidator:
    """Configuration of the template validator operand."""

    replicas: int | None = DEFAULT_VALIDATOR_REPLICAS
    placement: dict[str, Any] | None = None


@dataclass
class DataImportCronTemplate:
    """Template for a DataImportCron; metadata.name is required."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    def as_data_import_cron(self) -> dict[str, Any]:
        """Return the DataImportCron object described by this template."""
        return {"metadata": _meta_to_dict(self.metadata), "spec": copy.deepcopy(self.spec)}


@dataclass
class CommonTemplates:
    """Configuration of the common templates operand."""

    namespace: str = ""
    data_import_cron_templates: list[DataImportCronTemplate] = field(default_factory=list)


@dataclass
class NodeLabeller:
    """Configuration of the node-labeller operand."""

    placement: dict[str, Any] | None = None


@dataclass
class SSPSpec:
    """Desired state of an SSP."""

    template_validator: TemplateValidator = field(default_factory=TemplateValidator)
    common_templates: CommonTemplates = field(default_factory=CommonTemplates)
    node_labeller: NodeLabeller = field(default_factory=NodeLabeller)


@dataclass
class SSPStatus:
    """Observed state of an SSP."""

    phase: str = ""
    conditions: list[dict[str, Any]] = field(default_factory=list)
    operator_version: str = ""
    target_version: str = ""
    observed_version: str = ""
    paused: bool = False
    observed_generation: int = 0


_STATUS_FIELDS = (
    ("phase", "phase"),
    ("conditions", "conditions"),
    ("operator_version", "operatorVersion"),
    ("target_version", "targetVersion"),
    ("observed_version", "observedVersion"),
    ("paused", "paused"),
    ("observed_generation", "observedGeneration"),
)


def _spec_to_dict(spec: SSPSpec) -> dict[str, Any]:
    validator: dict[str, Any] = {}
    if spec.template_validator.replicas is not None:
        validator["replicas"] = spec.template_validator.replicas
    if spec.template_validator.placement is not None:
        validator["placement"] = copy.deepcopy(spec.template_validator.placement)

    templates: dict[str, Any] = {"namespace": spec.common_templates.namespace}
    if spec.common_templates.data_import_cron_templates:
        templates["dataImportCronTemplates"] = [
            {"metadata": _meta_to_dict(t.metadata), "spec": copy.deepcopy(t.spec)}
            for t in spec.common_templates.data_import_cron_templates
        ]

    labeller: dict[str, Any] = {}
    if spec.node_labeller.placement is not None:
        labeller["placement"] = copy.deepcopy(spec.node_labeller.placement)

    return {"templateValidator": validator, "commonTemplates": templates, "nodeLabeller": labeller}


def _spec_from_dict(data: dict[str, Any] | None) -> SSPSpec:
    data = data or {}
    validator = data.get("templateValidator") or {}
    templates = data.get("commonTemplates") or {}
    labeller = data.get("nodeLabeller") or {}
    crons = [
        DataImportCronTemplate(
            metadata=_meta_from_dict(item.get("metadata")),
            spec=copy.deepcopy(item.get("spec") or {}),
        )
        for item in templates.get("dataImportCronTemplates") or []
    ]
    return SSPSpec(
        template_validator=TemplateValidator(
            replicas=validator.get("replicas", DEFAULT_VALIDATOR_REPLICAS),
            placement=copy.deepcopy(validator.get("placement")),
        ),
        common_templates=CommonTemplates(
            namespace=templates.get("namespace", ""),
            data_import_cron_templates=crons,
        ),
        node_labeller=NodeLabeller(placement=copy.deepcopy(labeller.get("placement"))),
    )


def _status_to_dict(status: SSPStatus) -> dict[str, Any]:
    return {
        key: copy.deepcopy(getattr(status, attr))
        for attr, key in _STATUS_FIELDS
        if getattr(status, attr)
    }


def _status_from_dict(data: dict[str, Any] | None) -> SSPStatus:
    data = data or {}
    kwargs = {attr: copy.deepcopy(data[key]) for attr, key in _STATUS_FIELDS if data.get(key) is not None}
    return SSPStatus(**kwargs)


@dataclass
class SSP:
    """The SSP custom resource."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: SSPSpec = field(default_factory=SSPSpec)
    status: SSPStatus = field(default_factory=SSPStatus)
    api_version: str = API_VERSION
    kind: str = KIND

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON object form used by the API server."""
        result: dict[str, Any] = {"apiVersion": self.api_version, "kind": self.kind}
        result["metadata"] = _meta_to_dict(self.metadata)
        result["spec"] = _spec_to_dict(self.spec)
        status = _status_to_dict(self.status)
        if status:
            result["status"] = status
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SSP:
        """Build an SSP from its JSON object form."""
        return cls(
            metadata=_meta_from_dict(data.get("metadata")),
            spec=_spec_from_dict(data.get("spec")),
            status=_status_from_dict(data.get("status")),
            api_version=data.get("apiVersion", API_VERSION),
            kind=data.get("kind", KIND),
        )