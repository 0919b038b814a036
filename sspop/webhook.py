"""Admission validation of SSP resources."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from .api import GOLDEN_IMAGES_NS_NAME, SSP

_log = logging.getLogger(__name__)

_DEPLOYMENT_NAME = "ssp-webhook-placement-verification-deployment"
_WEBHOOK_TEST_LABEL = "webhook.ssp.kubevirt.io/placement-verification-pod"
_POD_NAME = "ssp-webhook-placement-verification-pod"
_NA_IMAGE = "ssp.kubevirt.io/not-available"


class ValidationError(ValueError):
    """Raised when an SSP resource is rejected."""


class SSPClient(Protocol):
    """The cluster operations the validator needs."""

    def list_ssps(self) -> list[SSP]: ...

    def get_namespace(self, name: str) -> Any: ...

    def create(self, obj: dict[str, Any], *, dry_run: bool = False) -> Any: ...


def validate_data_import_cron_templates(ssp: SSP) -> None:
    """Check that every DataImportCronTemplate has a name and an allowed namespace."""
    for cron in ssp.spec.common_templates.data_import_cron_templates:
        if not cron.name:
            raise ValidationError("missing name in DataImportCronTemplate")
        if cron.namespace and cron.namespace != GOLDEN_IMAGES_NS_NAME:
            raise ValidationError(
                f"invalid namespace in DataImportCronTemplate {cron.name}: "
                f"must be empty or {GOLDEN_IMAGES_NS_NAME}"
            )


def placement_verification_deployment(namespace: str, placement: dict[str, Any]) -> dict[str, Any]:
    """Build the deployment whose dry-run creation checks the placement fields."""
    pod_spec: dict[str, Any] = {"containers": [{"name": _POD_NAME, "image": _NA_IMAGE}]}
    for key in ("nodeSelector", "affinity", "tolerations"):
        if placement.get(key):
            pod_spec[key] = placement[key]
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": _DEPLOYMENT_NAME, "namespace": namespace},
        "spec": {
            "replicas": 1,
            "selector": {"matchLabels": {_WEBHOOK_TEST_LABEL: ""}},
            "template": {
                "metadata": {"generateName": _POD_NAME, "labels": {_WEBHOOK_TEST_LABEL: ""}},
                "spec": pod_spec,
            },
        },
    }


class SSPValidator:
    """Validates SSP creation, update and deletion."""

    def __init__(self, client: SSPClient) -> None:
        self._client = client

    def validate_create(self, ssp: SSP) -> None:
        _log.info("validate create name=%s", ssp.metadata.name)
        try:
            existing = list(self._client.list_ssps())
        except Exception as err:
            raise ValidationError(
                f"could not list SSPs for validation, please try again: {err}"
            ) from err
        if existing:
            first = existing[0].metadata
            raise ValidationError(
                f"creation failed, an SSP CR already exists in namespace {first.namespace}: {first.name}"
            )

        namespace_name = ssp.spec.common_templates.namespace
        try:
            self._client.get_namespace(namespace_name)
        except Exception as err:
            raise ValidationError(
                "creation failed, the configured namespace for common templates "
                f"does not exist: {namespace_name}"
            ) from err

        self._validate_common(ssp)

    def validate_update(self, ssp: SSP, old: SSP) -> None:
        _log.info("validate update name=%s", ssp.metadata.name)
        self._validate_common(ssp)

    def validate_delete(self, ssp: SSP) -> None:
        """Deletion of an SSP resource is always allowed."""
        if not isinstance(ssp, SSP):
            raise TypeError(f"expected an SSP resource, got {type(ssp).__name__}")
        _log.info("validate delete name=%s", ssp.metadata.name)

    def _validate_common(self, ssp: SSP) -> None:
        try:
            self._validate_placement(ssp)
        except Exception as err:
            raise ValidationError(f"placement api validation error: {err}") from err
        try:
            validate_data_import_cron_templates(ssp)
        except ValidationError as err:
            raise ValidationError(f"dataImportCronTemplates validation error: {err}") from err

    def _validate_placement(self, ssp: SSP) -> None:
        placement = ssp.spec.template_validator.placement
        if placement is None:
            return
        deployment = placement_verification_deployment(ssp.metadata.namespace, placement)
        self._client.create(deployment, dry_run=True)