"""Resources and helpers of the common templates operand."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

from .api import GOLDEN_IMAGES_NS_NAME

VERSION = "v0.16.2"

TEMPLATE_VERSION_LABEL = "template.kubevirt.io/version"
TEMPLATE_TYPE_LABEL = "template.kubevirt.io/type"
TEMPLATE_TYPE_LABEL_BASE_VALUE = "base"
TEMPLATE_OS_LABEL_PREFIX = "os.template.kubevirt.io/"
TEMPLATE_FLAVOR_LABEL_PREFIX = "flavor.template.kubevirt.io/"
TEMPLATE_WORKLOAD_LABEL_PREFIX = "workload.template.kubevirt.io/"
TEMPLATE_DEPRECATED_ANNOTATION = "template.kubevirt.io/deprecated"

VIEW_ROLE_NAME = "os-images.kubevirt.io:view"
EDIT_CLUSTER_ROLE_NAME = "os-images.kubevirt.io:edit"

OPERAND_NAME = "common-templates"
OPERAND_COMPONENT = "templating"

TEMPLATE_BUNDLE_DIR = "data/common-templates-bundle/"

CORE_GROUP = ""
CDI_GROUP = "cdi.kubevirt.io"
RBAC_GROUP = "rbac.authorization.k8s.io"
RBAC_API_VERSION = f"{RBAC_GROUP}/v1"

WATCH_CLUSTER_TYPES = ("ClusterRole", "Role", "RoleBinding", "Namespace", "Template")

_DEPRECATED_LABEL_PREFIXES = (
    TEMPLATE_OS_LABEL_PREFIX,
    TEMPLATE_FLAVOR_LABEL_PREFIX,
    TEMPLATE_WORKLOAD_LABEL_PREFIX,
)


def bundle_path(bundle_dir: str = TEMPLATE_BUNDLE_DIR) -> Path:
    """Return the path of the templates bundle of the current version."""
    return Path(bundle_dir) / f"common-templates-{VERSION}.yaml"


def read_templates(filename: str | Path) -> list[dict[str, Any]]:
    """Read a YAML or JSON stream of templates, keeping those that have a name."""
    with open(filename, encoding="utf-8") as fh:
        documents = list(yaml.safe_load_all(fh))
    bundle = []
    for document in documents:
        if document is None:
            continue
        if not isinstance(document, dict):
            raise ValueError(f"{filename}: template document is not an object")
        if (document.get("metadata") or {}).get("name"):
            bundle.append(document)
    return bundle


def new_golden_images_ns(namespace: str = GOLDEN_IMAGES_NS_NAME) -> dict[str, Any]:
    """Return the namespace holding golden OS images."""
    return {"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": namespace}}


def _rule(groups: list[str], resources: list[str], verbs: list[str]) -> dict[str, Any]:
    return {"apiGroups": groups, "resources": resources, "verbs": verbs}


def new_view_role(namespace: str = GOLDEN_IMAGES_NS_NAME) -> dict[str, Any]:
    """Return the role allowing read access to golden images."""
    read = ["get", "list", "watch"]
    return {
        "apiVersion": RBAC_API_VERSION,
        "kind": "Role",
        "metadata": {"name": VIEW_ROLE_NAME, "namespace": namespace},
        "rules": [
            _rule([CORE_GROUP], ["persistentvolumeclaims", "persistentvolumeclaims/status"], list(read)),
            _rule([CDI_GROUP], ["datavolumes"], list(read)),
            _rule([CDI_GROUP], ["datavolumes/source"], ["create"]),
            _rule([CORE_GROUP], ["namespaces"], list(read)),
        ],
    }


def new_view_role_binding(namespace: str = GOLDEN_IMAGES_NS_NAME) -> dict[str, Any]:
    """Return the binding of the view role to all authenticated users."""
    return {
        "apiVersion": RBAC_API_VERSION,
        "kind": "RoleBinding",
        "metadata": {"name": VIEW_ROLE_NAME, "namespace": namespace},
        "subjects": [
            {"kind": "Group", "name": "system:authenticated", "apiGroup": RBAC_GROUP},
            {"kind": "Group", "name": "system:serviceaccounts", "apiGroup": RBAC_GROUP},
        ],
        "roleRef": {"kind": "Role", "name": VIEW_ROLE_NAME, "apiGroup": RBAC_GROUP},
    }


def new_edit_role() -> dict[str, Any]:
    """Return the cluster role allowing golden images to be edited."""
    all_verbs = ["create", "delete", "get", "list", "patch", "update", "watch"]
    return {
        "apiVersion": RBAC_API_VERSION,
        "kind": "ClusterRole",
        "metadata": {"name": EDIT_CLUSTER_ROLE_NAME},
        "rules": [
            _rule([CORE_GROUP], ["persistentvolumeclaims"], list(all_verbs)),
            _rule([CORE_GROUP], ["persistentvolumeclaims/status"], ["get", "list", "watch"]),
            _rule([CDI_GROUP], ["datavolumes"], list(all_verbs)),
            _rule([CDI_GROUP], ["datavolumes/source"], ["create"]),
        ],
    }


def old_templates_label_selector() -> str:
    """Return the label selector matching base templates of older versions."""
    return (
        f"{TEMPLATE_TYPE_LABEL}={TEMPLATE_TYPE_LABEL_BASE_VALUE},"
        f"{TEMPLATE_VERSION_LABEL}!={VERSION}"
    )


def matches_old_template_selector(labels: Mapping[str, str] | None) -> bool:
    """Tell whether labels select a base template of an older version."""
    labels = labels or {}
    return (
        labels.get(TEMPLATE_TYPE_LABEL) == TEMPLATE_TYPE_LABEL_BASE_VALUE
        and labels.get(TEMPLATE_VERSION_LABEL) != VERSION
    )


def deprecate_template(template: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of an old template marked deprecated, without os, flavor and workload labels."""
    result = copy.deepcopy(dict(template))
    metadata = result.setdefault("metadata", {})
    annotations = metadata.get("annotations") or {}
    annotations[TEMPLATE_DEPRECATED_ANNOTATION] = "true"
    metadata["annotations"] = annotations
    labels = metadata.get("labels")
    if labels:
        metadata["labels"] = {
            key: value
            for key, value in labels.items()
            if not key.startswith(_DEPRECATED_LABEL_PREFIXES)
        }
    return result


def templates_in_namespace(templates: Iterable[Mapping[str, Any]], namespace: str) -> list[dict[str, Any]]:
    """Return copies of the templates placed in the given namespace."""
    placed = []
    for template in templates:
        item = copy.deepcopy(dict(template))
        item.setdefault("metadata", {})["namespace"] = namespace
        placed.append(item)
    return placed