"""Generate the ClusterServiceVersion deploy manifest for the operator."""

from __future__ import annotations

import argparse
import copy
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TextIO

import semver
import yaml

TEMPLATE_VALIDATOR_IMAGE_KEY = "VALIDATOR_IMAGE"
OPERATOR_VERSION_KEY = "OPERATOR_VERSION"

DEFAULT_CSV_FILE = "data/olm-catalog/ssp-operator.clusterserviceversion.yaml"
DEFAULT_CRD_DIR = "data/crd"


@dataclass
class GeneratorFlags:
    """Options of the generator."""

    file: str = DEFAULT_CSV_FILE
    dump_crds: bool = False
    remove_certs: bool = False
    webhook_port: int = 0
    csv_version: str = ""
    namespace: str = ""
    operator_version: str = ""
    validator_image: str = ""
    operator_image: str = ""
    crd_dir: str = DEFAULT_CRD_DIR


def _pod_spec(csv: dict[str, Any]) -> dict[str, Any]:
    return csv["spec"]["install"]["spec"]["deployments"][0]["spec"]["template"]["spec"]


def _manager_container(pod_spec: dict[str, Any]) -> dict[str, Any] | None:
    return next((c for c in pod_spec.get("containers") or [] if c.get("name") == "manager"), None)


def update_container_env_vars(flags: GeneratorFlags, container: dict[str, Any]) -> list[dict[str, Any]]:
    """Return the container's env vars with image and version values replaced."""
    updated = []
    for env in container.get("env") or []:
        env = dict(env)
        if env.get("name") == TEMPLATE_VALIDATOR_IMAGE_KEY and flags.validator_image:
            env["value"] = flags.validator_image
        if env.get("name") == OPERATOR_VERSION_KEY and flags.operator_version:
            env["value"] = flags.operator_version
        updated.append(env)
    return updated


def replace_variables(flags: GeneratorFlags, csv: dict[str, Any]) -> None:
    """Fill the CSV in place with name, version, image and webhook port."""
    csv.setdefault("metadata", {})["name"] = "ssp-operator.v" + flags.csv_version
    version = semver.Version.parse(flags.csv_version)
    csv.setdefault("spec", {})["version"] = str(version)

    manager = _manager_container(_pod_spec(csv))
    if manager is not None:
        manager["image"] = flags.operator_image
        manager["env"] = update_container_env_vars(flags, manager)

    if flags.webhook_port > 0:
        csv["spec"]["webhookdefinitions"][0]["containerPort"] = flags.webhook_port


def remove_certs(csv: dict[str, Any]) -> None:
    """Remove the webhook certificate volume and its mount in place."""
    pod_spec = _pod_spec(csv)
    manager = _manager_container(pod_spec)
    if manager is not None:
        mounts = manager.get("volumeMounts") or []
        index = next((i for i, m in enumerate(mounts) if m.get("name") == "cert"), None)
        if index is not None:
            del mounts[index]
    if "volumes" in pod_spec:
        pod_spec["volumes"] = [v for v in pod_spec["volumes"] or [] if v.get("name") != "cert"]


def build_related_images(flags: GeneratorFlags) -> list[dict[str, str]]:
    """Return the relatedImages entries for the CSV."""
    if not flags.validator_image:
        return []
    return [{"name": "template-validator", "image": flags.validator_image}]


def _remove_nested(obj: dict[str, Any], *path: str) -> None:
    *parents, last = path
    for key in parents:
        obj = obj.get(key)
        if not isinstance(obj, dict):
            return
    obj.pop(last, None)


def marshall_object(obj: dict[str, Any], related_images: list[Any] | None, writer: TextIO) -> None:
    """Write the object as a YAML document, stripped of generated fields."""
    data = json.loads(json.dumps(obj))

    _remove_nested(data, "metadata", "creationTimestamp")
    _remove_nested(data, "template", "metadata", "creationTimestamp")
    _remove_nested(data, "spec", "template", "metadata", "creationTimestamp")
    _remove_nested(data, "status")

    install_spec = ((data.get("spec") or {}).get("install") or {}).get("spec")
    if isinstance(install_spec, dict) and isinstance(install_spec.get("deployments"), list):
        for deployment in install_spec["deployments"]:
            _remove_nested(deployment, "metadata", "creationTimestamp")
            _remove_nested(deployment, "spec", "template", "metadata", "creationTimestamp")
            _remove_nested(deployment, "status")

    if related_images:
        data.setdefault("spec", {})["relatedImages"] = copy.deepcopy(related_images)

    text = yaml.safe_dump(
        data, default_flow_style=False, sort_keys=True, allow_unicode=True, width=1 << 30
    )
    text = text.replace("'{{", "{{").replace("}}'", "}}")
    text = text.replace(" '\"", ' "').replace("\"'\n", '"\n')

    writer.write("---\n")
    writer.write(text)


def _read_first_document(path: Path) -> dict[str, Any]:
    with path.open(encoding="utf-8") as fh:
        document = next(yaml.safe_load_all(fh), None)
    if not isinstance(document, dict):
        raise ValueError(f"{path}: no object found")
    return document


def run_generator(flags: GeneratorFlags, out: TextIO) -> None:
    """Read the CSV, apply the flags and write the result, then the CRDs if asked."""
    csv = _read_first_document(Path(flags.file))
    replace_variables(flags, csv)
    if flags.remove_certs:
        remove_certs(csv)
    marshall_object(csv, build_related_images(flags), out)

    if not flags.dump_crds:
        return
    for path in sorted(Path(flags.crd_dir).iterdir(), key=lambda p: p.name):
        marshall_object(_read_first_document(path), None, out)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="csv-generator",
        description="csv-generator generates deploy manifest for ssp operator",
    )
    parser.add_argument("--file", default=DEFAULT_CSV_FILE, help="Location of the CSV yaml to modify")
    parser.add_argument("--csv-version", required=True, help="Version of csv manifest")
    parser.add_argument("--namespace", required=True, help="Namespace in which ssp operator will be deployed")
    parser.add_argument("--operator-image", required=True, help="Link to operator image")
    parser.add_argument("--operator-version", required=True, help="Operator version")
    parser.add_argument("--validator-image", default="", help="Link to template-validator image")
    parser.add_argument("--webhook-port", type=int, default=0, help="Container port for the admission webhook")
    parser.add_argument(
        "--webhook-remove-certs", action="store_true", help="Remove the webhook certificate volume and mount"
    )
    parser.add_argument("--dump-crds", action="store_true", help="Dump crds to stdout")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    flags = GeneratorFlags(
        file=args.file,
        dump_crds=args.dump_crds,
        remove_certs=args.webhook_remove_certs,
        webhook_port=args.webhook_port,
        csv_version=args.csv_version,
        namespace=args.namespace,
        operator_version=args.operator_version,
        validator_image=args.validator_image,
        operator_image=args.operator_image,
    )
    try:
        run_generator(flags, sys.stdout)
    except (OSError, ValueError, LookupError, yaml.YAMLError) as err:
        print(err, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())