# sspop

`sspop` holds the building blocks of an operator that manages the
scheduling, scale and performance (SSP) add-ons of a virtualization
platform running on Kubernetes. It gives you:

- the `SSP` custom resource model (`sspop.api`), with its spec, status and
  data-import cron templates, and conversion to and from plain dictionaries
  (`SSP.to_dict`, `SSP.from_dict`);
- admission checks for `SSP` resources (`sspop.webhook`);
- builders for the resources of each operand: common templates
  (`sspop.common_templates`), Prometheus rules (`sspop.metrics`), the
  template validator (`sspop.template_validator`) and the retired node
  labeller (`sspop.node_labeller`);
- the status and condition logic of the reconciler (`sspop.status`);
- a generator that fills a ClusterServiceVersion manifest for a release
  (`sspop.csv_generator`).

Resources are plain Python dictionaries shaped like Kubernetes objects, so
they can be sent to any client or dumped as YAML.

## Installing

```
pip install sspop
```

To run the tests:

```
pip install "sspop[test]"
pytest
```

## Generating a ClusterServiceVersion

The `sspop-csv-generator` command reads the first document of a CSV
manifest, sets its name to `ssp-operator.v<csv-version>` and its version
(which must be a valid semantic version), points the `manager` container at
the operator image, fills in the `VALIDATOR_IMAGE` and `OPERATOR_VERSION`
environment variables, and writes the result as YAML to standard output,
stripped of `creationTimestamp` and `status` fields.

```
sspop-csv-generator \
    --file bundle/manifests/ssp-operator.clusterserviceversion.yaml \
    --csv-version 0.13.0 \
    --namespace kubevirt \
    --operator-image registry.example.com/ssp-operator:0.13.0 \
    --operator-version 0.13.0 \
    --webhook-port 9443 \
    --webhook-remove-certs
```

`--csv-version`, `--namespace`, `--operator-image` and `--operator-version`
are required. `--webhook-port` sets the container port of the first webhook
definition, `--validator-image` sets the validator image variable and adds
the template validator to `spec.relatedImages`, `--webhook-remove-certs`
drops the `cert` volume and its mount, and `--dump-crds` also prints every
file found in `data/crd`. On a read or parse error the command prints the
error to standard error and exits with status 1.

The same work is available from Python:

```python
import sys

from sspop.csv_generator import GeneratorFlags, run_generator

flags = GeneratorFlags(
    file="csv.yaml",
    csv_version="0.13.0",
    namespace="kubevirt",
    operator_image="registry.example.com/ssp-operator:0.13.0",
    operator_version="0.13.0",
)
run_generator(flags, sys.stdout)
```

## Building operand resources

```python
from sspop.common_templates import new_golden_images_ns, read_templates
from sspop.metrics import new_prometheus_rule
from sspop.template_validator import new_deployment, template_validator_image

templates = read_templates("common-templates.yaml")
namespace = new_golden_images_ns("kubevirt-os-images")
rule = new_prometheus_rule("kubevirt")
deployment = new_deployment("kubevirt", 2, template_validator_image())
```

`template_validator_image` takes the image from the `VALIDATOR_IMAGE`
environment variable, falling back to a built-in default. Helpers such as
`deprecate_template`, `copy_found_ca_bundles`, `update_service` and
`deployment_status` carry out the update and status rules of each operand
on these dictionaries.

`NodeLabellerOperand` removes the resources the retired node labeller used
to deploy: give it any object with a `delete(obj)` method that raises
`sspop.api.NotFoundError` for a missing object.

## Validating an SSP resource

`SSPValidator` takes a client object with `list_ssps()`,
`get_namespace(name)` and `create(obj, dry_run=True)`. `validate_create`
refuses a second `SSP` in the cluster, a common-templates namespace that
does not exist, a template validator placement the dry-run creation
rejects, and data-import cron templates with no name or with a namespace
other than `kubevirt-os-images`. `validate_update` runs the placement and
cron template checks. Failures raise `ValidationError`.

```python
from sspop.api import SSP
from sspop.webhook import SSPValidator, ValidationError

validator = SSPValidator(client)
try:
    validator.validate_create(SSP.from_dict(document))
except ValidationError as err:
    print(f"rejected: {err}")
```

## Computing status

`sspop.status` turns operand results into the `Available`, `Progressing`
and `Degraded` conditions of the `SSP` status and moves it between the
`Deploying`, `Deployed` and `Deleting` phases; see `pre_update_status`,
`update_status`, `deletion_status` and `error_status`. It also handles the
paused annotation (`is_paused`), finalizer migration (`migrate_finalizers`)
and the choice of which updates call for reconciliation
(`should_reconcile_on_update`).

## What it does not do

`sspop` does not talk to a cluster by itself and does not run a controller
loop: it has no Kubernetes client, no watches and no manager process. You
supply the client and decide when to apply the resources and status it
computes.