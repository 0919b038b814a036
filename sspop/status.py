"""Status bookkeeping of the SSP resource during reconciliation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Mapping

from .api import OPERATOR_PAUSED_ANNOTATION, ConflictError, ObjectMeta, SSPStatus

_log = logging.getLogger(__name__)

FINALIZER_NAME = "ssp.kubevirt.io/finalizer"
OLD_FINALIZER_NAME = "finalize.ssp.kubevirt.io"

CONDITION_AVAILABLE = "Available"
CONDITION_PROGRESSING = "Progressing"
CONDITION_DEGRADED = "Degraded"

CONDITION_TRUE = "True"
CONDITION_FALSE = "False"

LEGACY_CRDS: dict[str, str] = {
    "kubevirtmetricsaggregations.ssp.kubevirt.io": "KubevirtMetricsAggregation",
    "kubevirttemplatevalidators.ssp.kubevirt.io": "KubevirtTemplateValidator",
    "kubevirtcommontemplatesbundles.ssp.kubevirt.io": "KubevirtCommonTemplatesBundle",
    "kubevirtnodelabellerbundles.ssp.kubevirt.io": "KubevirtNodeLabellerBundle",
}

_TRUE_STRINGS = frozenset({"1", "t", "T", "TRUE", "true", "True"})


class Phase(str, Enum):
    """Lifecycle phase of the SSP resource."""

    EMPTY = ""
    DEPLOYING = "Deploying"
    DEPLOYED = "Deployed"
    DELETING = "Deleting"
    DELETED = "Deleted"
    ERROR = "Error"
    UPGRADING = "Upgrading"


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class Condition:
    """A single status condition."""

    type: str
    status: str
    reason: str = ""
    message: str = ""
    last_transition_time: str = ""
    last_heartbeat_time: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "status": self.status,
            "reason": self.reason,
            "message": self.message,
            "lastTransitionTime": self.last_transition_time,
            "lastHeartbeatTime": self.last_heartbeat_time,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Condition:
        return cls(
            type=data.get("type", ""),
            status=data.get("status", ""),
            reason=data.get("reason", ""),
            message=data.get("message", ""),
            last_transition_time=data.get("lastTransitionTime", ""),
            last_heartbeat_time=data.get("lastHeartbeatTime", ""),
        )


@dataclass
class ResourceStatus:
    """Availability report of one reconciled resource; None means fine."""

    not_available: str | None = None
    progressing: str | None = None
    degraded: str | None = None


@dataclass
class ReconcileResult:
    """A reconciled resource together with its status."""

    resource: dict[str, Any] = field(default_factory=dict)
    status: ResourceStatus = field(default_factory=ResourceStatus)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ReconcileResult:
        """Build a result from a mapping with resource and status message keys."""
        return cls(
            resource=dict(data.get("resource") or {}),
            status=ResourceStatus(
                not_available=data.get("not_available"),
                progressing=data.get("progressing"),
                degraded=data.get("degraded"),
            ),
        )


def _find(conditions: list[dict[str, Any]], condition_type: str) -> dict[str, Any] | None:
    return next((c for c in conditions if c.get("type") == condition_type), None)


def set_status_condition(conditions: list[dict[str, Any]], condition: Condition) -> None:
    """Add or update a condition in place, tracking transition and heartbeat times."""
    now = _now()
    existing = _find(conditions, condition.type)
    if existing is None:
        new = condition.to_dict()
        new["lastTransitionTime"] = now
        new["lastHeartbeatTime"] = now
        conditions.append(new)
        return
    if existing.get("status") != condition.status:
        existing["status"] = condition.status
        existing["lastTransitionTime"] = now
    existing["reason"] = condition.reason
    existing["message"] = condition.message
    existing["lastHeartbeatTime"] = now


def is_condition_present_and_equal(
    conditions: Iterable[Mapping[str, Any]], condition_type: str, status: str
) -> bool:
    """Tell whether a condition of the type exists with the given status."""
    return any(c.get("type") == condition_type and c.get("status") == status for c in conditions)


def _set(conditions: list[dict[str, Any]], condition_type: str, status: str, message: str) -> None:
    set_status_condition(
        conditions,
        Condition(type=condition_type, status=status, reason=condition_type.lower(), message=message),
    )


def is_paused(annotations: Mapping[str, str] | None) -> bool:
    """Tell whether the paused annotation is set to a true value."""
    if not annotations:
        return False
    return annotations.get(OPERATOR_PAUSED_ANNOTATION) in _TRUE_STRINGS


def migrate_finalizers(finalizers: Iterable[str]) -> tuple[list[str], bool]:
    """Replace the old finalizer with the current one; report whether anything changed."""
    current = list(finalizers)
    if OLD_FINALIZER_NAME not in current:
        return current, False
    updated = [f for f in current if f != OLD_FINALIZER_NAME]
    if FINALIZER_NAME not in updated:
        updated.append(FINALIZER_NAME)
    return updated, True


def legacy_crd_kinds(crd_names: Iterable[str]) -> list[str]:
    """Return the kinds of legacy SSP CRDs found among the CRD names."""
    return [LEGACY_CRDS[name] for name in crd_names if name in LEGACY_CRDS]


def prefix_resource_type_and_name(message: str, kind: str, namespace: str, name: str) -> str:
    """Prefix a message with the resource's kind, namespace and name."""
    return f"{kind} {namespace}/{name}: {message}"


def pre_update_status(status: SSPStatus, generation: int, operator_version: str) -> None:
    """Mark the status as deploying before operands are reconciled."""
    status.phase = Phase.DEPLOYING.value
    status.observed_generation = generation
    status.operator_version = operator_version
    status.target_version = operator_version
    if status.paused:
        _log.info("Unpausing SSP operator")
    status.paused = False

    message = "Reconciling SSP resources"
    wanted = (
        (CONDITION_AVAILABLE, CONDITION_FALSE),
        (CONDITION_PROGRESSING, CONDITION_TRUE),
        (CONDITION_DEGRADED, CONDITION_TRUE),
    )
    for condition_type, condition_status in wanted:
        if not is_condition_present_and_equal(status.conditions, condition_type, condition_status):
            _set(status.conditions, condition_type, condition_status, message)


def _prefixed(message: str, resource: Mapping[str, Any]) -> str:
    metadata = resource.get("metadata") or {}
    return prefix_resource_type_and_name(
        message, resource.get("kind", ""), metadata.get("namespace", ""), metadata.get("name", "")
    )


def update_status(
    status: SSPStatus,
    results: Iterable[ReconcileResult],
    generation: int,
    operator_version: str,
) -> Phase:
    """Set conditions and phase from the operands' reconcile results; return the phase."""
    results = list(results)
    categories = (
        (CONDITION_AVAILABLE, "not_available", True,
         "All SSP resources are available", "{} SSP resources are not available"),
        (CONDITION_PROGRESSING, "progressing", False,
         "No SSP resources are progressing", "{} SSP resources are progressing"),
        (CONDITION_DEGRADED, "degraded", False,
         "No SSP resources are degraded", "{} SSP resources are degraded"),
    )
    any_problem = False
    for condition_type, attr, inverted, none_message, many_message in categories:
        hits = [r for r in results if getattr(r.status, attr) is not None]
        problem_status = CONDITION_FALSE if inverted else CONDITION_TRUE
        ok_status = CONDITION_TRUE if inverted else CONDITION_FALSE
        if not hits:
            _set(status.conditions, condition_type, ok_status, none_message)
            continue
        any_problem = True
        if len(hits) == 1:
            message = _prefixed(getattr(hits[0].status, attr), hits[0].resource)
        else:
            message = many_message.format(len(hits))
        _set(status.conditions, condition_type, problem_status, message)

    status.observed_generation = generation
    if any_problem:
        status.phase = Phase.DEPLOYING.value
        return Phase.DEPLOYING
    status.phase = Phase.DEPLOYED.value
    status.observed_version = operator_version
    return Phase.DEPLOYED


def deletion_status(status: SSPStatus, generation: int) -> None:
    """Mark the status as deleting."""
    status.phase = Phase.DELETING.value
    status.observed_generation = generation
    message = "Deleting SSP resources"
    _set(status.conditions, CONDITION_AVAILABLE, CONDITION_FALSE, message)
    _set(status.conditions, CONDITION_PROGRESSING, CONDITION_TRUE, message)
    _set(status.conditions, CONDITION_DEGRADED, CONDITION_TRUE, message)


def error_status(status: SSPStatus, error: BaseException) -> bool:
    """Record a reconcile error in the status.

    Returns False, leaving the status untouched, for a conflict, which only
    calls for another reconciliation; True otherwise.
    """
    if isinstance(error, ConflictError):
        return False
    message = f"Error: {error}"
    status.phase = Phase.DEPLOYING.value
    _set(status.conditions, CONDITION_AVAILABLE, CONDITION_FALSE, message)
    _set(status.conditions, CONDITION_PROGRESSING, CONDITION_TRUE, message)
    _set(status.conditions, CONDITION_DEGRADED, CONDITION_TRUE, message)
    return True


def should_reconcile_on_update(old: ObjectMeta, new: ObjectMeta) -> bool:
    """Tell whether a change between two versions of the SSP calls for reconciliation."""
    return (
        new.generation != old.generation
        or new.deletion_timestamp != old.deletion_timestamp
        or (new.labels or {}) != (old.labels or {})
        or (new.annotations or {}) != (old.annotations or {})
        or list(new.finalizers or []) != list(old.finalizers or [])
    )