"""
Replica Diff Computation

This module decides how many instances a reconciliation pass creates or
deletes, and which instances are deleted when scaling down.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, NamedTuple, Optional

from workerset.controllers.active import is_instance_ready
from workerset.models import WorkerInstance

# Sorts before any real start time, so instances never started go first.
_NOT_STARTED = datetime.min.replace(tzinfo=timezone.utc)


class IntentType(str, Enum):
    """Kinds of corrective action."""
    CREATE = "Create"
    DELETE = "Delete"
    NOOP = "NoOp"


class Intent(NamedTuple):
    type: IntentType
    count: int = 0

    @property
    def is_noop(self) -> bool:
        return self.type == IntentType.NOOP


NOOP = Intent(IntentType.NOOP, 0)


def create_intent(count: int) -> Intent:
    return Intent(IntentType.CREATE, count)


def delete_intent(count: int) -> Intent:
    return Intent(IntentType.DELETE, count)


def compute_diff(desired: int, active: int, burst: int) -> Intent:
    """
    Compare desired and active replica counts.

    Args:
        desired: Desired replica count
        active: Number of active instances
        burst: Maximum creates or deletes in one pass

    Returns:
        Intent capped at burst, or NOOP when the counts match
    """
    if desired < 0 or active < 0:
        raise ValueError(f"replica counts must be non-negative: desired={desired}, active={active}")
    if burst <= 0:
        raise ValueError(f"burst must be positive: {burst}")

    if active < desired:
        return create_intent(min(desired - active, burst))
    if active > desired:
        return delete_intent(min(active - desired, burst))
    return NOOP


def _start_order(instance: WorkerInstance):
    return (instance.status.start_time or _NOT_STARTED,
            instance.metadata.creation_timestamp,
            instance.metadata.name)


def oldest_first(instances: List[WorkerInstance]) -> List[WorkerInstance]:
    """Order by start time, then creation time, then name."""
    return sorted(instances, key=_start_order)


VictimPolicy = Callable[[List[WorkerInstance]], List[WorkerInstance]]


def select_victims(instances: List[WorkerInstance], count: int,
                   policy: VictimPolicy = oldest_first) -> List[WorkerInstance]:
    """
    Choose the instances to delete.

    Args:
        instances: Active instances
        count: Number of instances to delete
        policy: Total, deterministic ordering; the first count entries are chosen

    Returns:
        List of instances to delete
    """
    if count <= 0:
        return []
    return policy(list(instances))[:count]


def deletion_age_ratios(victims: List[WorkerInstance], active: List[WorkerInstance],
                        now: datetime) -> List[float]:
    """
    Ratio of each ready victim's age to the age of the youngest ready instance.

    Instances without a start time are skipped. Returns an empty list when no
    ready instance has a usable age.
    """
    ages = [_age(inst, now) for inst in active if is_instance_ready(inst)]
    ages = [age for age in ages if age is not None and age > 0]
    if not ages:
        return []
    youngest = min(ages)

    ratios = []
    for victim in victims:
        if not is_instance_ready(victim):
            continue
        age = _age(victim, now)
        if age is not None:
            ratios.append(age / youngest)
    return ratios


def _age(instance: WorkerInstance, now: datetime) -> Optional[float]:
    if instance.status.start_time is None:
        return None
    return (now - instance.status.start_time).total_seconds()
