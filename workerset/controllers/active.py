"""
Instance lifecycle predicates used by the WorkerSet controller.
"""

from datetime import datetime, timedelta
from typing import Iterable, List

from workerset.models import InstancePhase, WorkerInstance


def is_instance_active(instance: WorkerInstance) -> bool:
    return (instance.status.phase not in (InstancePhase.SUCCEEDED, InstancePhase.FAILED) and
            instance.metadata.deletion_timestamp is None)


def filter_active_instances(instances: Iterable[WorkerInstance]) -> List[WorkerInstance]:
    """Return the instances that have not terminated, in their original order."""
    return [inst for inst in instances if is_instance_active(inst)]


def is_instance_ready(instance: WorkerInstance) -> bool:
    return instance.status.phase == InstancePhase.RUNNING and instance.status.ready


def is_instance_available(instance: WorkerInstance, min_ready_seconds: int, now: datetime) -> bool:
    """
    Check whether an instance has been ready for at least min_ready_seconds.

    Args:
        instance: Instance to check
        min_ready_seconds: Required ready duration; 0 means ready is enough
        now: Reference time

    Returns:
        bool: True if the instance is available
    """
    if not is_instance_ready(instance):
        return False
    if min_ready_seconds == 0:
        return True

    ready_since = instance.status.ready_since
    if ready_since is None:
        return False
    return ready_since + timedelta(seconds=min_ready_seconds) <= now
