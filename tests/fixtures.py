"""
Shared builders for WorkerSet tests
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from workerset.controllers.workerset import new_controller_ref
from workerset.models import (
    INSTANCE_KIND, InstancePhase, InstanceStatus, LabelSelector, ObjectMeta,
    WorkerInstance, WorkerSet, WorkerSetSpec, WorkerTemplate
)

NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
APP_LABELS = {"app": "web"}


def minutes_ago(minutes: float) -> datetime:
    return NOW - timedelta(minutes=minutes)


def make_workerset(name: str = "web", namespace: str = "default", replicas: int = 3,
                   labels: Optional[Dict[str, str]] = None,
                   min_ready_seconds: int = 0) -> WorkerSet:
    labels = dict(APP_LABELS if labels is None else labels)
    return WorkerSet(
        metadata=ObjectMeta(name=name, namespace=namespace),
        spec=WorkerSetSpec(
            replicas=replicas,
            selector=LabelSelector(match_labels=labels),
            template=WorkerTemplate(labels=labels, spec={"image": "worker:1.0"}),
            min_ready_seconds=min_ready_seconds
        )
    )


def make_instance(name: str, namespace: str = "default",
                  phase: InstancePhase = InstancePhase.RUNNING, ready: bool = True,
                  start_time: Optional[datetime] = None, ready_since: Optional[datetime] = None,
                  labels: Optional[Dict[str, str]] = None, owner: Optional[WorkerSet] = None,
                  deleted: bool = False) -> WorkerInstance:
    metadata = ObjectMeta(
        name=name,
        namespace=namespace,
        labels=dict(APP_LABELS if labels is None else labels),
        deletion_timestamp=NOW if deleted else None,
        owner_references=[new_controller_ref(owner)] if owner is not None else []
    )
    return WorkerInstance(
        metadata=metadata,
        status=InstanceStatus(phase=phase, ready=ready, start_time=start_time,
                              ready_since=ready_since if ready_since is not None else start_time)
    )


def seed_instance(store, instance: WorkerInstance) -> WorkerInstance:
    """Create an instance in the store and then apply its status"""
    status = instance.status
    created = store.create(instance)
    created.status = status
    return store.update_status(created)


def seed_instances(store, workerset: WorkerSet, count: int, prefix: Optional[str] = None,
                   **kwargs) -> List[WorkerInstance]:
    prefix = prefix or workerset.metadata.name
    seeded = []
    for i in range(count):
        kwargs.setdefault("start_time", minutes_ago(60))
        inst = make_instance(f"{prefix}-{i}", namespace=workerset.metadata.namespace,
                             owner=workerset, **kwargs)
        seeded.append(seed_instance(store, inst))
    return seeded


def instance_names(store, namespace: str = "default") -> List[str]:
    return sorted(inst.metadata.name for inst in store.list(INSTANCE_KIND, namespace))
