"""
WorkerSet Status Calculation

This module derives the status of a WorkerSet from its active instances and
the outcome of the corrective actions of the current pass. Condition updates
only move last_transition_time when a condition's state actually flips, so a
condition's timestamp says when it last changed, not when it was last seen.
"""

from datetime import datetime
from typing import List, Optional

from workerset.controllers.active import is_instance_available, is_instance_ready
from workerset.controllers.diff import Intent, IntentType
from workerset.models import (
    Condition, ConditionType, WorkerInstance, WorkerSet, WorkerSetStatus
)

# Condition reasons
MINIMUM_REPLICAS_AVAILABLE = "MinimumReplicasAvailable"
MINIMUM_REPLICAS_UNAVAILABLE = "MinimumReplicasUnavailable"
FAILED_CREATE = "FailedCreate"
FAILED_DELETE = "FailedDelete"


def new_condition(cond_type: ConditionType, status: bool, reason: str, message: str,
                  now: datetime) -> Condition:
    return Condition(type=cond_type, status=status, reason=reason, message=message,
                     last_transition_time=now)


def set_condition(status: WorkerSetStatus, condition: Condition) -> None:
    """
    Store a condition, replacing any condition of the same type.

    Nothing changes if the stored condition has the same state and reason.
    If only the reason or message differ, the stored transition time is kept.
    """
    current = status.get_condition(condition.type)
    if current is not None and current.status == condition.status and current.reason == condition.reason:
        return
    if current is not None and current.status == condition.status:
        condition = condition.model_copy(update={"last_transition_time": current.last_transition_time})

    status.conditions = [c for c in status.conditions if c.type != condition.type] + [condition]


def remove_condition(status: WorkerSetStatus, cond_type: ConditionType) -> None:
    status.conditions = [c for c in status.conditions if c.type != cond_type]


def _failure_reason(workerset: WorkerSet, active: List[WorkerInstance], intent: Optional[Intent]) -> str:
    if intent is not None and intent.type == IntentType.CREATE:
        return FAILED_CREATE
    if intent is not None and intent.type == IntentType.DELETE:
        return FAILED_DELETE

    if len(active) > workerset.spec.replicas:
        return FAILED_DELETE
    return FAILED_CREATE


def calculate_status(workerset: WorkerSet, active: List[WorkerInstance],
                     action_error: Optional[Exception], intent: Optional[Intent],
                     now: datetime, min_available: int = 1) -> WorkerSetStatus:
    """
    Compute the new status of a WorkerSet.

    Args:
        workerset: WorkerSet as read at the start of the pass
        active: Active instances observed after the corrective actions
        action_error: First error returned by the batch executor, if any
        intent: Intent that was executed, used to name the failure
        now: Timestamp for new conditions and availability checks
        min_available: Available instances needed for the Success condition

    Returns:
        New WorkerSetStatus; observed_generation is carried over unchanged
    """
    new_status = workerset.status.model_copy(deep=True)

    ready = 0
    available = 0
    for inst in active:
        if is_instance_ready(inst):
            ready += 1
            if is_instance_available(inst, workerset.spec.min_ready_seconds, now):
                available += 1

    failure = workerset.status.get_condition(ConditionType.FAILURE)
    if action_error is not None and failure is None:
        reason = _failure_reason(workerset, active, intent)
        set_condition(new_status, new_condition(ConditionType.FAILURE, True, reason, str(action_error), now))
    elif action_error is None and failure is not None:
        remove_condition(new_status, ConditionType.FAILURE)

    if available >= min_available:
        set_condition(new_status, new_condition(
            ConditionType.SUCCESS, True, MINIMUM_REPLICAS_AVAILABLE,
            "WorkerSet has minimum availability.", now))
    else:
        set_condition(new_status, new_condition(
            ConditionType.SUCCESS, False, MINIMUM_REPLICAS_UNAVAILABLE,
            "WorkerSet does not have minimum availability.", now))

    new_status.replicas = len(active)
    new_status.ready_replicas = ready
    new_status.available_replicas = available
    return new_status
