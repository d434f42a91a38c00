"""
WorkerSet: a desired-state controller for fleets of identical workers

A WorkerSet declares how many replicas of a worker template should exist. The
controller observes the live WorkerInstances, creates or deletes instances
until the count matches, and reports the outcome as status and conditions.
"""

from .config import ControllerConfig, load_config
from .controllers import WorkerSetReconciler, ReconcileResult, OwnerRouter
from .events import EventSink, EventType, LoggingEventSink, RecordingEventSink
from .models import (
    ObjectKey, ObjectMeta, OwnerReference, LabelSelector, LabelSelectorRequirement,
    WorkerTemplate, WorkerSet, WorkerSetSpec, WorkerSetStatus, Condition,
    ConditionType, WorkerInstance, InstanceStatus, InstancePhase
)
from .store import ObjectStore, InMemoryStore, WatchEvent, WatchEventType

__version__ = "0.1.0"

__all__ = [
    'ControllerConfig', 'load_config',
    'WorkerSetReconciler', 'ReconcileResult', 'OwnerRouter',
    'EventSink', 'EventType', 'LoggingEventSink', 'RecordingEventSink',
    'ObjectKey', 'ObjectMeta', 'OwnerReference', 'LabelSelector', 'LabelSelectorRequirement',
    'WorkerTemplate', 'WorkerSet', 'WorkerSetSpec', 'WorkerSetStatus', 'Condition',
    'ConditionType', 'WorkerInstance', 'InstanceStatus', 'InstancePhase',
    'ObjectStore', 'InMemoryStore', 'WatchEvent', 'WatchEventType',
]
