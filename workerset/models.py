"""
WorkerSet Data Models

This module defines the Pydantic models shared by the store and the
reconciliation core: object metadata, the WorkerSet resource with its spec and
status, status conditions, and the WorkerInstance replicas it owns.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional

from pydantic import BaseModel, Field

API_VERSION = "workerset.io/v1alpha1"
WORKERSET_KIND = "WorkerSet"
INSTANCE_KIND = "WorkerInstance"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ObjectKey(NamedTuple):
    """Namespace/name pair identifying a WorkerSet to reconcile."""
    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class InstancePhase(str, Enum):
    """WorkerInstance lifecycle phases."""
    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    TERMINATING = "Terminating"


class ConditionType(str, Enum):
    """WorkerSet condition types."""
    SUCCESS = "Success"
    FAILURE = "Failure"


class OwnerReference(BaseModel):
    """Weak back-pointer from an owned object to its owner, resolved by UID."""
    api_version: str = ""
    kind: str = ""
    name: str = ""
    uid: str = ""
    controller: bool = False
    block_owner_deletion: bool = False


class ObjectMeta(BaseModel):
    """Metadata common to every stored object."""
    name: str
    namespace: str = "default"
    uid: str = Field(default_factory=lambda: str(uuid.uuid4()))
    generation: int = 1
    resource_version: str = ""
    labels: Dict[str, str] = {}
    annotations: Dict[str, str] = {}
    creation_timestamp: datetime = Field(default_factory=utcnow)
    deletion_timestamp: Optional[datetime] = None
    owner_references: List[OwnerReference] = []

    def controller_ref(self) -> Optional[OwnerReference]:
        """Return the owner reference marked as controller, if any"""
        for ref in self.owner_references:
            if ref.controller:
                return ref
        return None


class LabelSelectorRequirement(BaseModel):
    """A single set-based selector expression"""
    key: str
    operator: str
    values: List[str] = []


class LabelSelector(BaseModel):
    """Structured label selector: exact labels AND-ed with set expressions"""
    match_labels: Dict[str, str] = {}
    match_expressions: List[LabelSelectorRequirement] = []


class WorkerTemplate(BaseModel):
    """Blueprint for new instances. The spec is passed through untouched."""
    labels: Dict[str, str] = {}
    annotations: Dict[str, str] = {}
    spec: Dict[str, Any] = {}


class WorkerSetSpec(BaseModel):
    """Desired state of a WorkerSet."""
    replicas: int = Field(default=1, ge=0)
    selector: LabelSelector = Field(default_factory=LabelSelector)
    template: WorkerTemplate = Field(default_factory=WorkerTemplate)
    # Seconds an instance must stay ready before it counts as available.
    min_ready_seconds: int = Field(default=0, ge=0)


class Condition(BaseModel):
    """A named boolean status fact with a reason and transition time."""
    type: ConditionType
    status: bool
    reason: str = ""
    message: str = ""
    last_transition_time: datetime = Field(default_factory=utcnow)


class WorkerSetStatus(BaseModel):
    """Observed state of a WorkerSet, as last reported by the controller."""
    replicas: int = 0
    ready_replicas: int = 0
    available_replicas: int = 0
    observed_generation: int = 0
    conditions: List[Condition] = []

    def get_condition(self, cond_type: ConditionType) -> Optional[Condition]:
        for cond in self.conditions:
            if cond.type == cond_type:
                return cond
        return None


class WorkerSet(BaseModel):
    """
    WorkerSet resource.

    A WorkerSet keeps a specified number of identical WorkerInstances alive.
    Instances are matched through the selector and created from the template.
    """
    kind: str = WORKERSET_KIND
    api_version: str = API_VERSION
    metadata: ObjectMeta
    spec: WorkerSetSpec = Field(default_factory=WorkerSetSpec)
    status: WorkerSetStatus = Field(default_factory=WorkerSetStatus)

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.metadata.namespace, self.metadata.name)


class InstanceStatus(BaseModel):
    """Observed state of a single WorkerInstance."""
    phase: InstancePhase = InstancePhase.PENDING
    ready: bool = False
    ready_since: Optional[datetime] = None
    start_time: Optional[datetime] = None


class WorkerInstance(BaseModel):
    """One concrete replica owned by a WorkerSet."""
    kind: str = INSTANCE_KIND
    api_version: str = API_VERSION
    metadata: ObjectMeta
    spec: Dict[str, Any] = {}
    status: InstanceStatus = Field(default_factory=InstanceStatus)

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.metadata.namespace, self.metadata.name)
