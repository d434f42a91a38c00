"""
WorkerSet Controller

This module implements the reconciliation of WorkerSets: it observes the live
instances selected by a WorkerSet, creates or deletes instances until the
active count matches the desired replica count, and reports the result in the
WorkerSet's status.

Each call to reconcile() is one pass of observe, diff, act, report:

    get WorkerSet -> resolve selector -> list instances -> filter active
    -> compute diff -> run batch -> re-list -> calculate status -> write status

The caller is expected to run at most one pass per key at a time and to
requeue keys as the returned ReconcileResult asks.
"""

import copy
import logging
import uuid
from datetime import datetime
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from workerset.config import ControllerConfig
from workerset.controllers.active import filter_active_instances
from workerset.controllers.batch import BatchExecutor
from workerset.controllers.diff import (
    Intent, IntentType, VictimPolicy, compute_diff, deletion_age_ratios,
    oldest_first, select_victims
)
from workerset.controllers.router import OwnerRouter
from workerset.controllers.selector import Selector, resolve_selector
from workerset.controllers.status import calculate_status
from workerset.controllers.writer import StatusWriter
from workerset.errors import (
    InvalidOwnerReferenceError, NamespaceTerminatingError, NotFoundError,
    SelectorError, StoreError
)
from workerset.events import (
    DELETION_AGE_RATIO, FAILED_CREATE_REASON, FAILED_DELETE_REASON,
    INVALID_SELECTOR_REASON, SUCCESSFUL_CREATE_REASON, SUCCESSFUL_DELETE_REASON,
    EventSink, EventType, LoggingEventSink
)
from workerset.models import (
    API_VERSION, INSTANCE_KIND, WORKERSET_KIND, ObjectKey, ObjectMeta,
    OwnerReference, WorkerInstance, WorkerSet, utcnow
)
from workerset.store import ObjectStore

# Logging setup
logger = logging.getLogger(__name__)


class ReconcileResult(NamedTuple):
    """Outcome of one reconciliation pass."""
    requeue: bool = False
    requeue_after: float = 0.0
    error: Optional[Exception] = None


def new_controller_ref(workerset: WorkerSet) -> OwnerReference:
    return OwnerReference(
        api_version=workerset.api_version,
        kind=workerset.kind,
        name=workerset.metadata.name,
        uid=workerset.metadata.uid,
        controller=True,
        block_owner_deletion=True
    )


def validate_controller_ref(ref: Optional[OwnerReference]) -> None:
    """
    Check that a controller reference can be stamped on a new instance.

    Raises:
        InvalidOwnerReferenceError: If a required field is missing
    """
    if ref is None:
        raise InvalidOwnerReferenceError("controllerRef cannot be nil")
    if not ref.api_version:
        raise InvalidOwnerReferenceError("controllerRef has empty APIVersion")
    if not ref.kind:
        raise InvalidOwnerReferenceError("controllerRef has empty Kind")
    if not ref.controller:
        raise InvalidOwnerReferenceError("controllerRef.Controller is not set to true")
    if not ref.block_owner_deletion:
        raise InvalidOwnerReferenceError("controllerRef.BlockOwnerDeletion is not set")


def template_labels(workerset: WorkerSet) -> Dict[str, str]:
    """Labels stamped on instances created from the template"""
    labels = dict(workerset.spec.template.labels)
    if not labels:
        labels = dict(workerset.spec.selector.match_labels)
    return labels


def check_selector_matches_template(workerset: WorkerSet, selector: Selector) -> None:
    """
    Check that the selector selects every instance the template produces.

    Raises:
        SelectorError: If the template labels do not satisfy the selector
    """
    labels = template_labels(workerset)
    if not selector.matches(labels):
        raise SelectorError(f"selector \"{selector}\" does not match template labels {labels}")


def instance_from_template(workerset: WorkerSet, controller_ref: OwnerReference) -> WorkerInstance:
    """
    Build a new instance from the WorkerSet's template.

    Args:
        workerset: Owning WorkerSet
        controller_ref: Reference stamped on the instance

    Returns:
        Unsaved WorkerInstance
    """
    template = workerset.spec.template
    metadata = ObjectMeta(
        name=f"{workerset.metadata.name}-{uuid.uuid4().hex[:5]}",
        namespace=workerset.metadata.namespace,
        labels=template_labels(workerset),
        annotations=dict(template.annotations),
        owner_references=[controller_ref]
    )
    return WorkerInstance(api_version=API_VERSION, metadata=metadata, spec=copy.deepcopy(template.spec))


class WorkerSetReconciler:
    """
    Reconciler for WorkerSet resources.

    Holds no state between passes besides its collaborators: everything is
    re-read from the store on each call.
    """

    def __init__(self, store: ObjectStore, sink: Optional[EventSink] = None,
                 config: Optional[ControllerConfig] = None,
                 clock: Callable[[], datetime] = utcnow,
                 victim_policy: VictimPolicy = oldest_first,
                 executor: Optional[BatchExecutor] = None):
        """
        Initialize the reconciler.

        Args:
            store: Object store
            sink: Event sink; events are logged if omitted
            config: Controller configuration
            clock: Source of the current time
            victim_policy: Ordering used to pick instances to delete
            executor: Batch executor for corrective actions
        """
        self.store = store
        self.sink = sink or LoggingEventSink()
        self.config = config or ControllerConfig()
        self.clock = clock
        self.victim_policy = victim_policy
        self.executor = executor or BatchExecutor()
        self.writer = StatusWriter(store)
        self.router = OwnerRouter(store)

    def reconcile(self, key: ObjectKey) -> ReconcileResult:
        """
        Move the WorkerSet identified by key towards its desired state.

        Args:
            key: Namespace and name of the WorkerSet

        Returns:
            ReconcileResult telling the caller whether and when to requeue
        """
        logger.info(f"Reconciling WorkerSet {key}")

        try:
            workerset = self.store.get(WORKERSET_KIND, key.namespace, key.name)
        except NotFoundError:
            # Owned instances are garbage collected by the store.
            logger.debug(f"WorkerSet {key} not found, nothing to do")
            return ReconcileResult()
        except StoreError as e:
            logger.error(f"Error requesting WorkerSet {key}: {e}")
            return ReconcileResult(requeue=True, error=e)

        try:
            selector = resolve_selector(workerset.spec.selector)
            check_selector_matches_template(workerset, selector)
        except SelectorError as e:
            # Requeueing cannot help; a spec change will trigger a new pass.
            logger.error(f"Invalid selector on WorkerSet {key}: {e}")
            self.sink.event(workerset, EventType.WARNING, INVALID_SELECTOR_REASON, str(e))
            return ReconcileResult(error=e)

        try:
            active = self._list_active(workerset, selector)
        except StoreError as e:
            logger.error(f"Error listing instances of WorkerSet {key}: {e}")
            return ReconcileResult(requeue=True, error=e)

        intent: Optional[Intent] = None
        action_error: Optional[Exception] = None
        relist_error: Optional[StoreError] = None
        if workerset.metadata.deletion_timestamp is None:
            intent, action_error = self.manage_replicas(workerset, active)
            if not intent.is_noop:
                try:
                    active = self._list_active(workerset, selector)
                except StoreError as e:
                    # Status falls back to the instances seen before the actions.
                    logger.error(f"Error listing instances of WorkerSet {key}: {e}")
                    relist_error = e
        else:
            logger.debug(f"WorkerSet {key} is being deleted, skipping corrective actions")

        new_status = calculate_status(workerset, active, action_error, intent,
                                      self.clock(), self.config.min_available_replicas)

        try:
            updated = self.writer.write(workerset, new_status)
        except NotFoundError:
            logger.debug(f"WorkerSet {key} was deleted before its status was written")
            return ReconcileResult()
        except StoreError as e:
            logger.error(f"Error updating status of WorkerSet {key}: {e}")
            return ReconcileResult(requeue=True, error=e)

        if action_error is not None or relist_error is not None:
            return ReconcileResult(requeue=True, error=action_error or relist_error)

        desired = updated.spec.replicas
        if updated.status.ready_replicas == desired and updated.status.available_replicas != desired:
            # Check availability again once the instances have been ready long enough.
            return ReconcileResult(requeue=True, requeue_after=float(updated.spec.min_ready_seconds))

        return ReconcileResult()

    def map_instance_to_keys(self, instance: WorkerInstance) -> List[ObjectKey]:
        """Keys of the WorkerSets to reconcile when instance changes"""
        return self.router.map_instance_to_keys(instance)

    def _list_active(self, workerset: WorkerSet, selector: Selector) -> List[WorkerInstance]:
        instances = self.store.list(INSTANCE_KIND, workerset.metadata.namespace, selector)
        return filter_active_instances(instances)

    def manage_replicas(self, workerset: WorkerSet,
                        active: List[WorkerInstance]) -> Tuple[Intent, Optional[Exception]]:
        """
        Create or delete instances to close the gap to the desired count.

        Args:
            workerset: WorkerSet being reconciled
            active: Its active instances

        Returns:
            The executed intent and the first action error, if any
        """
        intent = compute_diff(workerset.spec.replicas, len(active), self.config.burst_replicas)
        key = workerset.key

        if intent.type == IntentType.CREATE:
            logger.info(f"Too few replicas for WorkerSet {key}, "
                        f"need {workerset.spec.replicas}, creating {intent.count}")
            controller_ref = new_controller_ref(workerset)
            error = self.executor.execute(intent, lambda _: self._create_instance(workerset, controller_ref))
            return intent, error

        if intent.type == IntentType.DELETE:
            logger.info(f"Too many replicas for WorkerSet {key}, "
                        f"need {workerset.spec.replicas}, deleting {intent.count}")
            victims = select_victims(active, intent.count, self.victim_policy)
            for ratio in deletion_age_ratios(victims, active, self.clock()):
                self.sink.observe(DELETION_AGE_RATIO, ratio)
            error = self.executor.execute(intent, lambda i: self._delete_instance(workerset, victims[i]))
            return intent, error

        return intent, None

    def _create_instance(self, workerset: WorkerSet, controller_ref: OwnerReference) -> None:
        validate_controller_ref(controller_ref)
        instance = instance_from_template(workerset, controller_ref)

        try:
            created = self.store.create(instance)
        except NamespaceTerminatingError as e:
            self.sink.event(workerset, EventType.WARNING, FAILED_CREATE_REASON, f"Error creating: {e}")
            raise

        self.sink.event(workerset, EventType.NORMAL, SUCCESSFUL_CREATE_REASON,
                        f"Created instance: {created.metadata.name}")

    def _delete_instance(self, workerset: WorkerSet, instance: WorkerInstance) -> None:
        namespace, name = instance.metadata.namespace, instance.metadata.name
        try:
            self.store.delete(INSTANCE_KIND, namespace, name)
        except NotFoundError:
            logger.debug(f"Instance {namespace}/{name} has already been deleted")
            raise
        except StoreError as e:
            self.sink.event(workerset, EventType.WARNING, FAILED_DELETE_REASON, f"Error deleting: {e}")
            raise StoreError(f"failed to delete instance: {e}",
                             kind=INSTANCE_KIND, namespace=namespace, name=name) from e

        self.sink.event(workerset, EventType.NORMAL, SUCCESSFUL_DELETE_REASON,
                        f"Deleted instance: {name}")
