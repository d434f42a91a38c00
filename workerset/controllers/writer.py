"""
WorkerSet Status Writer

Persists a computed status through the store's conditional update. A status
identical to the stored one is not written, since every write fires a watch
event that would trigger another reconciliation.
"""

import logging

from workerset.config import STATUS_UPDATE_RETRIES
from workerset.errors import ConflictError
from workerset.models import WorkerSet, WorkerSetStatus
from workerset.store import ObjectStore

# Logging setup
logger = logging.getLogger(__name__)


def status_unchanged(workerset: WorkerSet, new_status: WorkerSetStatus) -> bool:
    old = workerset.status
    return (old.replicas == new_status.replicas and
            old.ready_replicas == new_status.ready_replicas and
            old.available_replicas == new_status.available_replicas and
            workerset.metadata.generation == new_status.observed_generation and
            old.conditions == new_status.conditions)


class StatusWriter:
    """Writes WorkerSet status with a single re-fetch and retry on conflict."""

    def __init__(self, store: ObjectStore):
        self.store = store

    def write(self, workerset: WorkerSet, new_status: WorkerSetStatus) -> WorkerSet:
        """
        Persist new_status on workerset.

        Args:
            workerset: WorkerSet as read at the start of the pass
            new_status: Status computed for it

        Returns:
            The stored WorkerSet, or workerset itself if nothing changed

        Raises:
            ConflictError: If the retry after a re-fetch conflicts again
            StoreError: On any other store failure
        """
        if status_unchanged(workerset, new_status):
            return workerset

        # Stamp the generation we acted on, not the one we may re-fetch below,
        # otherwise a retry could claim to have seen a newer spec.
        new_status = new_status.model_copy(deep=True)
        new_status.observed_generation = workerset.metadata.generation

        ws = workerset.model_copy(deep=True)
        meta = ws.metadata
        attempt = 0
        while True:
            logger.info(
                f"Updating status for {ws.kind}: {meta.namespace}/{meta.name}, "
                f"replicas {ws.status.replicas}->{new_status.replicas} (need {ws.spec.replicas}), "
                f"readyReplicas {ws.status.ready_replicas}->{new_status.ready_replicas}, "
                f"availableReplicas {ws.status.available_replicas}->{new_status.available_replicas}")

            ws.status = new_status
            try:
                return self.store.update_status(ws)
            except ConflictError as e:
                if attempt >= STATUS_UPDATE_RETRIES:
                    raise
                logger.info(f"Conflict updating status of {meta.namespace}/{meta.name}, retrying: {e}")

            attempt += 1
            # Get the WorkerSet with the latest resource version for the retry.
            ws = self.store.get(ws.kind, meta.namespace, meta.name)
            meta = ws.metadata
