"""
Owner-reference routing of instance events back to their WorkerSet.
"""

import logging
from typing import List

from workerset.errors import StoreError
from workerset.models import WORKERSET_KIND, ObjectKey, WorkerInstance
from workerset.store import ObjectStore

# Logging setup
logger = logging.getLogger(__name__)


class OwnerRouter:
    """Maps a changed WorkerInstance to the key of the WorkerSet controlling it."""

    def __init__(self, store: ObjectStore):
        self.store = store

    def map_instance_to_keys(self, instance: WorkerInstance) -> List[ObjectKey]:
        """
        Resolve the controlling WorkerSet of an instance.

        The owner is looked up fresh by name and confirmed by UID, since it
        may have been deleted or recreated since the instance was made.

        Args:
            instance: Changed instance

        Returns:
            A list with the owner's key, or an empty list for orphans and
            stale owners
        """
        if instance is None:
            return []

        ref = instance.metadata.controller_ref()
        if ref is None or ref.kind != WORKERSET_KIND:
            return []

        namespace = instance.metadata.namespace
        try:
            owner = self.store.get(WORKERSET_KIND, namespace, ref.name)
        except StoreError as e:
            logger.debug(f"Owner {namespace}/{ref.name} of instance {instance.metadata.name} not resolved: {e}")
            return []

        if owner.metadata.uid != ref.uid:
            logger.debug(f"Instance {namespace}/{instance.metadata.name} points to stale owner uid {ref.uid}")
            return []

        return [ObjectKey(namespace, owner.metadata.name)]
