"""
Batch Action Executor

Runs the n create or delete calls of one reconciliation pass concurrently,
waits for all of them and reports the first failure. A failing call never
cancels or skips its siblings.
"""

import concurrent.futures
import logging
from typing import Callable, List, Optional

from workerset.controllers.diff import Intent, IntentType
from workerset.errors import NotFoundError

# Logging setup
logger = logging.getLogger(__name__)

# action(index) performs the index-th unit of work of the batch.
Action = Callable[[int], None]


class BatchExecutor:
    """
    Fan-out/fan-in executor for corrective actions.

    The pool is sized to the batch, which the diff engine bounds by the
    burst cap, so thread growth is bounded too.
    """

    def __init__(self, thread_name_prefix: str = "workerset-batch"):
        self.thread_name_prefix = thread_name_prefix

    def execute(self, intent: Intent, action: Action) -> Optional[Exception]:
        """
        Run action(0) .. action(n-1) concurrently.

        Args:
            intent: Create or delete intent carrying n
            action: Unit of work against the store

        Returns:
            The first failure in completion order, or None if all succeeded.
            NotFoundError on a delete counts as success.
        """
        if intent.is_noop or intent.count <= 0:
            return None

        errors: List[Exception] = []
        with concurrent.futures.ThreadPoolExecutor(
                max_workers=intent.count,
                thread_name_prefix=self.thread_name_prefix) as executor:
            futures = [executor.submit(action, i) for i in range(intent.count)]

            for future in concurrent.futures.as_completed(futures):
                error = future.exception()
                if error is None:
                    continue
                if intent.type == IntentType.DELETE and isinstance(error, NotFoundError):
                    logger.debug(f"{error.kind} {error.namespace}/{error.name} has already been deleted")
                    continue
                errors.append(error)

        if errors:
            logger.warning(f"{len(errors)} of {intent.count} {intent.type.value.lower()} calls failed: {errors[0]}")
            return errors[0]
        return None
