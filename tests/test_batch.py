"""
Unit tests for the batch action executor
"""

import threading
import time
import unittest

from workerset.controllers.batch import BatchExecutor
from workerset.controllers.diff import NOOP, create_intent, delete_intent
from workerset.errors import NotFoundError, StoreError


class TestBatchExecutor(unittest.TestCase):
    """Test fan-out, join and error collection"""

    def setUp(self):
        self.executor = BatchExecutor()
        self.done = []
        self.lock = threading.Lock()

    def record(self, index):
        with self.lock:
            self.done.append(index)

    def test_all_succeed(self):
        error = self.executor.execute(create_intent(5), self.record)

        self.assertIsNone(error)
        self.assertEqual(sorted(self.done), [0, 1, 2, 3, 4])

    def test_partial_failure_does_not_abort_siblings(self):
        """Calls #2 and #4 fail; #1, #3 and #5 still run to completion"""
        errors = {1: StoreError("create #2 failed"), 3: StoreError("create #4 failed")}

        def action(index):
            if index in errors:
                raise errors[index]
            self.record(index)

        error = self.executor.execute(create_intent(5), action)

        self.assertIn(error, list(errors.values()))
        self.assertEqual(sorted(self.done), [0, 2, 4])

    def test_first_completed_failure_is_reported(self):
        slow = StoreError("slow failure")
        fast = StoreError("fast failure")

        def action(index):
            if index == 1:
                time.sleep(0.2)
                raise slow
            if index == 3:
                raise fast
            self.record(index)

        error = self.executor.execute(create_intent(5), action)
        self.assertIs(error, fast)

    def test_calls_run_concurrently(self):
        """Every call must be in flight at once for the barrier to release"""
        barrier = threading.Barrier(4, timeout=5)

        def action(index):
            barrier.wait()
            self.record(index)

        error = self.executor.execute(create_intent(4), action)

        self.assertIsNone(error)
        self.assertEqual(len(self.done), 4)

    def test_not_found_on_delete_is_success(self):
        def action(index):
            if index == 0:
                raise NotFoundError("gone", kind="WorkerInstance", namespace="default", name="w-0")
            self.record(index)

        self.assertIsNone(self.executor.execute(delete_intent(3), action))
        self.assertEqual(sorted(self.done), [1, 2])

    def test_not_found_on_create_is_failure(self):
        def action(index):
            raise NotFoundError("namespace missing")

        error = self.executor.execute(create_intent(2), action)
        self.assertIsInstance(error, NotFoundError)

    def test_noop_runs_nothing(self):
        self.assertIsNone(self.executor.execute(NOOP, self.record))
        self.assertEqual(self.done, [])


if __name__ == '__main__':
    unittest.main()
