"""
Unit tests for owner-reference routing
"""

import unittest
from unittest.mock import Mock

from tests.fixtures import make_instance, make_workerset
from workerset.controllers.router import OwnerRouter
from workerset.errors import StoreError
from workerset.models import ObjectKey, OwnerReference, WORKERSET_KIND
from workerset.store import InMemoryStore, ObjectStore


class TestOwnerRouter(unittest.TestCase):
    """Test mapping instance events to WorkerSet keys"""

    def setUp(self):
        self.store = InMemoryStore()
        self.ws = self.store.create(make_workerset(name="web", namespace="prod"))
        self.router = OwnerRouter(self.store)

    def test_routes_to_owner(self):
        inst = make_instance("web-abcde", namespace="prod", owner=self.ws)
        self.assertEqual(self.router.map_instance_to_keys(inst), [ObjectKey("prod", "web")])

    def test_orphan_yields_nothing(self):
        self.assertEqual(self.router.map_instance_to_keys(make_instance("lonely", namespace="prod")), [])

    def test_none_yields_nothing(self):
        self.assertEqual(self.router.map_instance_to_keys(None), [])

    def test_other_kind_ignored(self):
        inst = make_instance("x", namespace="prod")
        inst.metadata.owner_references = [OwnerReference(
            api_version="batch/v1", kind="Job", name="web", uid=self.ws.metadata.uid, controller=True)]

        self.assertEqual(self.router.map_instance_to_keys(inst), [])

    def test_non_controller_reference_ignored(self):
        inst = make_instance("x", namespace="prod", owner=self.ws)
        inst.metadata.owner_references[0].controller = False

        self.assertEqual(self.router.map_instance_to_keys(inst), [])

    def test_stale_uid_yields_nothing(self):
        """Owner deleted and recreated under the same name"""
        inst = make_instance("web-abcde", namespace="prod", owner=self.ws)
        self.store.delete(WORKERSET_KIND, "prod", "web")
        self.store.create(make_workerset(name="web", namespace="prod"))

        self.assertEqual(self.router.map_instance_to_keys(inst), [])

    def test_deleted_owner_yields_nothing(self):
        inst = make_instance("web-abcde", namespace="prod", owner=self.ws)
        self.store.delete(WORKERSET_KIND, "prod", "web")

        self.assertEqual(self.router.map_instance_to_keys(inst), [])

    def test_store_error_yields_nothing(self):
        store = Mock(spec=ObjectStore)
        store.get.side_effect = StoreError("unavailable")
        inst = make_instance("web-abcde", namespace="prod", owner=self.ws)

        self.assertEqual(OwnerRouter(store).map_instance_to_keys(inst), [])


if __name__ == '__main__':
    unittest.main()
