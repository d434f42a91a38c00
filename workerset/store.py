"""
Object Store for the WorkerSet Controller

This module defines the store capability consumed by the reconciliation core
(get, list by selector, create, delete, conditional status update, watch) and
an in-memory implementation with resource-version compare-and-swap semantics.

The store is the only source of truth: the core never caches objects between
reconciliations, it re-reads them.
"""

import logging
import queue
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Set, Tuple

from workerset.errors import (
    AlreadyExistsError, ConflictError, NamespaceTerminatingError, NotFoundError
)
from workerset.models import INSTANCE_KIND, utcnow

# Logging setup
logger = logging.getLogger(__name__)

# Events buffered per watch before a subscriber that is not draining is dropped.
DEFAULT_WATCH_BUFFER = 1000


class WatchEventType(str, Enum):
    """Watch event types."""
    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"


class WatchEvent(NamedTuple):
    type: WatchEventType
    object: Any


class ObjectStore(ABC):
    """
    Capability interface of the external object store.

    Objects are pydantic models with ``kind`` and ``metadata`` attributes.
    Selectors are any object with a ``matches(labels)`` method.
    """

    @abstractmethod
    def get(self, kind: str, namespace: str, name: str) -> Any:
        """
        Get an object by key.

        Raises:
            NotFoundError: If the object does not exist
        """
        pass

    @abstractmethod
    def list(self, kind: str, namespace: Optional[str] = None, selector: Any = None) -> List[Any]:
        """
        List objects of a kind, optionally restricted to a namespace and
        to objects whose labels match the selector.
        """
        pass

    @abstractmethod
    def create(self, obj: Any) -> Any:
        """
        Create an object and return the stored copy.

        Raises:
            AlreadyExistsError: If the key is taken
            NamespaceTerminatingError: If the namespace is being deleted
        """
        pass

    @abstractmethod
    def delete(self, kind: str, namespace: str, name: str) -> None:
        """
        Delete an object.

        Raises:
            NotFoundError: If the object does not exist
        """
        pass

    @abstractmethod
    def update_status(self, obj: Any) -> Any:
        """
        Replace the status of an object if its resource version is current.

        Raises:
            ConflictError: If obj carries a stale resource version
            NotFoundError: If the object does not exist
        """
        pass

    @abstractmethod
    def watch(self, kind: str) -> 'Watch':
        """Subscribe to change events for a kind"""
        pass


class Watch:
    """
    A subscription to store change events.

    Events are buffered up to buffer_size. A watch whose buffer fills up is
    stopped; the subscriber sees stopped set and must list and watch again.
    """

    def __init__(self, store: 'InMemoryStore', kind: str, buffer_size: int = DEFAULT_WATCH_BUFFER):
        self.kind = kind
        self._store = store
        self._queue: "queue.Queue[WatchEvent]" = queue.Queue(maxsize=buffer_size)
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    def _push(self, event: WatchEvent) -> None:
        if self._stopped:
            return
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            logger.warning(f"Watch on {self.kind} fell behind, dropping it")
            self.stop()

    def next(self, timeout: Optional[float] = None) -> Optional[WatchEvent]:
        """
        Get the next event.

        Args:
            timeout: Seconds to wait; None blocks

        Returns:
            The event, or None on timeout
        """
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> List[WatchEvent]:
        """Return every event queued so far without blocking"""
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def stop(self) -> None:
        self._stopped = True
        self._store._unsubscribe(self)


class InMemoryStore(ObjectStore):
    """
    Thread-safe in-memory object store.

    Every write bumps a global resource version. Spec changes made through
    ``update`` bump the object's generation; status writes never do.
    """

    def __init__(self):
        self._objects: Dict[str, Dict[Tuple[str, str], Any]] = {}
        self._watches: Dict[str, List[Watch]] = {}
        self._terminating: Set[str] = set()
        self._resource_version = 0
        self._lock = threading.RLock()

    def _next_version(self) -> str:
        self._resource_version += 1
        return str(self._resource_version)

    def _bucket(self, kind: str) -> Dict[Tuple[str, str], Any]:
        return self._objects.setdefault(kind, {})

    def _stored(self, kind: str, namespace: str, name: str) -> Any:
        obj = self._bucket(kind).get((namespace, name))
        if obj is None:
            raise NotFoundError(f"{kind} {namespace}/{name} not found",
                                kind=kind, namespace=namespace, name=name)
        return obj

    def _notify(self, kind: str, event_type: WatchEventType, obj: Any) -> None:
        for w in list(self._watches.get(kind, [])):
            w._push(WatchEvent(event_type, obj.model_copy(deep=True)))

    def _unsubscribe(self, w: Watch) -> None:
        with self._lock:
            watches = self._watches.get(w.kind, [])
            if w in watches:
                watches.remove(w)

    def get(self, kind: str, namespace: str, name: str) -> Any:
        with self._lock:
            return self._stored(kind, namespace, name).model_copy(deep=True)

    def list(self, kind: str, namespace: Optional[str] = None, selector: Any = None) -> List[Any]:
        with self._lock:
            result = []
            for (ns, _), obj in self._bucket(kind).items():
                if namespace is not None and ns != namespace:
                    continue
                if selector is not None and not selector.matches(obj.metadata.labels):
                    continue
                result.append(obj.model_copy(deep=True))

        result.sort(key=lambda o: (o.metadata.creation_timestamp, o.metadata.name))
        return result

    def create(self, obj: Any) -> Any:
        meta = obj.metadata
        with self._lock:
            if obj.kind == INSTANCE_KIND and meta.namespace in self._terminating:
                raise NamespaceTerminatingError(
                    f"unable to create new content in namespace {meta.namespace} "
                    f"because it is being terminated",
                    kind=obj.kind, namespace=meta.namespace, name=meta.name)

            bucket = self._bucket(obj.kind)
            if (meta.namespace, meta.name) in bucket:
                raise AlreadyExistsError(f"{obj.kind} {meta.namespace}/{meta.name} already exists",
                                         kind=obj.kind, namespace=meta.namespace, name=meta.name)

            stored = obj.model_copy(deep=True)
            stored.metadata.generation = 1
            stored.metadata.creation_timestamp = utcnow()
            stored.metadata.deletion_timestamp = None
            stored.metadata.resource_version = self._next_version()
            bucket[(meta.namespace, meta.name)] = stored

            logger.debug(f"Created {obj.kind} {meta.namespace}/{meta.name}")
            self._notify(obj.kind, WatchEventType.ADDED, stored)
            return stored.model_copy(deep=True)

    def delete(self, kind: str, namespace: str, name: str) -> None:
        with self._lock:
            stored = self._stored(kind, namespace, name)
            del self._bucket(kind)[(namespace, name)]

            logger.debug(f"Deleted {kind} {namespace}/{name}")
            self._notify(kind, WatchEventType.DELETED, stored)

    def _check_version(self, obj: Any, stored: Any) -> None:
        if obj.metadata.resource_version != stored.metadata.resource_version:
            raise ConflictError(
                f"the object {obj.kind} {obj.metadata.namespace}/{obj.metadata.name} has been "
                f"modified; please apply your changes to the latest version and try again",
                kind=obj.kind, namespace=obj.metadata.namespace, name=obj.metadata.name)

    def update(self, obj: Any) -> Any:
        """
        Replace the spec, labels and annotations of an object.

        The generation is bumped when the spec changes. The status is kept.

        Raises:
            ConflictError: If obj carries a stale resource version
            NotFoundError: If the object does not exist
        """
        meta = obj.metadata
        with self._lock:
            stored = self._stored(obj.kind, meta.namespace, meta.name)
            self._check_version(obj, stored)

            updated = stored.model_copy(deep=True)
            if obj.spec != stored.spec:
                updated.spec = obj.model_copy(deep=True).spec
                updated.metadata.generation += 1
            updated.metadata.labels = dict(meta.labels)
            updated.metadata.annotations = dict(meta.annotations)
            updated.metadata.resource_version = self._next_version()
            self._bucket(obj.kind)[(meta.namespace, meta.name)] = updated

            self._notify(obj.kind, WatchEventType.MODIFIED, updated)
            return updated.model_copy(deep=True)

    def update_status(self, obj: Any) -> Any:
        meta = obj.metadata
        with self._lock:
            stored = self._stored(obj.kind, meta.namespace, meta.name)
            self._check_version(obj, stored)

            updated = stored.model_copy(deep=True)
            updated.status = obj.model_copy(deep=True).status
            updated.metadata.resource_version = self._next_version()
            self._bucket(obj.kind)[(meta.namespace, meta.name)] = updated

            self._notify(obj.kind, WatchEventType.MODIFIED, updated)
            return updated.model_copy(deep=True)

    def mark_for_deletion(self, kind: str, namespace: str, name: str) -> Any:
        """Set the deletion timestamp, as a store with pending finalizers would"""
        with self._lock:
            stored = self._stored(kind, namespace, name)
            if stored.metadata.deletion_timestamp is None:
                stored.metadata.deletion_timestamp = utcnow()
                stored.metadata.resource_version = self._next_version()
                self._notify(kind, WatchEventType.MODIFIED, stored)
            return stored.model_copy(deep=True)

    def terminate_namespace(self, namespace: str) -> None:
        """Refuse new instances in a namespace from now on"""
        with self._lock:
            self._terminating.add(namespace)

    def watch(self, kind: str, buffer_size: int = DEFAULT_WATCH_BUFFER) -> Watch:
        w = Watch(self, kind, buffer_size)
        with self._lock:
            self._watches.setdefault(kind, []).append(w)
        return w
