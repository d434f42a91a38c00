"""
WorkerSet Exception Hierarchy
Errors raised by the object store and the reconciliation core
"""


class WorkerSetError(Exception):
    """Base exception for all workerset errors"""
    pass


class ConfigError(WorkerSetError):
    """Controller configuration errors"""
    pass


class SelectorError(WorkerSetError):
    """Malformed label selector on a WorkerSet spec.

    Retrying the same spec cannot succeed; only a spec change fixes it.
    """
    pass


class InvalidOwnerReferenceError(WorkerSetError):
    """Controller reference is missing required fields"""
    pass


class StoreError(WorkerSetError):
    """Object store errors"""

    def __init__(self, message: str = "", kind: str = "", namespace: str = "", name: str = ""):
        super().__init__(message)
        self.kind = kind
        self.namespace = namespace
        self.name = name


class NotFoundError(StoreError):
    """Requested object does not exist"""
    pass


class AlreadyExistsError(StoreError):
    """Object with the same key already exists"""
    pass


class ConflictError(StoreError):
    """Write was based on a stale resource version"""
    pass


class NamespaceTerminatingError(StoreError):
    """Create refused because the target namespace is being deleted"""
    pass
