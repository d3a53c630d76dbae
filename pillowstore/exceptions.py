"""
Error Taxonomy

Typed errors raised by the remote gateway, the local cache and the entity
validators. The sync coordinator downgrades remote errors to the fallback
path; everything else propagates to the caller.
"""

from typing import Any, Dict, List, Optional


class PillowStoreError(Exception):
    """Base class for all persistence-layer errors"""

    def __init__(self, message: str, *, collection: Optional[str] = None, key: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.collection = collection
        self.key = key


class RemoteUnavailable(PillowStoreError):
    """Transient network or server failure. The caller should fall back."""


class SchemaMissing(PillowStoreError):
    """
    The expected relation does not exist on the remote service.

    Fixing this needs the schema initializer, so it is never retried and
    never reported as RemoteUnavailable.
    """


class LocalCacheError(PillowStoreError):
    """Local cache store failure"""


class StorageFull(LocalCacheError):
    """The local cache quota is exhausted; the write was NOT stored"""


class DeserializationError(LocalCacheError):
    """A cached snapshot could not be decoded"""


class ValidationError(PillowStoreError):
    """Malformed entity, rejected before either store is touched"""

    def __init__(
        self,
        message: str,
        errors: Optional[List[Dict[str, Any]]] = None,
        *,
        collection: Optional[str] = None,
        key: Optional[str] = None,
    ):
        super().__init__(message, collection=collection, key=key)
        self.errors = errors or []
