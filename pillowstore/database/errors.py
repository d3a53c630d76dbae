"""
Remote Error Normalization

Maps driver and transport exceptions onto the small remote error taxonomy:
a missing relation becomes SchemaMissing, everything else RemoteUnavailable.
"""

import asyncio
from typing import Optional

from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from pillowstore.exceptions import PillowStoreError, RemoteUnavailable, SchemaMissing

# Postgres SQLSTATE for undefined_table
UNDEFINED_TABLE = "42P01"

_MISSING_RELATION_MARKERS = (
    "no such table",
    "undefinedtableerror",
)


def is_missing_relation(exc: BaseException) -> bool:
    """True when the error says the queried relation does not exist"""
    orig = getattr(exc, "orig", None)
    for candidate in (exc, orig):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code == UNDEFINED_TABLE:
            return True

    message = str(exc).lower()
    if "relation" in message and "does not exist" in message:
        return True
    return any(marker in message for marker in _MISSING_RELATION_MARKERS)


def translate_remote_error(
    exc: BaseException,
    *,
    collection: Optional[str] = None,
    key: Optional[str] = None,
) -> PillowStoreError:
    """
    Normalize a remote failure.

    Args:
        exc: The exception raised by the driver, SQLAlchemy or asyncio
        collection: Collection the call targeted
        key: Entity key the call targeted

    Returns:
        SchemaMissing or RemoteUnavailable (already-typed errors pass through)
    """
    if isinstance(exc, (RemoteUnavailable, SchemaMissing)):
        return exc

    if isinstance(exc, (DBAPIError, SQLAlchemyError)) and is_missing_relation(exc):
        return SchemaMissing(
            f"Relation for '{collection}' does not exist; initialize the schema",
            collection=collection,
            key=key,
        )

    if isinstance(exc, asyncio.TimeoutError):
        reason = "Remote call timed out"
    elif isinstance(exc, DBAPIError):
        reason = f"Remote database error: {exc.orig!s}" if exc.orig is not None else str(exc)
    else:
        reason = f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__

    return RemoteUnavailable(reason, collection=collection, key=key)
