"""
Admin API Endpoints

Schema initialization and explicit reconciliation of pending local writes.
"""

import asyncio
from typing import Any, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from pillowstore.context import StoreContext
from pillowstore.database.errors import translate_remote_error
from pillowstore.database.schema import initialize_schema, missing_tables
from pillowstore.serving.api.dependencies import get_context

router = APIRouter()


class SchemaStatus(BaseModel):
    missing: List[str]
    created: List[str] = []


class ReconcileResponse(BaseModel):
    connectivity: str
    pushed: List[str]
    failed: List[str]
    skipped: List[str]
    complete: bool
    error: Optional[str] = None


async def _remote_call(context: StoreContext, coro) -> Any:
    try:
        return await asyncio.wait_for(coro, context.client.timeout)
    except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
        raise translate_remote_error(e, collection="schema") from e


@router.get("/schema", response_model=SchemaStatus)
async def schema_status(context: StoreContext = Depends(get_context)) -> Any:
    """Collections missing on the remote service."""
    return SchemaStatus(missing=await _remote_call(context, missing_tables(context.client)))


@router.post("/schema", response_model=SchemaStatus)
async def create_schema(context: StoreContext = Depends(get_context)) -> Any:
    """
    Create the missing collections.

    The cached connectivity verdict is dropped so the next operation sees
    the new schema.
    """
    created = await _remote_call(context, initialize_schema(context.client))
    context.monitor.mark_online()
    return SchemaStatus(missing=[], created=created)


@router.post("/reconcile", response_model=ReconcileResponse)
async def reconcile(
    collection: Optional[str] = None,
    context: StoreContext = Depends(get_context),
) -> Any:
    """Push pending local writes to the remote service once."""
    report = await context.coordinator.reconcile(collection)
    return ReconcileResponse(
        connectivity=report.verdict.status.value,
        pushed=report.pushed,
        failed=report.failed,
        skipped=report.skipped,
        complete=report.complete,
        error=report.error,
    )
