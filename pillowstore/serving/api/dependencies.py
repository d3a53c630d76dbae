"""
API Dependencies

Access to the store context held on the application state, and the
response headers that carry the sync outcome to the UI layer.
"""

from typing import Any, Optional

from fastapi import HTTPException, Request, Response

from pillowstore.context import StoreContext
from pillowstore.sync.coordinator import SyncResult


def get_context(request: Request) -> StoreContext:
    return request.app.state.context


def sync_headers(result: SyncResult[Any]) -> dict:
    headers = {"X-Sync-Outcome": result.outcome.value}
    if result.verdict is not None:
        headers["X-Connectivity"] = result.verdict.status.value
    return headers


def apply_sync(response: Response, result: SyncResult[Any]) -> Any:
    """Copy the sync outcome onto the response and return the value"""
    response.headers.update(sync_headers(result))
    return result.value


def require(result: SyncResult[Any], response: Response, what: str) -> Any:
    """Value of a single-entity read, 404 when neither store has it"""
    value: Optional[Any] = result.value
    if value is None:
        detail = f"{what} not found"
        if result.degraded and result.message:
            detail = f"{detail} (offline: {result.message})"
        raise HTTPException(status_code=404, detail=detail, headers=sync_headers(result))
    return apply_sync(response, result)
