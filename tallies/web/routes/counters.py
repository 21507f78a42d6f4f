"""Counters API Routes - CRUD and tally operations.

Endpoints:
- GET    /api/counters                  - List counters (optional search/sort)
- POST   /api/counters                  - Create counter
- PUT    /api/counters/order            - Reorder counters
- POST   /api/counters/bulk/reset       - Reset several counters
- POST   /api/counters/bulk/delete      - Delete several counters
- GET    /api/counters/undo             - Undo slot status
- POST   /api/counters/undo             - Restore last deleted counter
- GET    /api/counters/{id}             - Get counter
- PUT    /api/counters/{id}             - Edit counter (name/target/color/count)
- DELETE /api/counters/{id}             - Delete counter (undoable)
- POST   /api/counters/{id}/increment   - Increment by amount (default 1)
- POST   /api/counters/{id}/decrement   - Decrement by amount (default 1)
- POST   /api/counters/{id}/reset       - Reset count and history
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from tallies.core.display import SORT_KEYS, filter_counters, sort_counters
from tallies.core.models import Counter
from tallies.core.session import get_session
from tallies.core.validation import ValidationError
from tallies.web.websocket.manager import broadcast_undo_available

logger = logging.getLogger(__name__)

router = APIRouter()


class CounterCreate(BaseModel):
    """Request body for creating a counter."""

    name: str
    target: int | None = None
    color: str | None = None


class CounterUpdate(BaseModel):
    """Request body for editing a counter. Omitted fields are unchanged."""

    name: str | None = None
    target: int | None = None  # explicit null clears the goal
    color: str | None = None
    count: int | None = None


class AmountBody(BaseModel):
    """Request body for increment/decrement."""

    amount: int = 1


class IdList(BaseModel):
    """Request body carrying counter ids."""

    ids: list[str]


def _counter_or_404(counter: Counter | None, counter_id: str) -> dict[str, Any]:
    """Serialize a counter, or raise 404 if the operation found nothing.

    Raises:
        HTTPException: If counter is None.
    """
    if counter is None:
        raise HTTPException(status_code=404, detail=f"Counter '{counter_id}' not found")
    return counter.to_dict()


@router.get("")
async def list_counters(q: str | None = None, sort: str = "manual") -> list[dict[str, Any]]:
    """List counters in display order.

    Args:
        q: Optional case-insensitive name filter.
        sort: One of manual, name, count, progress, recent.

    Raises:
        HTTPException: If sort is unknown.
    """
    if sort not in SORT_KEYS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid sort '{sort}'. Must be one of: {', '.join(SORT_KEYS)}",
        )
    counters = get_session().repository.get_all()
    counters = sort_counters(filter_counters(counters, q), sort)
    return [c.to_dict() for c in counters]


@router.post("", status_code=201)
async def create_counter(body: CounterCreate) -> dict[str, Any]:
    """Create a counter.

    Raises:
        HTTPException: If name, target or color is invalid.
    """
    try:
        counter = get_session().add_counter(body.name, target=body.target, color=body.color)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return counter.to_dict()


@router.put("/order")
async def reorder_counters(body: IdList) -> dict[str, Any]:
    """Set a new display order.

    Raises:
        HTTPException: If ids are not a permutation of existing counters.
    """
    try:
        get_session().repository.reorder(body.ids)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Counters reordered", "ids": body.ids}


@router.post("/bulk/reset")
async def reset_many(body: IdList) -> dict[str, Any]:
    """Reset several counters in one write."""
    reset_ids = get_session().repository.reset_many(body.ids)
    return {"message": f"Reset {len(reset_ids)} counters", "ids": reset_ids}


@router.post("/bulk/delete")
async def delete_many(body: IdList) -> dict[str, Any]:
    """Delete several counters in one write. Not undoable."""
    deleted = get_session().delete_counters(body.ids)
    return {
        "message": f"Deleted {len(deleted)} counters",
        "ids": [c.id for c in deleted],
    }


@router.get("/undo")
async def undo_status() -> dict[str, Any]:
    """Report whether a deleted counter can be restored."""
    undo = get_session().undo
    pending = undo.pending
    return {
        "available": pending is not None,
        "counter": pending.to_dict() if pending else None,
        "remaining_ms": undo.remaining_ms(),
    }


@router.post("/undo")
async def undo_delete() -> dict[str, Any]:
    """Restore the last deleted counter.

    Raises:
        HTTPException: If nothing is pending.
    """
    counter = get_session().undo_delete()
    if counter is None:
        raise HTTPException(status_code=404, detail="Nothing to undo")
    return counter.to_dict()


@router.get("/{counter_id}")
async def get_counter(counter_id: str) -> dict[str, Any]:
    """Get one counter."""
    return _counter_or_404(get_session().repository.get(counter_id), counter_id)


@router.put("/{counter_id}")
async def update_counter(counter_id: str, body: CounterUpdate) -> dict[str, Any]:
    """Edit a counter.

    Raises:
        HTTPException: If a value is invalid or the counter doesn't exist.
    """
    changes = body.model_dump(exclude_unset=True)
    try:
        counter = get_session().edit_counter(counter_id, **changes)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _counter_or_404(counter, counter_id)


@router.delete("/{counter_id}")
async def delete_counter(counter_id: str) -> dict[str, Any]:
    """Delete a counter. It can be restored until the undo window closes.

    Raises:
        HTTPException: If the counter doesn't exist.
    """
    session = get_session()
    counter = session.delete_counter(counter_id)
    if counter is None:
        raise HTTPException(status_code=404, detail=f"Counter '{counter_id}' not found")

    remaining = session.undo.remaining_ms()
    broadcast_undo_available(counter.id, counter.name, remaining)
    return {
        "message": f"Counter '{counter.name}' deleted",
        "counter": counter.to_dict(),
        "undo_ms": remaining,
    }


@router.post("/{counter_id}/increment")
async def increment_counter(counter_id: str, body: AmountBody | None = None) -> dict[str, Any]:
    """Increment a counter.

    Raises:
        HTTPException: If amount is not positive or the counter doesn't exist.
    """
    amount = body.amount if body else 1
    try:
        counter = get_session().increment(counter_id, amount)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _counter_or_404(counter, counter_id)


@router.post("/{counter_id}/decrement")
async def decrement_counter(counter_id: str, body: AmountBody | None = None) -> dict[str, Any]:
    """Decrement a counter (never below zero).

    Raises:
        HTTPException: If amount is not positive or the counter doesn't exist.
    """
    amount = body.amount if body else 1
    try:
        counter = get_session().decrement(counter_id, amount)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _counter_or_404(counter, counter_id)


@router.post("/{counter_id}/reset")
async def reset_counter(counter_id: str) -> dict[str, Any]:
    """Reset a counter's count and history."""
    return _counter_or_404(get_session().repository.reset(counter_id), counter_id)
