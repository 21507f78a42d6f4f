"""Selection API Routes - Selection mode and bulk actions on the selection.

Endpoints:
- GET    /api/selection              - Mode and selected ids
- PUT    /api/selection/mode         - Enter/leave selection mode
- POST   /api/selection/toggle/{id}  - Toggle one counter
- POST   /api/selection/all          - Select all (or clear if all selected)
- DELETE /api/selection              - Clear selection and leave mode
- POST   /api/selection/reset        - Reset selected counters, leave mode
- POST   /api/selection/delete       - Delete selected counters, leave mode
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from tallies.core.session import get_session

logger = logging.getLogger(__name__)

router = APIRouter()


class SelectionMode(BaseModel):
    """Request body for switching selection mode."""

    enabled: bool


def _selection_state() -> dict[str, Any]:
    selection = get_session().selection
    return {
        "active": selection.is_active,
        "selected": selection.selected_ids,
        "count": selection.count,
    }


@router.get("")
async def get_selection() -> dict[str, Any]:
    """Get selection mode and selected ids."""
    return _selection_state()


@router.put("/mode")
async def set_selection_mode(body: SelectionMode) -> dict[str, Any]:
    """Enter or leave selection mode. Leaving clears the selection."""
    selection = get_session().selection
    if body.enabled:
        selection.enter_selection_mode()
    else:
        selection.exit_selection_mode()
    return _selection_state()


@router.post("/toggle/{counter_id}")
async def toggle_counter(counter_id: str) -> dict[str, Any]:
    """Toggle a counter's selection.

    Raises:
        HTTPException: If the counter doesn't exist.
    """
    session = get_session()
    if counter_id not in session.repository:
        raise HTTPException(status_code=404, detail=f"Counter '{counter_id}' not found")
    session.selection.toggle(counter_id)
    return _selection_state()


@router.post("/all")
async def select_all() -> dict[str, Any]:
    """Select every counter, or clear if all are already selected."""
    get_session().select_all()
    return _selection_state()


@router.delete("")
async def clear_selection() -> dict[str, Any]:
    """Clear the selection and leave selection mode."""
    get_session().selection.clear()
    return _selection_state()


@router.post("/reset")
async def reset_selected() -> dict[str, Any]:
    """Reset every selected counter, then leave selection mode."""
    reset_ids = get_session().reset_selected()
    logger.info("Reset %d selected counters", len(reset_ids))
    return {"message": f"Reset {len(reset_ids)} counters", "ids": reset_ids}


@router.post("/delete")
async def delete_selected() -> dict[str, Any]:
    """Delete every selected counter, then leave selection mode."""
    deleted = get_session().delete_selected()
    logger.info("Deleted %d selected counters", len(deleted))
    return {
        "message": f"Deleted {len(deleted)} counters",
        "ids": [c.id for c in deleted],
    }
