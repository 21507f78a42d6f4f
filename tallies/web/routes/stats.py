"""Statistics API Routes.

Endpoints:
- GET /api/stats - Totals, today's activity and leaders
"""

from typing import Any

from fastapi import APIRouter

from tallies.core.session import get_session

router = APIRouter()


@router.get("")
async def get_statistics() -> dict[str, Any]:
    """Compute statistics over the current collection."""
    return get_session().statistics().to_dict()
