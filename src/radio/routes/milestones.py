"""Public milestone feed — GET /api/radio/milestones.

The activity feed polls with ?since=<createdAt of the newest event it has>.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Response, status

from shared.errors import StoreUnavailableError
from shared.milestones import list_milestones
from shared.models import MilestoneFeed

router = APIRouter()


@router.get("/api/radio/milestones", response_model=MilestoneFeed)
def get_milestones(
    response: Response,
    limit: int = Query(default=30, ge=1, le=100),
    since: Optional[str] = None,
):
    try:
        events = list_milestones(since=since, limit=limit)
    except StoreUnavailableError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Feed unavailable")

    response.headers["Cache-Control"] = "s-maxage=20, stale-while-revalidate=30"
    return {"milestones": events}
