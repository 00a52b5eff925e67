"""Admin routes for the milestone log — POST /api/admin/milestones[/backfill]."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from shared.auth import verify_admin_token
from shared.errors import StoreUnavailableError
from shared.listeners import iter_listeners
from shared.milestones import (
    LISTENING_HOURS,
    PARAMETERIZED_KINDS,
    passed_thresholds,
    record_milestone,
)
from shared.models import BackfillResponse, MilestoneCreate, MilestoneEvent

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/admin/milestones", status_code=status.HTTP_201_CREATED, response_model=MilestoneEvent)
def create_milestone(req: MilestoneCreate, _: str = Depends(verify_admin_token)):
    """Post a custom or system event (e.g. station-wide listener counts) to the feed."""
    if req.milestone_type in PARAMETERIZED_KINDS and req.value is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"milestone_type '{req.milestone_type}' requires a value",
        )
    if req.milestone_type in PARAMETERIZED_KINDS and not req.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"milestone_type '{req.milestone_type}' requires a user_id",
        )

    try:
        event, created = record_milestone(
            req.user_id,
            req.nickname,
            req.avatar_url,
            req.milestone_type,
            value=req.value,
            metadata=req.metadata,
        )
    except StoreUnavailableError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Storage unavailable")

    if not created:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Milestone already recorded")
    return event


@router.post("/api/admin/milestones/backfill", response_model=BackfillResponse)
def backfill_listening_milestones(_: str = Depends(verify_admin_token)):
    """
    Record every hour threshold each listener has already passed.

    Safe to re-run: listening_hours milestones are unique per listener and threshold.
    """
    listeners = 0
    created = 0
    try:
        for listener in iter_listeners():
            listeners += 1
            for threshold in passed_thresholds(int(listener.get("totalSeconds", 0))):
                _, was_created = record_milestone(
                    listener["listenerId"],
                    listener.get("nickname"),
                    listener.get("avatarUrl"),
                    LISTENING_HOURS,
                    value=threshold,
                )
                created += was_created
    except StoreUnavailableError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Storage unavailable")

    logger.info("Backfill scanned %d listeners, created %d milestones", listeners, created)
    return BackfillResponse(listeners=listeners, created=created)
