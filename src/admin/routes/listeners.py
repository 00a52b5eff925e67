"""Admin routes for listener accounts.

  POST   /api/admin/listeners/{user_id}/reset   zero the listening total (milestones are kept)
  DELETE /api/admin/listeners/{user_id}         remove the profile and its milestones
"""

from fastapi import APIRouter, Depends, HTTPException, status

from shared.auth import verify_admin_token
from shared.errors import StoreUnavailableError
from shared.listeners import delete_listener, reset_total
from shared.milestones import listener_milestone_keys

router = APIRouter()


@router.post("/api/admin/listeners/{user_id}/reset")
def reset_listener(user_id: str, _: str = Depends(verify_admin_token)):
    try:
        item = reset_total(user_id)
    except StoreUnavailableError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Storage unavailable")

    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Listener not found")
    return {"user_id": user_id, "total_seconds": item["totalSeconds"], "message": "Listening time reset"}


@router.delete("/api/admin/listeners/{user_id}")
def remove_listener(user_id: str, _: str = Depends(verify_admin_token)):
    try:
        deleted = delete_listener(user_id, listener_milestone_keys(user_id))
    except StoreUnavailableError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Storage unavailable")

    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Listener not found")
    return {"user_id": user_id, "message": "Listener deleted"}
