"""Listener profile, leaderboard and PWA install tracking.

  GET  /api/radio/listener-profile?user_id=   profile or null
  POST /api/radio/listener-profile            register / update nickname + avatar
  GET  /api/radio/leaderboard                 top listeners by listening time
  POST /api/radio/track-pwa-install           one-time pwa_installed milestone
"""

from fastapi import APIRouter, HTTPException, Query, Response, status

from shared.errors import StoreUnavailableError
from shared.listeners import get_listener, leaderboard, nickname_owner, upsert_profile
from shared.milestones import FIRST_SIGNUP, PWA_INSTALLED, record_milestone
from shared.models import LeaderboardEntry, ListenerProfileUpsert, PwaInstall

router = APIRouter()


def _unavailable() -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Storage unavailable")


@router.get("/api/radio/listener-profile")
def get_profile(response: Response, user_id: str = Query(min_length=1)):
    try:
        item = get_listener(user_id)
    except StoreUnavailableError:
        raise _unavailable()

    response.headers["Cache-Control"] = "s-maxage=300, stale-while-revalidate=60"
    return item


@router.post("/api/radio/listener-profile")
def post_profile(profile: ListenerProfileUpsert):
    try:
        owner = nickname_owner(profile.nickname)
        if owner and owner != profile.user_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="nickname_taken")

        item, first_registration = upsert_profile(
            profile.user_id, profile.email, profile.nickname, profile.avatar_url
        )
        if first_registration:
            record_milestone(profile.user_id, profile.nickname, profile.avatar_url, FIRST_SIGNUP)
    except StoreUnavailableError:
        raise _unavailable()

    return item


@router.get("/api/radio/leaderboard", response_model=list[LeaderboardEntry])
def get_leaderboard(response: Response, limit: int = Query(default=10, ge=1, le=100)):
    try:
        entries = leaderboard(limit)
    except StoreUnavailableError:
        raise _unavailable()

    response.headers["Cache-Control"] = "s-maxage=300, stale-while-revalidate=60"
    return entries


@router.post("/api/radio/track-pwa-install")
def track_pwa_install(install: PwaInstall):
    try:
        _, created = record_milestone(install.user_id, install.nickname, install.avatar_url, PWA_INSTALLED)
    except StoreUnavailableError:
        raise _unavailable()

    if not created:
        return {"success": True, "already_tracked": True}
    return {"success": True}
