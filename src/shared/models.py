from pydantic import BaseModel, Field, StrictInt
from typing import Optional


# ── Listening time ─────────────────────────────────────────────────────────────

class ListeningReport(BaseModel):
    """Seconds accumulated client-side since the last confirmed report."""

    user_id: str = Field(min_length=1, max_length=128)
    seconds: StrictInt = Field(gt=0)
    report_id: Optional[str] = Field(default=None, min_length=1, max_length=128)  # idempotency token


class ListeningReportResponse(BaseModel):
    success: bool = True
    accepted: bool
    total_seconds: int
    milestones: list[int] = []     # thresholds (hours) newly recorded by this report
    duplicate: bool = False        # report_id was already applied


# ── Milestones ─────────────────────────────────────────────────────────────────

class MilestoneEvent(BaseModel):
    """Mirrors the stored milestone item; field names are camelCase to match storage."""

    id: str
    listenerId: Optional[str] = None
    nickname: Optional[str] = None
    avatarUrl: Optional[str] = None
    kind: str                      # "listening_hours" | "pwa_installed" | "first_signup" | ...
    value: Optional[int] = None    # threshold for parameterized kinds
    metadata: dict = {}
    createdAt: str                 # ISO datetime, server-assigned


class MilestoneFeed(BaseModel):
    milestones: list[MilestoneEvent]


class MilestoneCreate(BaseModel):
    user_id: Optional[str] = None  # None for system events (e.g. station-wide counts)
    nickname: Optional[str] = None
    avatar_url: Optional[str] = None
    milestone_type: str = Field(min_length=1, max_length=64)
    value: Optional[int] = None
    metadata: dict = {}


class BackfillResponse(BaseModel):
    listeners: int
    created: int


# ── Listener profile ───────────────────────────────────────────────────────────

class ListenerProfileUpsert(BaseModel):
    user_id: str = Field(min_length=1, max_length=128)
    email: str = Field(min_length=3)
    nickname: str = Field(min_length=1, max_length=64)
    avatar_url: Optional[str] = None


class PwaInstall(BaseModel):
    user_id: str = Field(min_length=1, max_length=128)
    nickname: Optional[str] = None
    avatar_url: Optional[str] = None


class LeaderboardEntry(BaseModel):
    listenerId: str
    nickname: Optional[str] = None
    avatarUrl: Optional[str] = None
    totalSeconds: int
