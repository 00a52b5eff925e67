"""Listening-time accrual: apply a client-reported batch of seconds and detect milestones.

Clients accumulate elapsed seconds locally and only clear them once a report is
confirmed, so a report may arrive more than once. Untokened reports are
at-least-once (a lost response followed by a resend counts twice). Reports that
carry a report_id are applied exactly once.
"""

import logging
from dataclasses import dataclass, field

from shared.config import MAX_REPORT_SECONDS, MILESTONE_POLICY
from shared.errors import InvalidReportError
from shared.listeners import atomic_increment
from shared.milestones import crossed_thresholds, record_listening_milestone

logger = logging.getLogger(__name__)


@dataclass
class AccrualResult:
    accepted: bool
    total_seconds: int
    milestones: list[int] = field(default_factory=list)
    duplicate: bool = False


def validate_report(listener_id, seconds) -> None:
    if not isinstance(listener_id, str) or not listener_id.strip():
        raise InvalidReportError("user_id required")
    # bool is an int subclass, True is not one second
    if isinstance(seconds, bool) or not isinstance(seconds, int):
        raise InvalidReportError("seconds must be a positive integer")
    if seconds <= 0:
        raise InvalidReportError("seconds must be a positive integer")
    if seconds > MAX_REPORT_SECONDS:
        raise InvalidReportError(f"seconds must not exceed {MAX_REPORT_SECONDS}")


def report_listening(
    listener_id: str,
    seconds: int,
    report_id: str | None = None,
    policy: str | None = None,
) -> AccrualResult:
    """Add ``seconds`` to the listener's total and record newly crossed hour milestones.

    Raises InvalidReportError for bad input (before touching storage) or a
    report_id stored for another listener, StoreUnavailableError when the
    increment or a milestone append could not complete.
    """
    validate_report(listener_id, seconds)

    result = atomic_increment(listener_id, seconds, report_id=report_id)
    thresholds = crossed_thresholds(result.before, result.after, policy or MILESTONE_POLICY)

    # A replayed report re-records its milestones too; appends are unique so this
    # only fills in what a failed first attempt left out.
    listener = result.listener
    for threshold in thresholds:
        record_listening_milestone(
            listener_id,
            listener.get("nickname"),
            listener.get("avatarUrl"),
            threshold,
        )

    logger.info(
        "Listener %s +%ds: %d -> %d%s",
        listener_id,
        seconds,
        result.before,
        result.after,
        f" (milestones {thresholds})" if thresholds else "",
    )
    return AccrualResult(
        accepted=True,
        total_seconds=result.after,
        milestones=thresholds,
        duplicate=result.duplicate,
    )
