"""Listening-time reports — POST /api/radio/listening-time.

The player pings every 2 minutes while playing and once more on pause/unload
(via sendBeacon, whose response is never read). Clients keep the accumulated
seconds until a report returns 200.
"""

from fastapi import APIRouter, HTTPException, status

from shared.accrual import report_listening
from shared.errors import InvalidReportError, StoreUnavailableError
from shared.models import ListeningReport, ListeningReportResponse

router = APIRouter()


@router.post("/api/radio/listening-time", response_model=ListeningReportResponse)
def post_listening_time(report: ListeningReport):
    try:
        result = report_listening(report.user_id, report.seconds, report_id=report.report_id)
    except InvalidReportError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except StoreUnavailableError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Listening time could not be saved, retry with the same seconds",
        )

    return ListeningReportResponse(
        accepted=result.accepted,
        total_seconds=result.total_seconds,
        milestones=result.milestones,
        duplicate=result.duplicate,
    )
