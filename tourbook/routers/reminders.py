from fastapi import APIRouter, Depends, Request
import logging

from ..schemas.booking import ReminderResultResponse
from ..services.reminder_job import ReminderJob
from ..utils.dependencies import get_reminder_job, verify_cron_secret
from ..utils.rate_limiter import limiter, get_rate_limit

logger = logging.getLogger(__name__)

# Shares the bookings prefix; must be included before the bookings router so
# "/reminders" is not captured by "/{booking_id}".
router = APIRouter(prefix="/api/bookings", tags=["Reminders"])


@router.get("/reminders", response_model=ReminderResultResponse, dependencies=[Depends(verify_cron_secret)])
@limiter.limit(get_rate_limit("reminders"))
async def send_booking_reminders(
    request: Request,
    job: ReminderJob = Depends(get_reminder_job)
):
    """
    Send "your tour is tomorrow" e-mails. Called by an external scheduler with
    ``Authorization: Bearer <CRON_SECRET>``.
    """
    result = await job.run()
    return ReminderResultResponse(**result.to_dict())
