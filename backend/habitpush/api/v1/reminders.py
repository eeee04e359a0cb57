"""
Reminder trigger endpoint

- POST /api/v1/reminders/send - Run the habit reminder job now

Body (optional): {"test": true} sends a fixed diagnostic notification to
every subscription instead of habit reminders.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from habitpush.core.config import settings
from habitpush.core.database import get_db
from habitpush.services.push.exceptions import VapidConfigurationError
from habitpush.services.push.webpush_provider import WebPushProvider
from habitpush.services.reminder_service import ReminderRunResult, ReminderService
from habitpush.services.stores import SqlHabitStore, SqlSubscriptionStore
from habitpush.utils.vapid import load_vapid_key_pair

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/reminders",
    tags=["reminders"]
)


class SendRemindersRequest(BaseModel):
    """Request body for a reminder run."""
    test: bool = Field(False, description="Send a diagnostic notification to every subscription")


async def run_reminders(db: Session, test_mode: bool = False) -> ReminderRunResult:
    """
    Run the reminder job against the given session.

    Raises:
        VapidConfigurationError: keys missing or invalid
        Exception: subscription store failures
    """
    key_pair = load_vapid_key_pair(settings)
    async with WebPushProvider.from_settings(settings, key_pair) as provider:
        service = ReminderService(
            subscription_store=SqlSubscriptionStore(db),
            habit_store=SqlHabitStore(db),
            provider=provider,
            concurrency=settings.REMINDER_CONCURRENCY,
            icon_url=settings.REMINDER_ICON_URL,
            url=settings.REMINDER_URL,
        )
        return await service.send_reminders(test_mode=test_mode)


@router.post("/send")
async def send_reminders(
    request: Optional[SendRemindersRequest] = Body(None),
    db: Session = Depends(get_db),
):
    """
    Send habit reminders to every push subscription.

    **Response:**
    ```json
    {
        "success": true,
        "test": false,
        "results": [
            {"subscription_id": "...", "user_id": "...", "status": "sent", "incomplete_count": 2},
            {"subscription_id": "...", "user_id": "...", "status": "skipped", "reason": "all_complete"},
            {"subscription_id": "...", "user_id": "...", "status": "deleted", "reason": "expired"}
        ]
    }
    ```

    **Status Codes:**
    - 200: Run completed (individual deliveries may still have failed)
    - 500: VAPID keys missing/invalid or subscriptions could not be loaded
    """
    test_mode = bool(request and request.test)

    try:
        run = await run_reminders(db, test_mode=test_mode)
    except VapidConfigurationError as e:
        logger.error(f"Reminder run aborted, VAPID not configured: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})
    except Exception as e:
        logger.error(f"Reminder run failed: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(e)})

    return run.to_dict()
