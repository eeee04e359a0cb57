"""
Habit Reminder Service.

Fans a reminder run out over every stored push subscription.

Features:
- Incomplete-habit detection per subscriber for the current (UTC) day
- Test mode that sends a fixed diagnostic payload to everyone
- Bounded parallel dispatch with per-subscription error isolation
- Expired subscription cleanup (404/410 from the push service)
"""

import asyncio
import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from habitpush.core.metrics import record_reminder_outcome, record_reminder_run
from habitpush.services.push.models import (
    DeliveryStatus,
    NotificationPayload,
    PushSubscriptionInfo,
    build_reminder_payload,
    build_test_payload,
)
from habitpush.services.push.webpush_provider import WebPushProvider
from habitpush.services.stores import HabitStore, SubscriptionStore

logger = logging.getLogger(__name__)

# Default concurrency limit for parallel delivery
DEFAULT_CONCURRENCY = 20


class ReminderStatus(str, Enum):
    """Outcome for one subscription within a reminder run."""

    SENT = "sent"
    SKIPPED = "skipped"
    DELETED = "deleted"
    ERROR = "error"


@dataclass
class ReminderResult:
    """Result for a single subscription."""

    subscription_id: str
    user_id: str
    status: ReminderStatus
    reason: Optional[str] = None
    error: Optional[str] = None
    status_code: Optional[int] = None
    incomplete_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {k: v for k, v in asdict(self).items() if v is not None}
        data["status"] = self.status.value
        return data


@dataclass
class ReminderRunResult:
    """Aggregated result of one reminder run, in subscription order."""

    test_mode: bool
    results: List[ReminderResult] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def count(self, status: ReminderStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "test": self.test_mode,
            "results": [r.to_dict() for r in self.results],
        }


class ReminderService:
    """
    Sends habit reminders (or test notifications) to all subscriptions.

    Usage:
        service = ReminderService(SqlSubscriptionStore(db), SqlHabitStore(db), provider)
        run = await service.send_reminders()
        print(run.to_dict())
    """

    def __init__(
        self,
        subscription_store: SubscriptionStore,
        habit_store: HabitStore,
        provider: WebPushProvider,
        concurrency: int = DEFAULT_CONCURRENCY,
        icon_url: Optional[str] = None,
        url: str = "/",
    ):
        """
        Args:
            subscription_store: Source of push subscriptions; expired ones are deleted here
            habit_store: Source of habits and check-ins
            provider: Web Push provider used for delivery
            concurrency: Maximum concurrent deliveries
            icon_url: Icon/badge shown with the notification
            url: Page opened when the notification is clicked
        """
        self.subscription_store = subscription_store
        self.habit_store = habit_store
        self.provider = provider
        self.concurrency = max(1, concurrency)
        self.icon_url = icon_url
        self.url = url

    async def send_reminders(
        self,
        test_mode: bool = False,
        day: Optional[date] = None,
        reminder_hour: Optional[int] = None,
    ) -> ReminderRunResult:
        """
        Run one reminder pass over every subscription.

        Args:
            test_mode: Send the diagnostic payload to every subscription
            day: Day to evaluate habits for (defaults to today, UTC)
            reminder_hour: Only remind about habits whose reminder_time falls in this hour

        Returns:
            ReminderRunResult with one entry per subscription

        Raises:
            Exception: whatever the subscription store raises while listing
        """
        mode = "test" if test_mode else "reminder"
        day = day or datetime.now(timezone.utc).date()
        start_time = time.time()

        try:
            subscriptions = self.subscription_store.list_subscriptions()
        except Exception:
            record_reminder_run(mode, "failed")
            logger.error("Failed to load push subscriptions", exc_info=True)
            raise

        semaphore = asyncio.Semaphore(self.concurrency)

        async def process_with_semaphore(subscription) -> ReminderResult:
            async with semaphore:
                return await self._process_subscription(subscription, test_mode, day, reminder_hour)

        outcomes = await asyncio.gather(
            *[process_with_semaphore(s) for s in subscriptions],
            return_exceptions=True,
        )

        run = ReminderRunResult(test_mode=test_mode)
        for subscription, outcome in zip(subscriptions, outcomes):
            if isinstance(outcome, Exception):
                logger.error(
                    f"Error processing subscription {subscription.id}: {outcome}",
                    exc_info=outcome,
                )
                outcome = ReminderResult(
                    subscription_id=subscription.id,
                    user_id=subscription.user_id,
                    status=ReminderStatus.ERROR,
                    error=str(outcome) or type(outcome).__name__,
                )
            record_reminder_outcome(outcome.status.value)
            run.results.append(outcome)

        record_reminder_run(mode, "completed")
        logger.info(
            "Reminder run complete",
            extra={
                "mode": mode,
                "day": day.isoformat(),
                "total": len(run.results),
                "sent": run.count(ReminderStatus.SENT),
                "skipped": run.count(ReminderStatus.SKIPPED),
                "deleted": run.count(ReminderStatus.DELETED),
                "errors": run.count(ReminderStatus.ERROR),
                "duration_ms": int((time.time() - start_time) * 1000),
            }
        )
        return run

    async def _process_subscription(
        self,
        subscription,
        test_mode: bool,
        day: date,
        reminder_hour: Optional[int],
    ) -> ReminderResult:
        """Decide what to send to one subscription, send it and clean up if expired."""
        incomplete_count = None

        if test_mode:
            payload: NotificationPayload = build_test_payload(icon=self.icon_url, url=self.url)
        else:
            habits = self.habit_store.get_reminder_habits(subscription.user_id, day, reminder_hour)
            if not habits:
                return self._skipped(subscription, "no_active_habits")

            completed = self.habit_store.get_completed_habit_ids([h.id for h in habits], day)
            incomplete = [h for h in habits if h.id not in completed]
            if not incomplete:
                return self._skipped(subscription, "all_complete")

            incomplete_count = len(incomplete)
            payload = build_reminder_payload(
                [h.title for h in incomplete],
                habit_ids=[h.id for h in incomplete],
                icon=self.icon_url,
                url=self.url,
            )

        info = PushSubscriptionInfo(
            endpoint=subscription.endpoint,
            p256dh=subscription.p256dh_key,
            auth=subscription.auth_key,
        )
        delivery = await self.provider.send(info, payload)

        if delivery.success:
            self.subscription_store.mark_delivered(subscription.id)
            return ReminderResult(
                subscription_id=subscription.id,
                user_id=subscription.user_id,
                status=ReminderStatus.SENT,
                incomplete_count=incomplete_count,
            )

        if delivery.status == DeliveryStatus.EXPIRED:
            self.subscription_store.delete_subscription(subscription.id)
            logger.info(
                "Removed expired push subscription",
                extra={
                    "subscription_id": subscription.id,
                    "user_id": subscription.user_id,
                    "status_code": delivery.status_code,
                }
            )
            return ReminderResult(
                subscription_id=subscription.id,
                user_id=subscription.user_id,
                status=ReminderStatus.DELETED,
                reason="expired",
                status_code=delivery.status_code,
            )

        return ReminderResult(
            subscription_id=subscription.id,
            user_id=subscription.user_id,
            status=ReminderStatus.ERROR,
            error=delivery.error,
            status_code=delivery.status_code,
        )

    @staticmethod
    def _skipped(subscription, reason: str) -> ReminderResult:
        logger.debug(
            f"Skipping subscription {subscription.id}: {reason}",
            extra={"user_id": subscription.user_id}
        )
        return ReminderResult(
            subscription_id=subscription.id,
            user_id=subscription.user_id,
            status=ReminderStatus.SKIPPED,
            reason=reason,
        )
