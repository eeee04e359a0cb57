"""
Store contracts consumed by the reminder service, with SQLAlchemy adapters.

The reminder service only needs five operations from persistence; keeping
them behind Protocols lets tests (and other backends) substitute their own.
"""

import logging
from datetime import date, datetime, timezone
from typing import List, Optional, Protocol, Sequence, Set

from sqlalchemy.orm import Session

from habitpush.models.habit import DailyCheckIn, Habit
from habitpush.models.push_subscription import PushSubscription

logger = logging.getLogger(__name__)


class SubscriptionStore(Protocol):
    def list_subscriptions(self) -> List[PushSubscription]:
        ...

    def delete_subscription(self, subscription_id: str) -> None:
        ...

    def mark_delivered(self, subscription_id: str) -> None:
        ...


class HabitStore(Protocol):
    def get_reminder_habits(self, user_id: str, day: date, reminder_hour: Optional[int] = None) -> List[Habit]:
        ...

    def get_completed_habit_ids(self, habit_ids: Sequence[str], day: date) -> Set[str]:
        ...


class SqlSubscriptionStore:
    """SubscriptionStore backed by the push_subscriptions table."""

    def __init__(self, db: Session):
        self.db = db

    def list_subscriptions(self) -> List[PushSubscription]:
        return self.db.query(PushSubscription).order_by(PushSubscription.created_at, PushSubscription.id).all()

    def delete_subscription(self, subscription_id: str) -> None:
        deleted = self.db.query(PushSubscription).filter(PushSubscription.id == subscription_id).delete()
        self.db.commit()
        logger.info(
            "Deleted push subscription",
            extra={"subscription_id": subscription_id, "deleted": deleted}
        )

    def mark_delivered(self, subscription_id: str) -> None:
        """Stamp last_used_at after a successful delivery."""
        self.db.query(PushSubscription).filter(PushSubscription.id == subscription_id).update(
            {PushSubscription.last_used_at: datetime.now(timezone.utc)}
        )
        self.db.commit()


class SqlHabitStore:
    """HabitStore backed by the habits and daily_check_ins tables."""

    def __init__(self, db: Session):
        self.db = db

    def get_reminder_habits(self, user_id: str, day: date, reminder_hour: Optional[int] = None) -> List[Habit]:
        """
        Habits of a user that are active on `day` and want reminders.

        Args:
            user_id: Owner of the habits
            day: Date the habit must be active on (start_date <= day <= end_date)
            reminder_hour: If set, only habits whose reminder_time is in this hour
        """
        query = (
            self.db.query(Habit)
            .filter(
                Habit.user_id == user_id,
                Habit.is_active.is_(True),
                Habit.reminder_enabled.is_(True),
                Habit.start_date <= day,
                Habit.end_date >= day,
            )
            .order_by(Habit.created_at, Habit.id)
        )
        habits = query.all()

        if reminder_hour is not None:
            habits = [h for h in habits if reminder_hour_of(h.reminder_time) == reminder_hour]
        return habits

    def get_completed_habit_ids(self, habit_ids: Sequence[str], day: date) -> Set[str]:
        if not habit_ids:
            return set()
        rows = (
            self.db.query(DailyCheckIn.habit_id)
            .filter(DailyCheckIn.habit_id.in_(list(habit_ids)), DailyCheckIn.check_in_date == day)
            .all()
        )
        return {row[0] for row in rows}


def reminder_hour_of(reminder_time: Optional[str]) -> Optional[int]:
    """Whole hour of an "HH:MM" reminder time, or None if unset or malformed."""
    if not reminder_time:
        return None
    hour, _, _ = reminder_time.partition(":")
    try:
        value = int(hour)
    except ValueError:
        return None
    return value if 0 <= value <= 23 else None
