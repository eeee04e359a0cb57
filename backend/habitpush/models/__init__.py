"""SQLAlchemy ORM models"""
from habitpush.models.push_subscription import PushSubscription
from habitpush.models.habit import Habit, DailyCheckIn

__all__ = [
    "PushSubscription",
    "Habit",
    "DailyCheckIn",
]
