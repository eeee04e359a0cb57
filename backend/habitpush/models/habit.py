"""Habit and DailyCheckIn SQLAlchemy ORM models (read-only from the reminder job)"""
from sqlalchemy import Column, String, Text, Boolean, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from habitpush.core.database import Base
import uuid
from datetime import datetime, timezone


class Habit(Base):
    """
    A habit a user tracks between start_date and end_date (inclusive).

    Attributes:
        id: UUID primary key
        user_id: Owner of the habit
        title: Display title, used in reminder copy
        description: Optional longer description
        start_date: First day the habit is active
        end_date: Last day the habit is active
        color: UI color token
        is_active: False once the user archives the habit
        reminder_enabled: Whether the user wants push reminders for it
        reminder_time: Preferred reminder time "HH:MM" (only used when
            the reminder job filters by hour)
    """

    __tablename__ = "habits"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    color = Column(String(20), nullable=False, default="green")
    is_active = Column(Boolean, nullable=False, default=True)
    reminder_enabled = Column(Boolean, nullable=False, default=True)
    reminder_time = Column(String(5), nullable=True)  # "HH:MM" format, e.g., "20:00"
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    check_ins = relationship("DailyCheckIn", back_populates="habit", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Habit(id={self.id}, title={self.title}, user_id={self.user_id})>"


class DailyCheckIn(Base):
    """A completion of a habit on a given date (at most one per habit per day)."""

    __tablename__ = "daily_check_ins"
    __table_args__ = (
        UniqueConstraint("habit_id", "check_in_date", name="uq_check_in_habit_date"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    habit_id = Column(String(36), ForeignKey("habits.id", ondelete="CASCADE"), nullable=False, index=True)
    check_in_date = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    habit = relationship("Habit", back_populates="check_ins")

    def __repr__(self):
        return f"<DailyCheckIn(habit_id={self.habit_id}, date={self.check_in_date})>"
