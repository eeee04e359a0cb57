"""PushSubscription SQLAlchemy ORM model for browser Web Push subscriptions"""
from sqlalchemy import Column, String, Text, DateTime
from habitpush.core.database import Base
import uuid
from datetime import datetime, timezone


class PushSubscription(Base):
    """
    A browser's Web Push subscription.

    Rows are written by the client application; this service reads them,
    stamps last_used_at on delivery and deletes the ones the push service
    reports as gone (HTTP 404/410).

    Attributes:
        id: UUID primary key
        user_id: Owner of the subscription
        endpoint: Push service URL the notification is POSTed to
        p256dh_key: base64url encoded P-256 public key of the browser
        auth_key: base64url encoded 16-byte authentication secret
        user_agent: Browser user agent at subscription time
        created_at: Record creation timestamp (UTC)
        last_used_at: Last successful delivery timestamp (UTC), set by the reminder run
    """

    __tablename__ = "push_subscriptions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=False, index=True)
    endpoint = Column(Text, nullable=False, unique=True)
    p256dh_key = Column(String(255), nullable=False)
    auth_key = Column(String(255), nullable=False)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    last_used_at = Column(DateTime(timezone=True), nullable=True)

    def get_subscription_info(self) -> dict:
        """Return the subscription in the browser's PushSubscription.toJSON() shape."""
        return {
            "endpoint": self.endpoint,
            "keys": {
                "p256dh": self.p256dh_key,
                "auth": self.auth_key,
            },
        }

    def __repr__(self):
        return f"<PushSubscription(id={self.id}, user_id={self.user_id}, endpoint={self.endpoint[:40]}...)>"
