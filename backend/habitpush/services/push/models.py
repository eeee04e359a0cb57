"""
Models for Web Push delivery.

Subscriptions are validated with pydantic; delivery results are plain
dataclasses. Notification payloads form a small tagged union
(``ReminderPayload`` / ``TestPayload``) that serializes to the JSON shape
the service worker reads.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Sequence, Union

from pydantic import BaseModel, Field, field_validator

from habitpush.services.push.constants import SUBSCRIPTION_GONE_STATUS_CODES

REMINDER_TITLE = "🌱 Don't forget your habits!"
REMINDER_TAG = "habit-reminder"
TEST_TITLE = "🔔 Test notification"
TEST_BODY = "Push notifications are working!"
TEST_TAG = "habit-test"

# Titles listed by name before collapsing into "+N more"
MAX_LISTED_TITLES = 2


class DeliveryStatus(str, Enum):
    """Delivery status for a single push request."""

    SUCCESS = "success"
    EXPIRED = "expired"  # 404/410, subscription is gone
    FAILED = "failed"  # any other non-2xx response
    ERROR = "error"  # exception before or during the request


@dataclass
class DeliveryResult:
    """Result of a push notification delivery attempt."""

    endpoint: str
    success: bool
    status: DeliveryStatus = DeliveryStatus.FAILED
    status_code: Optional[int] = None
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def subscription_gone(self) -> bool:
        """True when the push service reported the subscription as expired."""
        return self.status == DeliveryStatus.EXPIRED or self.status_code in SUBSCRIPTION_GONE_STATUS_CODES


class PushSubscriptionInfo(BaseModel):
    """A browser push subscription as needed for delivery.

    Attributes:
        endpoint: Push service URL
        p256dh: base64url P-256 public key of the browser
        auth: base64url 16-byte authentication secret
    """

    endpoint: str = Field(..., min_length=1, description="Push service endpoint URL")
    p256dh: str = Field(..., min_length=1, description="Browser public key (base64url)")
    auth: str = Field(..., min_length=1, description="Authentication secret (base64url)")

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        """Endpoints must be absolute http(s) URLs."""
        if not v.startswith(("https://", "http://")):
            raise ValueError("Endpoint must be an http(s) URL")
        return v

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PushSubscriptionInfo":
        """Build from the browser's ``{endpoint, keys: {p256dh, auth}}`` shape."""
        keys = data.get("keys") or {}
        return cls(endpoint=data.get("endpoint", ""), p256dh=keys.get("p256dh", ""), auth=keys.get("auth", ""))


class NotificationData(BaseModel):
    """The ``data`` object handed to the service worker's click handler."""

    url: str = "/"
    type: str = "reminder"
    habit_ids: Optional[List[str]] = None
    incomplete_count: Optional[int] = None


class _BasePayload(BaseModel):
    title: str
    body: str
    icon: Optional[str] = None
    badge: Optional[str] = None
    tag: Optional[str] = None
    data: NotificationData = Field(default_factory=NotificationData)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the dict the service worker reads (without the union tag)."""
        return self.model_dump(exclude={"kind"}, exclude_none=True)

    def to_json(self) -> str:
        """Serialize to compact JSON, keeping non-ASCII characters as-is."""
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))


class ReminderPayload(_BasePayload):
    """Reminder about habits not yet checked in today."""

    kind: Literal["reminder"] = "reminder"
    title: str = REMINDER_TITLE
    tag: Optional[str] = REMINDER_TAG


class TestPayload(_BasePayload):
    """Fixed diagnostic payload sent in test mode."""

    kind: Literal["test"] = "test"
    title: str = TEST_TITLE
    body: str = TEST_BODY
    tag: Optional[str] = TEST_TAG


NotificationPayload = Union[ReminderPayload, TestPayload]


def reminder_body(titles: Sequence[str]) -> str:
    """
    Build the human-readable reminder body.

    One habit:   "Don't forget: Read"
    Several:     "Read, Run +1 more - Keep your streak going!"
    """
    if not titles:
        raise ValueError("At least one habit title is required")
    if len(titles) == 1:
        return f"Don't forget: {titles[0]}"

    listed = ", ".join(titles[:MAX_LISTED_TITLES])
    remaining = len(titles) - MAX_LISTED_TITLES
    if remaining > 0:
        listed = f"{listed} +{remaining} more"
    return f"{listed} - Keep your streak going!"


def build_reminder_payload(
    titles: Sequence[str],
    habit_ids: Optional[Sequence[str]] = None,
    icon: Optional[str] = None,
    url: str = "/",
) -> ReminderPayload:
    """Build a ReminderPayload for the given incomplete habit titles."""
    return ReminderPayload(
        body=reminder_body(titles),
        icon=icon,
        badge=icon,
        data=NotificationData(
            url=url,
            type="reminder",
            habit_ids=list(habit_ids) if habit_ids is not None else None,
            incomplete_count=len(titles),
        ),
    )


def build_test_payload(icon: Optional[str] = None, url: str = "/") -> TestPayload:
    """Build the fixed diagnostic TestPayload."""
    return TestPayload(icon=icon, badge=icon, data=NotificationData(url=url, type="test"))
