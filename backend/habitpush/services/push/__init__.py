"""
Web Push delivery for browsers.

This package contains:
- VAPID key handling and token signing (RFC 8292)
- Payload encryption (RFC 8291) and aes128gcm framing (RFC 8188)
- WebPushProvider - HTTP delivery to push services
"""

from habitpush.services.push.encryption import EncryptedPayload, encrypt_payload
from habitpush.services.push.exceptions import (
    EncodingError,
    InvalidSubscriptionError,
    PayloadTooLargeError,
    VapidConfigurationError,
    WebPushError,
)
from habitpush.services.push.frame import build_frame
from habitpush.services.push.models import (
    DeliveryResult,
    DeliveryStatus,
    NotificationPayload,
    PushSubscriptionInfo,
    ReminderPayload,
    TestPayload,
    build_reminder_payload,
    build_test_payload,
)
from habitpush.services.push.vapid import VapidKeyPair, VapidSigner
from habitpush.services.push.webpush_provider import WebPushProvider

__all__ = [
    # Provider
    "WebPushProvider",
    # VAPID
    "VapidKeyPair",
    "VapidSigner",
    # Encryption
    "encrypt_payload",
    "EncryptedPayload",
    "build_frame",
    # Models
    "PushSubscriptionInfo",
    "DeliveryResult",
    "DeliveryStatus",
    "NotificationPayload",
    "ReminderPayload",
    "TestPayload",
    "build_reminder_payload",
    "build_test_payload",
    # Exceptions
    "WebPushError",
    "EncodingError",
    "VapidConfigurationError",
    "InvalidSubscriptionError",
    "PayloadTooLargeError",
]
