"""
Custom exceptions for Web Push delivery.
"""


class WebPushError(Exception):
    """Base exception for Web Push errors."""
    pass


class EncodingError(WebPushError, ValueError):
    """Malformed base64url input."""
    pass


class VapidConfigurationError(WebPushError):
    """Missing or malformed VAPID key pair (fatal for a delivery run)."""
    pass


class InvalidSubscriptionError(WebPushError):
    """Subscription keys or endpoint that cannot be used for delivery."""

    def __init__(self, message: str, endpoint: str = None):
        super().__init__(message)
        self.endpoint = endpoint


class PayloadTooLargeError(WebPushError):
    """Payload does not fit in a single aes128gcm record."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"Payload of {size} bytes exceeds single-record limit of {limit} bytes")
        self.size = size
        self.limit = limit
