"""
Web Push Provider.

Delivers encrypted notifications to browser push services (RFC 8030).

Features:
- VAPID authentication (RFC 8292) with per-audience token caching
- aes128gcm payload encryption (RFC 8291 / RFC 8188)
- Shared httpx AsyncClient with connection pooling
- Expired subscription detection (404/410)

The provider never retries. Expired subscriptions are reported back to
the caller, which owns the subscription store.
"""

import logging
import time
from typing import Optional, Union

import httpx

from habitpush.core.metrics import record_push_notification_sent
from habitpush.services.push.constants import (
    CONTENT_ENCODING,
    CONTENT_TYPE,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_TTL_SECONDS,
    DEFAULT_URGENCY,
    MAX_ERROR_BODY_LENGTH,
    SUBSCRIPTION_GONE_STATUS_CODES,
    VAPID_TOKEN_REFRESH_MARGIN_SECONDS,
)
from habitpush.services.push.encryption import encrypt_payload
from habitpush.services.push.exceptions import WebPushError
from habitpush.services.push.frame import frame_encrypted_payload
from habitpush.services.push.models import (
    DeliveryResult,
    DeliveryStatus,
    NotificationPayload,
    PushSubscriptionInfo,
)
from habitpush.services.push.vapid import VapidKeyPair, VapidSigner

logger = logging.getLogger(__name__)

PayloadInput = Union[str, bytes, NotificationPayload]


def _truncate_endpoint(endpoint: str) -> str:
    return endpoint[:50] + "..." if len(endpoint) > 50 else endpoint


class WebPushProvider:
    """
    Web Push provider for sending notifications to browsers.

    Usage:
        key_pair = VapidKeyPair.from_base64url(public_b64, private_b64)
        async with WebPushProvider(key_pair, subject="mailto:ops@example.com") as provider:
            result = await provider.send(subscription, payload)

    Attributes:
        key_pair: VAPID key pair identifying this application server
        signer: VAPID token signer (tokens cached per audience)
        ttl: Seconds the push service should keep an undelivered message
        urgency: RFC 8030 urgency hint
        _client: httpx AsyncClient (lazy initialized unless injected)
    """

    def __init__(
        self,
        key_pair: VapidKeyPair,
        subject: str,
        ttl: int = DEFAULT_TTL_SECONDS,
        urgency: str = DEFAULT_URGENCY,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        refresh_margin: int = VAPID_TOKEN_REFRESH_MARGIN_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize Web Push provider.

        Args:
            key_pair: VAPID key pair
            subject: Contact URI (mailto: or https:) put in the token's sub claim
            ttl: TTL header value in seconds
            urgency: Urgency header value
            timeout: Per-request timeout in seconds
            refresh_margin: Re-sign cached VAPID tokens with less than this many seconds left
            client: Optional pre-built AsyncClient (the caller keeps ownership)
        """
        self.key_pair = key_pair
        self.signer = VapidSigner(key_pair, subject, refresh_margin=refresh_margin)
        self.ttl = ttl
        self.urgency = urgency
        self.timeout = timeout

        self._client = client
        self._owns_client = client is None

        logger.info(
            "Web Push provider initialized",
            extra={
                "subject": subject,
                "ttl": ttl,
                "urgency": urgency,
            }
        )

    @classmethod
    def from_settings(cls, settings, key_pair: VapidKeyPair) -> "WebPushProvider":
        """Build a provider from application settings."""
        return cls(
            key_pair=key_pair,
            subject=settings.VAPID_SUBJECT,
            ttl=settings.PUSH_TTL_SECONDS,
            urgency=settings.PUSH_URGENCY,
            timeout=settings.PUSH_TIMEOUT_SECONDS,
            refresh_margin=settings.VAPID_TOKEN_REFRESH_MARGIN_SECONDS,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            )
            self._owns_client = True
        return self._client

    def _build_headers(self, endpoint: str) -> dict:
        """Build request headers for a push message."""
        return {
            "Authorization": self.signer.authorization_header(endpoint),
            "Content-Type": CONTENT_TYPE,
            "Content-Encoding": CONTENT_ENCODING,
            "TTL": str(self.ttl),
            "Urgency": self.urgency,
        }

    @staticmethod
    def _serialize(payload: PayloadInput) -> Union[str, bytes]:
        if isinstance(payload, (str, bytes)):
            return payload
        return payload.to_json()

    def build_request(self, subscription: PushSubscriptionInfo, payload: PayloadInput) -> tuple[dict, bytes]:
        """
        Sign, encrypt and frame a message without sending it.

        Returns:
            (headers, body) for the POST to subscription.endpoint
        """
        encrypted = encrypt_payload(self._serialize(payload), subscription.p256dh, subscription.auth)
        body = frame_encrypted_payload(encrypted)
        return self._build_headers(subscription.endpoint), body

    async def send(
        self,
        subscription: PushSubscriptionInfo,
        payload: PayloadInput,
    ) -> DeliveryResult:
        """
        Send a push notification to a single browser subscription.

        Args:
            subscription: Endpoint and keys of the browser subscription
            payload: Notification payload model, or an already serialized JSON string

        Returns:
            DeliveryResult; status EXPIRED means the subscription should be deleted
        """
        endpoint = subscription.endpoint
        start_time = time.time()

        try:
            headers, body = self.build_request(subscription, payload)
            client = await self._get_client()
            response = await client.post(endpoint, content=body, headers=headers, timeout=self.timeout)
        except (WebPushError, ValueError, httpx.HTTPError) as e:
            duration = time.time() - start_time
            logger.error(
                f"Web Push delivery error: {e}",
                extra={
                    "endpoint": _truncate_endpoint(endpoint),
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )
            record_push_notification_sent(DeliveryStatus.ERROR.value, duration)
            return DeliveryResult(
                endpoint=endpoint,
                success=False,
                status=DeliveryStatus.ERROR,
                error=str(e) or type(e).__name__,
            )

        duration = time.time() - start_time
        result = self._interpret_response(endpoint, response)
        record_push_notification_sent(result.status.value, duration)
        return result

    def _interpret_response(self, endpoint: str, response: httpx.Response) -> DeliveryResult:
        """Map a push service response onto a DeliveryResult."""
        status_code = response.status_code

        if 200 <= status_code < 300:
            logger.info(
                "Web Push notification sent successfully",
                extra={
                    "endpoint": _truncate_endpoint(endpoint),
                    "status_code": status_code,
                }
            )
            return DeliveryResult(
                endpoint=endpoint,
                success=True,
                status=DeliveryStatus.SUCCESS,
                status_code=status_code,
            )

        if status_code in SUBSCRIPTION_GONE_STATUS_CODES:
            logger.warning(
                "Web Push subscription expired",
                extra={
                    "endpoint": _truncate_endpoint(endpoint),
                    "status_code": status_code,
                }
            )
            return DeliveryResult(
                endpoint=endpoint,
                success=False,
                status=DeliveryStatus.EXPIRED,
                status_code=status_code,
                error="Subscription expired or no longer valid",
            )

        body_text = response.text[:MAX_ERROR_BODY_LENGTH]
        logger.warning(
            "Web Push service rejected notification",
            extra={
                "endpoint": _truncate_endpoint(endpoint),
                "status_code": status_code,
                "response_body": body_text,
            }
        )
        return DeliveryResult(
            endpoint=endpoint,
            success=False,
            status=DeliveryStatus.FAILED,
            status_code=status_code,
            error=body_text or f"Push service returned HTTP {status_code}",
        )

    async def close(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
            logger.debug("Web Push provider closed")

    async def __aenter__(self) -> "WebPushProvider":
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        await self.close()
