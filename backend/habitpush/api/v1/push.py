"""
Push Notification API endpoints

- GET /api/v1/push/vapid-public-key - Get VAPID public key for the frontend

Subscriptions are written by the client application directly; this
service only reads them.
"""
import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from habitpush.services.push.exceptions import VapidConfigurationError
from habitpush.utils.vapid import get_vapid_public_key

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/push",
    tags=["push-notifications"]
)


class VapidPublicKeyResponse(BaseModel):
    """Response containing VAPID public key."""
    public_key: str = Field(..., description="VAPID public key in URL-safe base64")


@router.get("/vapid-public-key", response_model=VapidPublicKeyResponse)
async def get_vapid_key():
    """
    Get VAPID public key for push subscription.

    The frontend uses this key as the `applicationServerKey` when calling
    `pushManager.subscribe()`.

    **Response:**
    ```json
    {
        "public_key": "BEl62iUYgUivxIkv69yViEuiBIa-..."
    }
    ```

    **Status Codes:**
    - 200: Success
    - 500: Keys missing or invalid
    """
    try:
        public_key = get_vapid_public_key()
    except VapidConfigurationError as e:
        logger.error(f"Invalid VAPID configuration: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="VAPID keys are invalid"
        )

    if not public_key:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="VAPID keys are not configured"
        )

    return VapidPublicKeyResponse(public_key=public_key)
