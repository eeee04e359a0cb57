"""
VAPID key helpers bound to application settings.

Keys are provisioned out of band (see scripts/generate_vapid_keys.py) and
read from VAPID_PUBLIC_KEY / VAPID_PRIVATE_KEY.
"""
import logging
from typing import Dict, Optional

from habitpush.core.config import Settings, settings as default_settings
from habitpush.services.push.vapid import VapidKeyPair

logger = logging.getLogger(__name__)


def load_vapid_key_pair(config: Optional[Settings] = None) -> VapidKeyPair:
    """
    Load and validate the configured VAPID key pair.

    Raises:
        VapidConfigurationError: if keys are missing, malformed or mismatched
    """
    config = config or default_settings
    return VapidKeyPair.from_base64url(config.VAPID_PUBLIC_KEY or "", config.VAPID_PRIVATE_KEY or "")


def get_vapid_public_key(config: Optional[Settings] = None) -> Optional[str]:
    """Return the configured public key (base64url) or None if not configured."""
    config = config or default_settings
    if not config.vapid_configured:
        logger.warning("VAPID keys are not configured")
        return None
    return load_vapid_key_pair(config).public_key_b64


def generate_vapid_keys() -> Dict[str, str]:
    """Generate a new key pair as base64url strings."""
    key_pair = VapidKeyPair.generate()
    return {
        "public_key": key_pair.public_key_b64,
        "private_key": key_pair.private_key_b64,
    }
