"""
Web Push message encryption (RFC 8291).

Each message gets its own ephemeral ECDH key pair and random salt. The
shared secret with the browser's key is mixed with the subscription's
auth secret to derive a one-time AES-128-GCM key and nonce.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from habitpush.services.push.constants import (
    AUTH_SECRET_SIZE,
    CEK_INFO,
    CONTENT_ENCRYPTION_KEY_SIZE,
    IKM_SIZE,
    LAST_RECORD_DELIMITER,
    MAX_PLAINTEXT_SIZE,
    NONCE_INFO,
    NONCE_SIZE,
    P256_PUBLIC_KEY_SIZE,
    SALT_SIZE,
    UNCOMPRESSED_POINT_PREFIX,
    WEBPUSH_INFO_PREFIX,
)
from habitpush.services.push.encoding import base64url_decode, concat
from habitpush.services.push.exceptions import (
    EncodingError,
    InvalidSubscriptionError,
    PayloadTooLargeError,
)
from habitpush.services.push.vapid import public_key_bytes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EncryptionContext:
    """Keys derived for exactly one message. Never persisted or reused."""

    salt: bytes
    ephemeral_public_key: bytes
    content_encryption_key: bytes = field(repr=False)
    nonce: bytes = field(repr=False)


@dataclass(frozen=True)
class EncryptedPayload:
    """Output of payload encryption, ready for framing."""

    ciphertext: bytes
    salt: bytes
    ephemeral_public_key: bytes


def hkdf_sha256(salt: bytes, ikm: bytes, info: bytes, length: int) -> bytes:
    """HKDF-SHA256 extract-and-expand."""
    return HKDF(algorithm=hashes.SHA256(), length=length, salt=salt, info=info).derive(ikm)


def load_subscriber_keys(p256dh: str, auth: str) -> tuple[ec.EllipticCurvePublicKey, bytes, bytes]:
    """
    Decode and validate a subscription's keys.

    Returns:
        (public key object, raw 65-byte public key, 16-byte auth secret)

    Raises:
        InvalidSubscriptionError: on undecodable, wrongly sized or off-curve keys
    """
    try:
        ua_public = base64url_decode(p256dh)
        auth_secret = base64url_decode(auth)
    except EncodingError as e:
        raise InvalidSubscriptionError(f"Subscription keys are not valid base64url: {e}") from e

    if len(ua_public) != P256_PUBLIC_KEY_SIZE or ua_public[0] != UNCOMPRESSED_POINT_PREFIX:
        raise InvalidSubscriptionError(
            f"p256dh must be a {P256_PUBLIC_KEY_SIZE}-byte uncompressed P-256 point, got {len(ua_public)} bytes"
        )
    if len(auth_secret) != AUTH_SECRET_SIZE:
        raise InvalidSubscriptionError(
            f"auth secret must be {AUTH_SECRET_SIZE} bytes, got {len(auth_secret)}"
        )

    try:
        public_key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), ua_public)
    except ValueError as e:
        raise InvalidSubscriptionError(f"p256dh is not a point on P-256: {e}") from e

    return public_key, ua_public, auth_secret


def derive_encryption_context(
    ephemeral_private_key: ec.EllipticCurvePrivateKey,
    subscriber_public_key: ec.EllipticCurvePublicKey,
    auth_secret: bytes,
    salt: bytes,
) -> EncryptionContext:
    """
    Derive the content-encryption key and nonce for one message.

    IKM   = HKDF(auth_secret, ecdh_secret, "WebPush: info" 0x00 ua_public as_public, 32)
    CEK   = HKDF(salt, IKM, "Content-Encoding: aes128gcm" 0x00, 16)
    NONCE = HKDF(salt, IKM, "Content-Encoding: nonce" 0x00, 12)
    """
    if len(salt) != SALT_SIZE:
        raise ValueError(f"salt must be {SALT_SIZE} bytes, got {len(salt)}")

    ua_public = public_key_bytes(subscriber_public_key)
    as_public = public_key_bytes(ephemeral_private_key.public_key())

    shared_secret = ephemeral_private_key.exchange(ec.ECDH(), subscriber_public_key)

    key_info = concat(WEBPUSH_INFO_PREFIX, ua_public, as_public)
    ikm = hkdf_sha256(auth_secret, shared_secret, key_info, IKM_SIZE)

    return EncryptionContext(
        salt=salt,
        ephemeral_public_key=as_public,
        content_encryption_key=hkdf_sha256(salt, ikm, CEK_INFO, CONTENT_ENCRYPTION_KEY_SIZE),
        nonce=hkdf_sha256(salt, ikm, NONCE_INFO, NONCE_SIZE),
    )


def seal(context: EncryptionContext, plaintext: bytes) -> bytes:
    """Pad the plaintext as the last record and encrypt it; the GCM tag is appended."""
    if len(plaintext) > MAX_PLAINTEXT_SIZE:
        raise PayloadTooLargeError(len(plaintext), MAX_PLAINTEXT_SIZE)
    padded = concat(plaintext, LAST_RECORD_DELIMITER)
    return AESGCM(context.content_encryption_key).encrypt(context.nonce, padded, None)


def encrypt_payload(payload: Union[str, bytes], p256dh: str, auth: str) -> EncryptedPayload:
    """
    Encrypt a payload for one subscriber with a fresh ephemeral key and salt.

    Args:
        payload: Notification body (str is encoded as UTF-8)
        p256dh: Subscriber public key, base64url
        auth: Subscriber auth secret, base64url

    Returns:
        EncryptedPayload with ciphertext (tag included), salt and ephemeral public key
    """
    plaintext = payload.encode("utf-8") if isinstance(payload, str) else payload
    subscriber_key, _, auth_secret = load_subscriber_keys(p256dh, auth)

    context = derive_encryption_context(
        ephemeral_private_key=ec.generate_private_key(ec.SECP256R1()),
        subscriber_public_key=subscriber_key,
        auth_secret=auth_secret,
        salt=os.urandom(SALT_SIZE),
    )
    ciphertext = seal(context, plaintext)

    return EncryptedPayload(
        ciphertext=ciphertext,
        salt=context.salt,
        ephemeral_public_key=context.ephemeral_public_key,
    )
