"""
Constants for Web Push (RFC 8030), message encryption (RFC 8291),
aes128gcm content coding (RFC 8188) and VAPID (RFC 8292).
"""

# VAPID / JWT configuration
JWT_ALGORITHM = "ES256"
VAPID_TOKEN_LIFETIME_SECONDS = 12 * 60 * 60  # 12 hours
VAPID_TOKEN_REFRESH_MARGIN_SECONDS = 3600  # Re-sign when less than 1h remains

# P-256 key sizes (bytes)
P256_PUBLIC_KEY_SIZE = 65  # Uncompressed point: 0x04 || X || Y
P256_PRIVATE_KEY_SIZE = 32
UNCOMPRESSED_POINT_PREFIX = 0x04

# RFC 8291 message encryption
AUTH_SECRET_SIZE = 16
SALT_SIZE = 16
SHARED_SECRET_SIZE = 32
IKM_SIZE = 32
CONTENT_ENCRYPTION_KEY_SIZE = 16
NONCE_SIZE = 12
GCM_TAG_SIZE = 16

WEBPUSH_INFO_PREFIX = b"WebPush: info\x00"
CEK_INFO = b"Content-Encoding: aes128gcm\x00"
NONCE_INFO = b"Content-Encoding: nonce\x00"

# Padding delimiter for the last (and only) record
LAST_RECORD_DELIMITER = b"\x02"

# RFC 8188 aes128gcm header
RECORD_SIZE = 4096
RECORD_SIZE_FIELD_SIZE = 4
KEYID_LENGTH_FIELD_SIZE = 1
MAX_KEYID_SIZE = 255
HEADER_SIZE = SALT_SIZE + RECORD_SIZE_FIELD_SIZE + KEYID_LENGTH_FIELD_SIZE + P256_PUBLIC_KEY_SIZE  # 86

# Largest plaintext that fits a single record (record holds plaintext + delimiter + tag)
MAX_PLAINTEXT_SIZE = RECORD_SIZE - len(LAST_RECORD_DELIMITER) - GCM_TAG_SIZE

# HTTP delivery
CONTENT_ENCODING = "aes128gcm"
CONTENT_TYPE = "application/octet-stream"
DEFAULT_TTL_SECONDS = 86400
DEFAULT_URGENCY = "normal"
DEFAULT_TIMEOUT_SECONDS = 10.0

# Status codes meaning the subscription no longer exists (never retried)
SUBSCRIPTION_GONE_STATUS_CODES = {404, 410}

# Longest error body kept on a DeliveryResult
MAX_ERROR_BODY_LENGTH = 500
