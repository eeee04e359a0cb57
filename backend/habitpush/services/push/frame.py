"""
aes128gcm content-coding header (RFC 8188 section 2.1).

    +-----------+--------+-----------+---------------+------------+
    | salt (16) | rs (4) | idlen (1) | keyid (idlen) | ciphertext |
    +-----------+--------+-----------+---------------+------------+

For Web Push the key id carries the sender's ephemeral public key.
"""

import struct

from habitpush.services.push.constants import MAX_KEYID_SIZE, RECORD_SIZE, SALT_SIZE
from habitpush.services.push.encryption import EncryptedPayload


def build_frame(
    salt: bytes,
    public_key: bytes,
    ciphertext: bytes,
    record_size: int = RECORD_SIZE,
) -> bytes:
    """Assemble the request body: header followed by the single encrypted record."""
    if len(salt) != SALT_SIZE:
        raise ValueError(f"salt must be {SALT_SIZE} bytes, got {len(salt)}")
    if len(public_key) > MAX_KEYID_SIZE:
        raise ValueError(f"key id must be at most {MAX_KEYID_SIZE} bytes, got {len(public_key)}")

    header = salt + struct.pack("!IB", record_size, len(public_key)) + public_key
    return header + ciphertext


def frame_encrypted_payload(encrypted: EncryptedPayload) -> bytes:
    """Frame an EncryptedPayload as produced by encrypt_payload()."""
    return build_frame(encrypted.salt, encrypted.ephemeral_public_key, encrypted.ciphertext)
