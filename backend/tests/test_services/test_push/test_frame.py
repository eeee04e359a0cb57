"""
Tests for the aes128gcm content-coding header.
"""

import os
import struct

import pytest

from habitpush.services.push.constants import HEADER_SIZE
from habitpush.services.push.encryption import encrypt_payload
from habitpush.services.push.frame import build_frame, frame_encrypted_payload


class TestBuildFrame:
    """Tests for build_frame."""

    def test_layout(self):
        salt = os.urandom(16)
        public_key = b"\x04" + os.urandom(64)
        ciphertext = os.urandom(40)

        body = build_frame(salt, public_key, ciphertext)

        assert body[0:16] == salt
        assert body[16:20] == b"\x00\x00\x10\x00"  # 4096 big-endian
        assert body[20] == 65
        assert body[21:86] == public_key
        assert body[86:] == ciphertext
        assert len(body) == HEADER_SIZE + len(ciphertext)

    def test_custom_record_size(self):
        body = build_frame(b"\x00" * 16, b"k", b"", record_size=18)
        assert struct.unpack("!I", body[16:20])[0] == 18
        assert body[20:] == b"\x01k"

    def test_rejects_wrong_salt_length(self):
        with pytest.raises(ValueError):
            build_frame(b"\x00" * 15, b"\x04" * 65, b"")

    def test_rejects_oversized_key_id(self):
        with pytest.raises(ValueError):
            build_frame(b"\x00" * 16, b"\x04" * 256, b"")

    def test_frames_encrypted_payload(self, browser_subscriber):
        encrypted = encrypt_payload("{}", browser_subscriber.p256dh, browser_subscriber.auth)

        body = frame_encrypted_payload(encrypted)

        assert body[:16] == encrypted.salt
        assert body[21:86] == encrypted.ephemeral_public_key
        assert body[86:] == encrypted.ciphertext
