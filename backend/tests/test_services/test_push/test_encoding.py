"""
Tests for base64url helpers used by VAPID and payload encryption.
"""

import os

import pytest

from habitpush.services.push.encoding import base64url_decode, base64url_encode, concat
from habitpush.services.push.exceptions import EncodingError, WebPushError


class TestBase64UrlEncode:
    """Tests for base64url_encode."""

    def test_uses_url_safe_alphabet_without_padding(self):
        """0xfbff encodes to '+/8=' in standard base64."""
        assert base64url_encode(b"\xfb\xff") == "-_8"

    def test_empty_input(self):
        assert base64url_encode(b"") == ""

    def test_public_key_length(self):
        """A 65-byte P-256 point is 87 characters unpadded."""
        assert len(base64url_encode(b"\x04" + os.urandom(64))) == 87


class TestBase64UrlDecode:
    """Tests for base64url_decode."""

    @pytest.mark.parametrize("value", ["-_8", "-_8="])
    def test_accepts_padded_and_unpadded(self, value):
        assert base64url_decode(value) == b"\xfb\xff"

    def test_accepts_bytes(self):
        assert base64url_decode(b"YQ") == b"a"

    def test_round_trip_random_bytes(self):
        data = os.urandom(33)
        assert base64url_decode(base64url_encode(data)) == data

    @pytest.mark.parametrize("value", ["ab+c", "ab/c", "ab c", "ab\n", "a.bc", "é"])
    def test_rejects_characters_outside_alphabet(self, value):
        with pytest.raises(EncodingError):
            base64url_decode(value)

    @pytest.mark.parametrize("value", ["a", "abcde"])
    def test_rejects_impossible_length(self, value):
        with pytest.raises(EncodingError):
            base64url_decode(value)

    def test_rejects_misplaced_padding(self):
        with pytest.raises(EncodingError):
            base64url_decode("ab=")
        with pytest.raises(EncodingError):
            base64url_decode("a=bc")

    def test_error_is_value_error(self):
        with pytest.raises(ValueError):
            base64url_decode("***")
        assert issubclass(EncodingError, WebPushError)


class TestConcat:
    """Tests for concat."""

    def test_preserves_order(self):
        assert concat(b"ab", b"", b"c", b"\x00") == b"abc\x00"

    def test_no_parts(self):
        assert concat() == b""
