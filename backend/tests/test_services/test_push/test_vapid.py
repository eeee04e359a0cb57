"""
Tests for VAPID key handling and token signing.
"""

import json
import time

import jwt
import pytest

from habitpush.services.push.constants import VAPID_TOKEN_LIFETIME_SECONDS
from habitpush.services.push.encoding import base64url_decode, base64url_encode
from habitpush.services.push.exceptions import InvalidSubscriptionError, VapidConfigurationError
from habitpush.services.push.vapid import (
    VapidKeyPair,
    VapidSigner,
    audience_for,
    decode_token_claims,
)

ENDPOINT = "https://fcm.googleapis.com/fcm/send/abc123"
SUBJECT = "mailto:ops@example.com"


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1_800_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _segments(token: str):
    header, claims, signature = token.split(".")
    return (
        json.loads(base64url_decode(header)),
        json.loads(base64url_decode(claims)),
        base64url_decode(signature),
    )


class TestVapidKeyPair:
    """Tests for VapidKeyPair."""

    def test_generate_produces_valid_sizes(self, vapid_key_pair):
        assert len(vapid_key_pair.public_key) == 65
        assert vapid_key_pair.public_key[0] == 0x04
        assert len(vapid_key_pair.private_key) == 32

    def test_from_base64url_round_trip(self, vapid_key_pair):
        loaded = VapidKeyPair.from_base64url(vapid_key_pair.public_key_b64, vapid_key_pair.private_key_b64)
        assert loaded == vapid_key_pair

    def test_missing_keys_rejected(self):
        with pytest.raises(VapidConfigurationError):
            VapidKeyPair.from_base64url("", "")

    def test_malformed_base64_rejected(self, vapid_key_pair):
        with pytest.raises(VapidConfigurationError):
            VapidKeyPair.from_base64url(vapid_key_pair.public_key_b64, "not*base64")

    def test_wrong_private_key_length_rejected(self, vapid_key_pair):
        with pytest.raises(VapidConfigurationError):
            VapidKeyPair(public_key=vapid_key_pair.public_key, private_key=b"\x01" * 31)

    def test_wrong_public_key_length_rejected(self, vapid_key_pair):
        with pytest.raises(VapidConfigurationError):
            VapidKeyPair(public_key=vapid_key_pair.public_key[:33], private_key=vapid_key_pair.private_key)

    def test_mismatched_pair_rejected(self, vapid_key_pair):
        other = VapidKeyPair.generate()
        with pytest.raises(VapidConfigurationError, match="does not match"):
            VapidKeyPair(public_key=other.public_key, private_key=vapid_key_pair.private_key)

    def test_zero_scalar_rejected(self, vapid_key_pair):
        with pytest.raises(VapidConfigurationError):
            VapidKeyPair(public_key=vapid_key_pair.public_key, private_key=b"\x00" * 32)

    def test_private_key_not_in_repr(self, vapid_key_pair):
        assert vapid_key_pair.private_key_b64 not in repr(vapid_key_pair)


class TestAudience:
    """Tests for audience_for."""

    @pytest.mark.parametrize("endpoint,expected", [
        ("https://fcm.googleapis.com/fcm/send/abc", "https://fcm.googleapis.com"),
        ("https://updates.push.services.mozilla.com/wpush/v2/xyz?q=1", "https://updates.push.services.mozilla.com"),
        ("https://push.example.com:8443/send/1", "https://push.example.com:8443"),
        ("http://localhost:9000/push", "http://localhost:9000"),
        ("https://[::1]:8443/push", "https://[::1]:8443"),
        ("https://fcm.googleapis.com:443/fcm/send/x", "https://fcm.googleapis.com"),
        ("http://localhost:80/push", "http://localhost"),
        ("http://push.example.com:443/send/1", "http://push.example.com:443"),
    ])
    def test_origin_extraction(self, endpoint, expected):
        assert audience_for(endpoint) == expected

    @pytest.mark.parametrize("endpoint", ["ftp://push.example.com/x", "not a url", "https:///path-only", ""])
    def test_invalid_endpoint_rejected(self, endpoint):
        with pytest.raises(InvalidSubscriptionError):
            audience_for(endpoint)


class TestVapidSigner:
    """Tests for VapidSigner token creation and caching."""

    def test_token_structure(self, vapid_key_pair):
        clock = FakeClock()
        signer = VapidSigner(vapid_key_pair, SUBJECT, clock=clock)

        token = signer.create_token(ENDPOINT)

        assert token.count(".") == 2
        header, claims, signature = _segments(token)
        assert header == {"typ": "JWT", "alg": "ES256"}
        assert claims == {
            "aud": "https://fcm.googleapis.com",
            "exp": int(clock.now) + VAPID_TOKEN_LIFETIME_SECONDS,
            "sub": SUBJECT,
        }
        assert len(signature) == 64
        assert "=" not in token

    def test_exp_is_twelve_hours_from_now(self, vapid_key_pair):
        signer = VapidSigner(vapid_key_pair, SUBJECT)
        before = int(time.time())
        claims = decode_token_claims(signer.create_token(ENDPOINT))
        assert abs(claims["exp"] - (before + 12 * 3600)) <= 1

    def test_token_verifies_with_pyjwt(self, vapid_key_pair):
        signer = VapidSigner(vapid_key_pair, SUBJECT)
        token = signer.create_token(ENDPOINT)

        decoded = jwt.decode(
            token,
            vapid_key_pair.signing_key.public_key(),
            algorithms=["ES256"],
            audience="https://fcm.googleapis.com",
        )
        assert decoded["sub"] == SUBJECT

    def test_token_rejected_for_other_key(self, vapid_key_pair):
        token = VapidSigner(vapid_key_pair, SUBJECT).create_token(ENDPOINT)
        other = VapidKeyPair.generate()
        with pytest.raises(jwt.InvalidSignatureError):
            jwt.decode(
                token,
                other.signing_key.public_key(),
                algorithms=["ES256"],
                audience="https://fcm.googleapis.com",
            )

    def test_invalid_subject_rejected(self, vapid_key_pair):
        with pytest.raises(VapidConfigurationError):
            VapidSigner(vapid_key_pair, "ops@example.com")

    def test_cached_per_audience(self, vapid_key_pair):
        signer = VapidSigner(vapid_key_pair, SUBJECT, clock=FakeClock())

        first = signer.get_token("https://fcm.googleapis.com/fcm/send/a")
        second = signer.get_token("https://fcm.googleapis.com/fcm/send/b")
        other = signer.get_token("https://updates.push.services.mozilla.com/wpush/v2/c")

        assert first == second
        assert other != first
        assert decode_token_claims(other)["aud"] == "https://updates.push.services.mozilla.com"

    def test_refreshes_near_expiry(self, vapid_key_pair):
        clock = FakeClock()
        signer = VapidSigner(vapid_key_pair, SUBJECT, refresh_margin=3600, clock=clock)

        first = signer.get_token(ENDPOINT)
        clock.now += VAPID_TOKEN_LIFETIME_SECONDS - 3600 - 1
        assert signer.get_token(ENDPOINT) == first

        clock.now += 2
        refreshed = signer.get_token(ENDPOINT)
        assert refreshed != first
        assert decode_token_claims(refreshed)["exp"] == int(clock.now) + VAPID_TOKEN_LIFETIME_SECONDS

    def test_authorization_header(self, vapid_key_pair):
        signer = VapidSigner(vapid_key_pair, SUBJECT)
        header = signer.authorization_header(ENDPOINT)

        assert header.startswith("vapid t=")
        token_part, key_part = header[len("vapid "):].split(", ")
        assert token_part[2:].count(".") == 2
        assert key_part == f"k={vapid_key_pair.public_key_b64}"


class TestDecodeTokenClaims:
    """Tests for decode_token_claims."""

    def test_reads_claims_without_key(self, vapid_key_pair):
        token = VapidSigner(vapid_key_pair, SUBJECT).create_token(ENDPOINT)

        assert jwt.get_unverified_header(token) == {"typ": "JWT", "alg": "ES256"}
        assert decode_token_claims(token)["aud"] == "https://fcm.googleapis.com"

    def test_rejects_garbage(self):
        assert decode_token_claims("only.two") is None
        assert decode_token_claims("a.%%%.c") is None
        assert decode_token_claims(f"a.{base64url_encode(b'not json')}.c") is None
