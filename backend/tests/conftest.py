"""Pytest fixtures and configuration for test suite

This module provides:
1. Database session fixtures for test isolation
2. Factory functions for creating test objects with sensible defaults
3. Key material for VAPID signing and for a simulated browser subscriber

Factory Functions:
    - make_subscription(**overrides) -> PushSubscription
    - make_habit(**overrides) -> Habit
    - make_check_in(habit, day) -> DailyCheckIn

Each factory accepts an optional db_session parameter to persist objects.
"""
import os
import struct
import pytest
import uuid
from datetime import date
from types import SimpleNamespace

from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from habitpush.core.database import Base
from habitpush.models.habit import DailyCheckIn, Habit
from habitpush.models.push_subscription import PushSubscription
from habitpush.services.push.constants import (
    CEK_INFO,
    NONCE_INFO,
    WEBPUSH_INFO_PREFIX,
)
from habitpush.services.push.encoding import base64url_encode
from habitpush.services.push.encryption import hkdf_sha256
from habitpush.services.push.vapid import VapidKeyPair, public_key_bytes


# =============================================================================
# Factory Functions for Test Objects
# =============================================================================

def make_subscription(
    db_session=None,
    id: str = None,
    user_id: str = "user-001",
    endpoint: str = None,
    p256dh_key: str = None,
    auth_key: str = None,
    **overrides
) -> PushSubscription:
    """
    Factory function to create PushSubscription instances for testing.

    Keys default to a freshly generated, valid browser key pair so the
    subscription can actually be encrypted for.
    """
    if id is None:
        id = str(uuid.uuid4())
    if endpoint is None:
        endpoint = f"https://push.example.com/send/{id}"
    if p256dh_key is None or auth_key is None:
        browser = make_browser_subscriber()
        p256dh_key = p256dh_key or browser.p256dh
        auth_key = auth_key or browser.auth

    subscription = PushSubscription(
        id=id,
        user_id=user_id,
        endpoint=endpoint,
        p256dh_key=p256dh_key,
        auth_key=auth_key,
        **overrides
    )

    if db_session is not None:
        db_session.add(subscription)
        db_session.commit()
        db_session.refresh(subscription)

    return subscription


def make_habit(
    db_session=None,
    id: str = None,
    user_id: str = "user-001",
    title: str = "Read 10 pages",
    start_date: date = date(2026, 1, 1),
    end_date: date = date(2026, 12, 31),
    **overrides
) -> Habit:
    """Factory function to create Habit instances for testing."""
    if id is None:
        id = str(uuid.uuid4())

    habit = Habit(
        id=id,
        user_id=user_id,
        title=title,
        start_date=start_date,
        end_date=end_date,
        **overrides
    )

    if db_session is not None:
        db_session.add(habit)
        db_session.commit()
        db_session.refresh(habit)

    return habit


def make_check_in(db_session, habit: Habit, day: date) -> DailyCheckIn:
    """Record that `habit` was completed on `day`."""
    check_in = DailyCheckIn(habit_id=habit.id, check_in_date=day)
    db_session.add(check_in)
    db_session.commit()
    return check_in


# =============================================================================
# Simulated browser (user agent) side of Web Push
# =============================================================================

def make_browser_subscriber() -> SimpleNamespace:
    """Generate the key material a browser creates in pushManager.subscribe()."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    auth_secret = os.urandom(16)
    public_key = public_key_bytes(private_key.public_key())
    return SimpleNamespace(
        private_key=private_key,
        public_key=public_key,
        auth_secret=auth_secret,
        p256dh=base64url_encode(public_key),
        auth=base64url_encode(auth_secret),
    )


def decrypt_push_body(body: bytes, ua_private_key: ec.EllipticCurvePrivateKey, auth_secret: bytes) -> bytes:
    """
    Decrypt an aes128gcm Web Push body the way a browser does.

    Parses the header, recomputes the keys from the receiver's side of the
    ECDH exchange and strips the 0x02 padding delimiter.
    """
    salt = body[:16]
    record_size, keyid_len = struct.unpack("!IB", body[16:21])
    as_public = body[21:21 + keyid_len]
    ciphertext = body[21 + keyid_len:]
    assert record_size == 4096

    sender_key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), as_public)
    shared_secret = ua_private_key.exchange(ec.ECDH(), sender_key)
    ua_public = public_key_bytes(ua_private_key.public_key())

    ikm = hkdf_sha256(auth_secret, shared_secret, WEBPUSH_INFO_PREFIX + ua_public + as_public, 32)
    cek = hkdf_sha256(salt, ikm, CEK_INFO, 16)
    nonce = hkdf_sha256(salt, ikm, NONCE_INFO, 12)

    padded = AESGCM(cek).decrypt(nonce, ciphertext, None)
    assert padded.endswith(b"\x02")
    return padded[:-1]


# =============================================================================
# Pytest Fixtures
# =============================================================================

@pytest.fixture
def vapid_key_pair():
    """A freshly generated VAPID key pair."""
    return VapidKeyPair.generate()


@pytest.fixture
def browser_subscriber():
    """A simulated browser subscription (keys plus receiver-side private key)."""
    return make_browser_subscriber()


@pytest.fixture
def decrypt_body():
    """Browser-side decryption helper."""
    return decrypt_push_body


@pytest.fixture
def today():
    """A fixed day inside the default habit window."""
    return date(2026, 6, 15)


@pytest.fixture(scope="function")
def db_session():
    """
    Create an in-memory SQLite database for testing

    Yields:
        SQLAlchemy Session for test database

    Cleanup:
        Drops all tables after test completes
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False}
    )

    Base.metadata.create_all(engine)

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()
