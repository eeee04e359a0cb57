"""
VAPID (RFC 8292) key handling and token signing.

The application server proves its identity to the push service with a
short-lived ES256 JWT whose audience is the origin of the subscription
endpoint. The token is sent together with the server's public key in the
``Authorization: vapid t=<token>, k=<key>`` header.
"""

import logging
import time
from dataclasses import dataclass, field
from functools import cached_property
from typing import Callable, Dict, Optional, Tuple
from urllib.parse import urlsplit

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from habitpush.services.push.constants import (
    JWT_ALGORITHM,
    P256_PRIVATE_KEY_SIZE,
    P256_PUBLIC_KEY_SIZE,
    UNCOMPRESSED_POINT_PREFIX,
    VAPID_TOKEN_LIFETIME_SECONDS,
    VAPID_TOKEN_REFRESH_MARGIN_SECONDS,
)
from habitpush.services.push.encoding import base64url_decode, base64url_encode
from habitpush.services.push.exceptions import (
    EncodingError,
    InvalidSubscriptionError,
    VapidConfigurationError,
)

logger = logging.getLogger(__name__)

DEFAULT_PORTS = {"https": 443, "http": 80}


def public_key_bytes(public_key: ec.EllipticCurvePublicKey) -> bytes:
    """Serialize a P-256 public key as a 65-byte uncompressed point."""
    return public_key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )


@dataclass(frozen=True)
class VapidKeyPair:
    """
    Immutable VAPID key pair.

    Attributes:
        public_key: 65-byte uncompressed P-256 point
        private_key: 32-byte private scalar
    """

    public_key: bytes
    private_key: bytes = field(repr=False)

    def __post_init__(self):
        if len(self.private_key) != P256_PRIVATE_KEY_SIZE:
            raise VapidConfigurationError(
                f"VAPID private key must be {P256_PRIVATE_KEY_SIZE} bytes, got {len(self.private_key)}"
            )
        if (
            len(self.public_key) != P256_PUBLIC_KEY_SIZE
            or self.public_key[0] != UNCOMPRESSED_POINT_PREFIX
        ):
            raise VapidConfigurationError(
                f"VAPID public key must be a {P256_PUBLIC_KEY_SIZE}-byte uncompressed P-256 point"
            )
        try:
            derived = public_key_bytes(self.signing_key.public_key())
        except ValueError as e:
            raise VapidConfigurationError(f"VAPID private key is not a valid P-256 scalar: {e}") from e
        if derived != self.public_key:
            raise VapidConfigurationError("VAPID public key does not match the private key")

    @classmethod
    def from_base64url(cls, public_key: str, private_key: str) -> "VapidKeyPair":
        """Build a key pair from the base64url strings kept in configuration."""
        if not public_key or not private_key:
            raise VapidConfigurationError("VAPID_PUBLIC_KEY and VAPID_PRIVATE_KEY must both be set")
        try:
            return cls(
                public_key=base64url_decode(public_key.strip()),
                private_key=base64url_decode(private_key.strip()),
            )
        except EncodingError as e:
            raise VapidConfigurationError(f"VAPID key is not valid base64url: {e}") from e

    @classmethod
    def generate(cls) -> "VapidKeyPair":
        """Generate a fresh key pair."""
        private_key = ec.generate_private_key(ec.SECP256R1())
        scalar = private_key.private_numbers().private_value.to_bytes(P256_PRIVATE_KEY_SIZE, "big")
        return cls(public_key=public_key_bytes(private_key.public_key()), private_key=scalar)

    @cached_property
    def signing_key(self) -> ec.EllipticCurvePrivateKey:
        """The private scalar as a cryptography key object."""
        return ec.derive_private_key(int.from_bytes(self.private_key, "big"), ec.SECP256R1())

    @property
    def public_key_b64(self) -> str:
        """Public key as base64url, the browser's applicationServerKey."""
        return base64url_encode(self.public_key)

    @property
    def private_key_b64(self) -> str:
        return base64url_encode(self.private_key)


def audience_for(endpoint: str) -> str:
    """
    Return the origin (scheme://host[:port]) of a push endpoint.

    The scheme's default port is omitted, as in a browser origin.

    Raises:
        InvalidSubscriptionError: if the endpoint is not an absolute http(s) URL
    """
    parts = urlsplit(endpoint)
    if parts.scheme not in ("https", "http") or not parts.hostname:
        raise InvalidSubscriptionError(f"Invalid push endpoint URL: {endpoint!r}", endpoint=endpoint)

    host = parts.hostname
    if ":" in host:
        host = f"[{host}]"  # IPv6 literal
    try:
        port = parts.port
    except ValueError as e:
        raise InvalidSubscriptionError(f"Invalid push endpoint port: {endpoint!r}", endpoint=endpoint) from e
    if port is not None and port != DEFAULT_PORTS[parts.scheme]:
        host = f"{host}:{port}"
    return f"{parts.scheme}://{host}"


class VapidSigner:
    """
    Creates VAPID tokens for push endpoints.

    Tokens are cached per audience and re-signed once less than
    ``refresh_margin`` seconds of validity remain. A token is only ever
    returned for the audience it was signed for.

    Usage:
        signer = VapidSigner(key_pair, subject="mailto:ops@example.com")
        headers = {"Authorization": signer.authorization_header(endpoint)}
    """

    def __init__(
        self,
        key_pair: VapidKeyPair,
        subject: str,
        token_lifetime: int = VAPID_TOKEN_LIFETIME_SECONDS,
        refresh_margin: int = VAPID_TOKEN_REFRESH_MARGIN_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        if not subject.startswith(("mailto:", "https:")):
            raise VapidConfigurationError("VAPID subject must be a mailto: or https: URI")
        self.key_pair = key_pair
        self.subject = subject
        self.token_lifetime = token_lifetime
        self.refresh_margin = refresh_margin
        self._clock = clock

        # audience -> (token, expires_at)
        self._tokens: Dict[str, Tuple[str, int]] = {}

    def create_token(self, endpoint: str) -> str:
        """Sign a new token for the endpoint's audience (never cached)."""
        token, _ = self._sign(audience_for(endpoint))
        return token

    def get_token(self, endpoint: str) -> str:
        """Return a token for the endpoint, reusing a cached one for the same audience."""
        audience = audience_for(endpoint)
        now = self._clock()

        cached = self._tokens.get(audience)
        if cached and cached[1] > now + self.refresh_margin:
            return cached[0]

        token, expires_at = self._sign(audience)
        self._tokens[audience] = (token, expires_at)
        return token

    def authorization_header(self, endpoint: str) -> str:
        """Build the ``Authorization`` header value for a push request."""
        return f"vapid t={self.get_token(endpoint)}, k={self.key_pair.public_key_b64}"

    def _sign(self, audience: str) -> Tuple[str, int]:
        expires_at = int(self._clock()) + self.token_lifetime
        claims = {"aud": audience, "exp": expires_at, "sub": self.subject}

        token = jwt.encode(
            claims,
            self.key_pair.signing_key,
            algorithm=JWT_ALGORITHM,
            headers={"typ": "JWT"},
        )

        logger.debug(
            "Signed VAPID token",
            extra={"audience": audience, "expires_at": expires_at},
        )
        return token, expires_at


def decode_token_claims(token: str) -> Optional[dict]:
    """Decode (without verifying) the claims of a VAPID token."""
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
