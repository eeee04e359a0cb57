"""
base64url helpers (RFC 4648 section 5) and byte concatenation.

Encoding never emits padding. Decoding accepts input with or without
trailing ``=`` padding but rejects anything outside the URL-safe alphabet
instead of silently dropping it.
"""

import base64
import binascii
import re
from typing import Union

from habitpush.services.push.exceptions import EncodingError

_BASE64URL_RE = re.compile(r"[A-Za-z0-9_-]*={0,2}")


def base64url_encode(data: bytes) -> str:
    """Encode bytes as unpadded base64url text."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def base64url_decode(value: Union[str, bytes]) -> bytes:
    """
    Decode base64url text, with or without padding.

    Raises:
        EncodingError: on characters outside the URL-safe alphabet, misplaced
            padding, or a length no byte string can encode to.
    """
    if isinstance(value, bytes):
        try:
            value = value.decode("ascii")
        except UnicodeDecodeError as e:
            raise EncodingError("base64url input is not ASCII") from e

    if not _BASE64URL_RE.fullmatch(value):
        raise EncodingError("Invalid base64url input: unexpected character")

    stripped = value.rstrip("=")
    if len(stripped) % 4 == 1:
        raise EncodingError(f"Invalid base64url input length: {len(stripped)}")
    if value != stripped and len(value) % 4 != 0:
        raise EncodingError("Invalid base64url padding")

    padded = stripped + "=" * (-len(stripped) % 4)
    try:
        return base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as e:
        raise EncodingError(f"Invalid base64url input: {e}") from e


def concat(*parts: bytes) -> bytes:
    """Join byte strings into one contiguous buffer, preserving order."""
    return b"".join(parts)
