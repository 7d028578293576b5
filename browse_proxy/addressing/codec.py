"""
Reversible mapping between an absolute URL and the opaque path segment that
carries it.

Addresses use the URL-safe base64 alphabet (``-`` and ``_`` instead of ``+``
and ``/``) without ``=`` padding, so they can be placed in a path segment
without any percent-escaping. The same alphabet is used in both directions.
"""

import base64
import binascii
import re

_ADDRESS_PATTERN = re.compile(r"[A-Za-z0-9_-]*")


class DecodeError(ValueError):
    """The address is not valid encoded data."""


def encode(url: str) -> str:
    return base64.urlsafe_b64encode(url.encode("utf-8")).decode("ascii").rstrip("=")


def decode(address: str) -> str:
    stripped = address.rstrip("=")
    if not _ADDRESS_PATTERN.fullmatch(stripped):
        raise DecodeError("address contains characters outside the URL-safe alphabet")
    padded = stripped + "=" * (-len(stripped) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"malformed address: {e}") from e
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError("decoded address is not valid UTF-8") from e
