"""Summary: Token encoding for credentials at rest.

Importance: Keeps OAuth access and refresh tokens out of the SQLite file in plaintext.
Alternatives: Use a secrets manager or an authenticated encryption library.
"""

from __future__ import annotations

import base64
import hashlib

_PREFIX = "v1:"


class TokenCodec:
    """Summary: Reversible token obfuscation keyed by a deployment secret.

    Importance: The credential store encodes on write and decodes on read, so callers only see plaintext.
    Alternatives: Store tokens raw and rely on filesystem permissions.
    """

    def __init__(self, secret: str) -> None:
        self._secret = (secret or "focusboard").encode("utf-8")

    def encode(self, plaintext: str | None) -> str | None:
        """Summary: Encode a token, passing None through.

        Importance: Refresh tokens are optional and must stay absent rather than encode as text.
        Alternatives: Store an empty string for missing tokens.
        """

        if plaintext is None:
            return None
        raw = plaintext.encode("utf-8")
        masked = _xor(raw, _keystream(self._secret, len(raw)))
        return _PREFIX + base64.urlsafe_b64encode(masked).decode("ascii")

    def decode(self, payload: str | None) -> str | None:
        """Summary: Decode a stored token, passing None through.

        Importance: Values written before encoding was enabled are returned unchanged.
        Alternatives: Fail on unprefixed values and force re-linking.
        """

        if payload is None:
            return None
        if not payload.startswith(_PREFIX):
            return payload
        raw = base64.urlsafe_b64decode(payload[len(_PREFIX):].encode("ascii"))
        return _xor(raw, _keystream(self._secret, len(raw))).decode("utf-8")


def _xor(data: bytes, key: bytes) -> bytes:
    return bytes(b ^ k for b, k in zip(data, key))


def _keystream(secret: bytes, length: int) -> bytes:
    """Summary: Derive a deterministic keystream from a secret with SHA-256 blocks."""

    output = b""
    counter = 0
    while len(output) < length:
        output += hashlib.sha256(secret + counter.to_bytes(4, "big")).digest()
        counter += 1
    return output[:length]
