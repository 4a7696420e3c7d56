"""Stateless HMAC signing for document-session tokens and password hashes.

Token layout: ``<base64url(json payload)>.<hex hmac-sha256 of the first part>``.
The key is the admin secret, so rotating the secret invalidates every
outstanding token and every stored password hash.
"""

import base64
import binascii
import hashlib
import hmac
import json
import time

# Key used when the server runs without an admin secret
FALLBACK_KEY = "amrg_secret"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(data: str) -> bytes:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


class TokenCodec:
    """Sign and verify short tamper-evident payloads."""

    def __init__(self, secret: str | None) -> None:
        self._key = (secret or FALLBACK_KEY).encode("utf-8")

    def _mac(self, message: str) -> str:
        return hmac.new(self._key, message.encode("utf-8"), hashlib.sha256).hexdigest()

    @staticmethod
    def _digest_matches(expected: str, received: str) -> bool:
        # Bytes: compare_digest raises on non-ASCII str and cookie values arrive as latin-1
        return hmac.compare_digest(expected.encode("ascii"), received.encode("utf-8", "replace"))

    ##########################################
    ################ TOKENS ##################
    ##########################################

    def sign(self, payload: dict) -> str:
        """Serialise and sign a payload.

        Args:
            payload (dict): JSON-serialisable claims. An ``exp`` key, if present,
                is an absolute expiry in epoch milliseconds.

        Returns:
            str: The signed token.
        """
        data = _b64url_encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
        return f"{data}.{self._mac(data)}"

    def verify(self, token: str | None, at_ms: int | None = None) -> dict | None:
        """Check a token and return its payload.

        Fails closed: malformed tokens, bad signatures, undecodable payloads and
        payloads whose ``exp`` is at or before ``at_ms`` all return None.

        Args:
            token (str | None): The token as received from the client.
            at_ms (int | None): Reference time in epoch ms, defaults to now.

        Returns:
            dict | None: The payload, or None if the token is not valid.
        """
        if not token or not isinstance(token, str):
            return None
        data, sep, sig = token.partition(".")
        if not sep or not data or not sig:
            return None
        if not self._digest_matches(self._mac(data), sig):
            return None
        try:
            payload = json.loads(_b64url_decode(data).decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError):
            return None
        if not isinstance(payload, dict):
            return None
        exp = payload.get("exp")
        if exp is not None:
            if not isinstance(exp, (int, float)):
                return None
            if (now_ms() if at_ms is None else at_ms) >= exp:
                return None
        return payload

    ##########################################
    ############### PASSWORDS ################
    ##########################################

    # NOTE: a single keyed hash, deterministic per (password, secret). No per-record
    # salt and no work factor; see DESIGN.md before relying on it for weak passwords.
    def hash_password(self, password: str) -> str:
        return self._mac(f"pwd:{password}")

    def verify_password(self, password: str, stored_hash: str) -> bool:
        return self._digest_matches(self.hash_password(password), str(stored_hash))
