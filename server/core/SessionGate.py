"""Session gate: maps request cookies to admin and identity decisions.

Admin sessions are not stored anywhere: the admin cookie simply carries the
configured secret. Without a configured secret the server runs in open mode
and every caller is treated as admin.
"""

import hashlib
import hmac
import re
import secrets
from typing import Mapping

from fastapi import Response

from server.models.errors import ValidationFailed
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import ServerSettings
from shared.stores.CredentialStore import CredentialStore, StoreKind

ADMIN_COOKIE = "amrg_auth"
IDENTITY_COOKIE = "amrg_user"
IDENTITY_COOKIE_MAX_AGE = 365 * 24 * 60 * 60

USER_ID_BYTES = 4
_USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def is_https(headers: Mapping[str, str], scheme: str) -> bool:
    """Detect HTTPS from a reverse proxy's X-Forwarded-Proto header or the transport scheme."""
    forwarded = headers.get("x-forwarded-proto", "")
    if forwarded:
        return forwarded.split(",")[0].strip().lower() == "https"
    return scheme in ("https", "wss")


class SessionGate:
    """Admin authentication and anonymous identity embodiment."""

    def __init__(self, helper_config: HelperConfig, store: CredentialStore, settings: ServerSettings) -> None:
        self.logging = helper_config.get_logger()
        self._store = store
        self._secret = settings.admin_secret or ""

    ##########################################
    ################ ADMIN ###################
    ##########################################

    def is_open_mode(self) -> bool:
        return not self._secret

    def authenticate_admin(self, cookies: Mapping[str, str]) -> bool:
        """Return True if the admin cookie equals the configured secret (always True in open mode)."""
        if self.is_open_mode():
            return True
        token = cookies.get(ADMIN_COOKIE) or ""
        return hmac.compare_digest(token.encode("utf-8"), self._secret.encode("utf-8"))

    def check_admin_password(self, password: str) -> bool:
        if self.is_open_mode():
            return True
        return hmac.compare_digest(password.encode("utf-8"), self._secret.encode("utf-8"))

    def set_admin_cookie(self, response: Response, secure: bool) -> None:
        response.set_cookie(ADMIN_COOKIE, self._secret, httponly=True, path="/", samesite="lax", secure=secure)

    def clear_admin_cookie(self, response: Response) -> None:
        response.delete_cookie(ADMIN_COOKIE, path="/", httponly=True, samesite="lax")

    ##########################################
    ############### IDENTITY #################
    ##########################################

    def identify(self, cookies: Mapping[str, str]) -> str | None:
        """Return the caller's anonymous user id, if the identity cookie is present."""
        user_id = (cookies.get(IDENTITY_COOKIE) or "").strip()
        return user_id or None

    @staticmethod
    def hash_user_key(user_key: str) -> str:
        return hashlib.sha256(user_key.encode("utf-8")).hexdigest()

    def embody(self, user_key: str | None = None, user_id: str | None = None) -> str:
        """Bind a client-held secret to a short, stable user id.

        The same ``user_key`` always yields the same id. A bare ``user_id``
        without key is accepted as-is for clients that predate keyed identities.

        Args:
            user_key (str | None): Long client-held secret.
            user_id (str | None): Legacy: an already known user id.

        Returns:
            str: The user id to store in the identity cookie.

        Raises:
            ValidationFailed: If neither a usable key nor a well-formed user id is supplied.
        """
        user_key = (user_key or "").strip()
        if not user_key:
            user_id = (user_id or "").strip()
            if user_id and _USER_ID_PATTERN.match(user_id):
                return user_id
            raise ValidationFailed("missing_userKey")

        key_hash = self.hash_user_key(user_key)
        with self._store.update(StoreKind.IDENTITIES) as identities:
            existing = identities.get(key_hash)
            if existing:
                return existing
            taken = set(identities.values())
            new_id = secrets.token_hex(USER_ID_BYTES)
            while new_id in taken:
                new_id = secrets.token_hex(USER_ID_BYTES)
            identities[key_hash] = new_id
        self.logging.info("Embodied new identity %s", new_id)
        return new_id

    def set_identity_cookie(self, response: Response, user_id: str, secure: bool) -> None:
        # Readable by client scripts on purpose
        response.set_cookie(
            IDENTITY_COOKIE,
            user_id,
            max_age=IDENTITY_COOKIE_MAX_AGE,
            httponly=False,
            path="/",
            samesite="lax",
            secure=secure,
        )
