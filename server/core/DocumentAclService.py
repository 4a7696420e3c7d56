"""Document ACL service: protection, per-document sessions, ownership, locks and labels.

Composes the credential store with the token codec. All mutations are
load-modify-save cycles on a single credential file.
"""

import base64
import binascii
from typing import Mapping

from fastapi import Response

from server.models.errors import AlreadyClaimed, InvalidPassword, NotEmbodied, NotOwner, NotProtected, ValidationFailed
from shared.helper.HelperConfig import HelperConfig
from shared.models.acl import DocumentFlags, DocumentSessionClaims, ProtectionRecord
from shared.security.TokenCodec import TokenCodec, now_ms
from shared.stores.CredentialStore import CredentialStore, StoreKind

DOC_COOKIE_PREFIX = "amrg_doc_"


def doc_cookie_name(doc_id: str) -> str:
    """Cookie name carrying the session token of one document.

    The id is base64url-encoded so arbitrary ids never clash with cookie syntax.
    """
    encoded = base64.urlsafe_b64encode(doc_id.encode("utf-8")).rstrip(b"=").decode("ascii")
    return f"{DOC_COOKIE_PREFIX}{encoded}"


def doc_tokens(cookies: Mapping[str, str]) -> dict[str, str]:
    """Collect the document-session tokens of a cookie set as ``{doc_id: token}``."""
    tokens: dict[str, str] = {}
    for name, value in cookies.items():
        if not name.startswith(DOC_COOKIE_PREFIX) or not value:
            continue
        encoded = name[len(DOC_COOKIE_PREFIX):]
        try:
            doc_id = base64.urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4)).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError, ValueError):
            continue
        if doc_id:
            tokens[doc_id] = value
    return tokens


class DocumentAclService:
    """Business logic behind the /docs, /meta and /users/me/docs endpoints."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store: CredentialStore,
        codec: TokenCodec,
        doc_token_ttl_seconds: int,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store
        self._codec = codec
        self._ttl_seconds = doc_token_ttl_seconds

    ##########################################
    ############### PROTECTION ###############
    ##########################################

    def protect(self, doc_id: str, password: str) -> None:
        """Set or replace the password of a document.

        Raises:
            ValidationFailed: If ``password`` is empty.
        """
        if not doc_id:
            raise ValidationFailed("missing_docId")
        if not password:
            raise ValidationFailed("missing_password")
        record = ProtectionRecord(hash=self._codec.hash_password(password))
        with self._store.update(StoreKind.PROTECTION) as acl:
            replaced = doc_id in acl
            acl[doc_id] = record.model_dump()
        self.logging.info("Document %s %s", doc_id, "password changed" if replaced else "protected", color="cyan")

    def protected_ids(self) -> list[str]:
        return list(self._store.load(StoreKind.PROTECTION).keys())

    def is_protected(self, doc_id: str) -> bool:
        return doc_id in self._store.load(StoreKind.PROTECTION)

    ##########################################
    ############ DOCUMENT SESSIONS ###########
    ##########################################

    def document_login(self, doc_id: str, password: str, at_ms: int | None = None) -> tuple[str, int]:
        """Exchange a document password for a signed session token.

        Args:
            doc_id (str): The protected document.
            password (str): The password supplied by the caller.
            at_ms (int | None): Issue time in epoch ms, defaults to now.

        Returns:
            tuple[str, int]: The token and its absolute expiry in epoch ms.

        Raises:
            NotProtected: If the document has no password.
            InvalidPassword: If the password does not match.
        """
        if not doc_id:
            raise ValidationFailed("missing_docId")
        entry = self._store.load(StoreKind.PROTECTION).get(doc_id)
        if not isinstance(entry, dict) or "hash" not in entry:
            raise NotProtected()
        if not self._codec.verify_password(password, entry["hash"]):
            self.logging.warning("Rejected document login for %s", doc_id)
            raise InvalidPassword()
        exp = (now_ms() if at_ms is None else at_ms) + self._ttl_seconds * 1000
        token = self._codec.sign(DocumentSessionClaims(d=doc_id, exp=exp).model_dump())
        return token, exp

    def has_write_access(self, doc_id: str, cookies: Mapping[str, str], at_ms: int | None = None) -> bool:
        """True if the cookie set holds a valid, unexpired session token bound to ``doc_id``."""
        token = doc_tokens(cookies).get(doc_id)
        payload = self._codec.verify(token, at_ms=at_ms)
        return bool(payload and payload.get("d") == doc_id)

    def set_session_cookie(self, response: Response, doc_id: str, token: str, secure: bool) -> None:
        response.set_cookie(
            doc_cookie_name(doc_id),
            token,
            max_age=self._ttl_seconds,
            httponly=True,
            path="/",
            samesite="lax",
            secure=secure,
        )

    def clear_session_cookie(self, response: Response, doc_id: str) -> None:
        response.delete_cookie(doc_cookie_name(doc_id), path="/", httponly=True, samesite="lax")

    ##########################################
    ################ STATUS ##################
    ##########################################

    def status(self, doc_id: str, cookies: Mapping[str, str], user_id: str | None) -> dict:
        """Read-only aggregate a client checks before attempting writes."""
        return {
            "protected": self.is_protected(doc_id),
            "canWrite": self.has_write_access(doc_id, cookies),
            "ownerId": self.get_owner(doc_id),
            "userId": user_id,
            "locked": self.is_locked(doc_id),
        }

    def batch_flags(self, doc_ids: list[str]) -> dict[str, DocumentFlags]:
        acl = self._store.load(StoreKind.PROTECTION)
        owners = self._store.load(StoreKind.OWNERS)
        locks = self._store.load(StoreKind.LOCKS)
        return {
            doc_id: DocumentFlags(
                ownerId=owners.get(doc_id),
                protected=doc_id in acl,
                locked=bool(locks.get(doc_id, False)),
            )
            for doc_id in dict.fromkeys(doc_ids)
        }

    ##########################################
    ############### OWNERSHIP ################
    ##########################################

    def get_owner(self, doc_id: str) -> str | None:
        return self._store.load(StoreKind.OWNERS).get(doc_id)

    def owners(self) -> dict[str, str]:
        return self._store.load(StoreKind.OWNERS)

    def owned_by(self, user_id: str) -> list[str]:
        return [doc_id for doc_id, owner in self.owners().items() if owner == user_id]

    def claim(self, doc_id: str, user_id: str | None) -> str:
        """Make ``user_id`` the owner of a document. First claimer wins.

        Raises:
            NotEmbodied: If the caller has no identity.
            AlreadyClaimed: If another identity owns the document.
        """
        if not user_id:
            raise NotEmbodied()
        with self._store.update(StoreKind.OWNERS) as owners:
            current = owners.get(doc_id)
            if current and current != user_id:
                raise AlreadyClaimed()
            owners[doc_id] = user_id
        if not current:
            self.logging.info("Document %s claimed by %s", doc_id, user_id)
        return user_id

    def unclaim(self, doc_id: str, user_id: str | None) -> None:
        """Release ownership. A no-op if nobody owns the document.

        Releasing also clears the lock flag, which only the owner could toggle.

        Raises:
            NotEmbodied: If the caller has no identity.
            NotOwner: If another identity owns the document.
        """
        if not user_id:
            raise NotEmbodied()
        with self._store.update(StoreKind.OWNERS) as owners:
            current = owners.get(doc_id)
            if current is None:
                return
            if current != user_id:
                raise NotOwner()
            del owners[doc_id]
        with self._store.update(StoreKind.LOCKS) as locks:
            locks.pop(doc_id, None)
        self.logging.info("Document %s released by %s", doc_id, user_id)

    ##########################################
    ################ LOCKS ###################
    ##########################################

    def is_locked(self, doc_id: str) -> bool:
        return bool(self._store.load(StoreKind.LOCKS).get(doc_id, False))

    def set_lock(self, doc_id: str, user_id: str | None, locked: bool) -> bool:
        """Set the lock flag. Only the current owner may do this.

        Raises:
            NotEmbodied: If the caller has no identity.
            NotOwner: If the caller does not own the document.
        """
        if not user_id:
            raise NotEmbodied()
        if self.get_owner(doc_id) != user_id:
            raise NotOwner()
        with self._store.update(StoreKind.LOCKS) as locks:
            if locked:
                locks[doc_id] = True
            else:
                locks.pop(doc_id, None)
        self.logging.info("Document %s %s by %s", doc_id, "locked" if locked else "unlocked", user_id)
        return locked

    ##########################################
    ################ LABELS ##################
    ##########################################

    def get_label(self, doc_id: str) -> str | None:
        return self._store.load(StoreKind.LABELS).get(doc_id)

    def labels(self) -> dict[str, str]:
        return self._store.load(StoreKind.LABELS)

    def set_label(self, doc_id: str, label: str | None) -> str | None:
        """Set a document's label; an empty or whitespace-only label removes it."""
        label = (label or "").strip()
        with self._store.update(StoreKind.LABELS) as labels:
            if label:
                labels[doc_id] = label
            else:
                labels.pop(doc_id, None)
        return label or None
