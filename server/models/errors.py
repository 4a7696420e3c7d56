"""Error taxonomy of the access-control layer.

Every error maps to one HTTP status and one machine-readable ``error`` code;
the app renders them as ``{"ok": false, "error": <code>}``.
"""


class AclError(Exception):
    status_code: int = 400
    error: str = "bad_request"

    def __init__(self, error: str | None = None, detail: str | None = None) -> None:
        if error is not None:
            self.error = error
        super().__init__(detail or self.error)


class AuthRequired(AclError):
    """Missing or invalid admin cookie. Rendered as plain text for legacy clients."""

    status_code = 401
    error = "unauthorized"


class InvalidPassword(AclError):
    status_code = 401
    error = "invalid_password"


class NotProtected(AclError):
    status_code = 404
    error = "not_protected"


class NotEmbodied(AclError):
    status_code = 401
    error = "not_embodied"


class NotOwner(AclError):
    status_code = 403
    error = "not_owner"


class AlreadyClaimed(AclError):
    status_code = 409
    error = "already_claimed"


class ValidationFailed(AclError):
    """A required field is missing or empty. ``error`` names the field, e.g. "missing_password"."""

    status_code = 400
    error = "invalid_request"
