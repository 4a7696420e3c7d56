from pydantic import BaseModel


class PasswordRequest(BaseModel):
    """Body of /login and /docs/{id}/login. ``token`` is the legacy field name."""

    password: str | None = None
    token: str | None = None

    def get_password(self) -> str:
        return self.password if self.password is not None else (self.token or "")


class ProtectRequest(BaseModel):
    password: str | None = None


class EmbodyRequest(BaseModel):
    userKey: str | None = None
    userId: str | None = None


class LockRequest(BaseModel):
    locked: bool = False


class LabelRequest(BaseModel):
    label: str | None = None


class FlagsRequest(BaseModel):
    docIds: list[str] = []
