from pydantic import BaseModel

from shared.models.acl import DocumentFlags


class OkResponse(BaseModel):
    ok: bool = True


class DocumentLoginResponse(OkResponse):
    exp: int


class DocumentStatusResponse(OkResponse):
    protected: bool
    canWrite: bool
    ownerId: str | None = None
    userId: str | None = None
    locked: bool = False


class UserResponse(OkResponse):
    userId: str | None = None


class UserDocsResponse(UserResponse):
    docs: list[str] = []


class OwnersResponse(OkResponse):
    owners: dict[str, str] = {}


class FlagsResponse(OkResponse):
    flags: dict[str, DocumentFlags] = {}


class ClaimResponse(OkResponse):
    ownerId: str | None = None


class LockResponse(OkResponse):
    locked: bool


class LabelResponse(OkResponse):
    label: str | None = None


class MetricsDocument(BaseModel):
    id: str
    type: str
    sizeBytes: int
    mtimeMs: float
    mtimeISO: str
    protected: bool
    label: str | None = None


class MetricsResponse(BaseModel):
    status: str = "ok"
    hostname: str
    port: int | None = None
    dataDir: str
    activeConnections: int
    documents: list[MetricsDocument] = []
