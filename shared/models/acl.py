"""Pydantic models for the access-control layer.

Hierarchy:
  ProtectionRecord: stored password hash of one protected document.
  DocumentSessionClaims: payload carried inside a signed document-session token.
  DocumentSummary: discovery-time view of one stored document.
  DocumentFlags: owner/protection/lock triple used by list views.
"""

from typing import Literal

from pydantic import BaseModel


class ProtectionRecord(BaseModel):
    """Password requirement for one document. Only the keyed hash is stored."""

    hash: str


class DocumentSessionClaims(BaseModel):
    """Claims of a document-session token.

    Attributes:
        d:   Document id the token is bound to.
        exp: Absolute expiry in epoch milliseconds.
    """

    d: str
    exp: int


class DocumentSummary(BaseModel):
    """A logical document reconstructed from the storage layout.

    Derived on every request, never persisted.
    """

    id: str
    type: Literal["dir", "file"]
    sizeBytes: int
    mtimeMs: float
    mtimeISO: str


class DocumentFlags(BaseModel):
    ownerId: str | None = None
    protected: bool = False
    locked: bool = False
