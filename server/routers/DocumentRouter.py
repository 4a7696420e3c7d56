"""Per-document protection, sessions, ownership, locks and labels."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from server.core.SessionGate import is_https
from server.dependencies.auth import current_user, require_admin
from server.dependencies.body import read_body
from server.models.requests import LabelRequest, LockRequest, PasswordRequest, ProtectRequest
from server.models.responses import (
    ClaimResponse,
    DocumentLoginResponse,
    DocumentStatusResponse,
    LabelResponse,
    LockResponse,
    OkResponse,
)

router = APIRouter(prefix="/docs/{doc_id}", tags=["documents"])


################ PROTECTION ##################

@router.post("/protect", dependencies=[Depends(require_admin)])
async def protect(request: Request, doc_id: str, body: dict = Depends(read_body)) -> dict:
    """Set or replace a document's password (admin only).

    Raises:
        ValidationFailed: 400 ``missing_password`` if the password is empty.
    """
    password = ProtectRequest.model_validate(body).password or ""
    request.app.state.acl_service.protect(doc_id, password)
    return OkResponse().model_dump()


@router.post("/login")
async def document_login(request: Request, doc_id: str, body: dict = Depends(read_body)) -> JSONResponse:
    """Exchange a document password for a document-scoped session cookie.

    Raises:
        NotProtected: 404 if the document has no password.
        InvalidPassword: 401 if the password is wrong.
    """
    acl = request.app.state.acl_service
    password = PasswordRequest.model_validate(body).get_password()
    token, exp = acl.document_login(doc_id, password)

    response = JSONResponse(content=DocumentLoginResponse(exp=exp).model_dump())
    acl.set_session_cookie(response, doc_id, token, secure=is_https(request.headers, request.url.scheme))
    return response


@router.post("/logout")
async def document_logout(request: Request, doc_id: str) -> JSONResponse:
    """Drop this browser's document session. Tokens are stateless, nothing is revoked server-side."""
    response = JSONResponse(content=OkResponse().model_dump())
    request.app.state.acl_service.clear_session_cookie(response, doc_id)
    return response


@router.get("/status")
async def status(request: Request, doc_id: str, user_id: str | None = Depends(current_user)) -> dict:
    result = request.app.state.acl_service.status(doc_id, request.cookies, user_id)
    return DocumentStatusResponse(**result).model_dump()


################ OWNERSHIP ##################

@router.post("/claim")
async def claim(request: Request, doc_id: str, user_id: str | None = Depends(current_user)) -> dict:
    owner_id = request.app.state.acl_service.claim(doc_id, user_id)
    return ClaimResponse(ownerId=owner_id).model_dump()


@router.post("/unclaim")
async def unclaim(request: Request, doc_id: str, user_id: str | None = Depends(current_user)) -> dict:
    request.app.state.acl_service.unclaim(doc_id, user_id)
    return ClaimResponse(ownerId=None).model_dump()


@router.post("/lock")
async def lock(
    request: Request,
    doc_id: str,
    body: dict = Depends(read_body),
    user_id: str | None = Depends(current_user),
) -> dict:
    locked = LockRequest.model_validate(body).locked
    result = request.app.state.acl_service.set_lock(doc_id, user_id, locked)
    return LockResponse(locked=result).model_dump()


################ LABELS ##################

@router.get("/label", dependencies=[Depends(require_admin)])
async def get_label(request: Request, doc_id: str) -> dict:
    return LabelResponse(label=request.app.state.acl_service.get_label(doc_id)).model_dump()


@router.post("/label", dependencies=[Depends(require_admin)])
async def set_label(request: Request, doc_id: str, body: dict = Depends(read_body)) -> dict:
    """Set a document label (admin only); an empty label clears it."""
    label = request.app.state.acl_service.set_label(doc_id, LabelRequest.model_validate(body).label)
    return LabelResponse(label=label).model_dump()
