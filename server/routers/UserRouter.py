"""Anonymous identities: embody a client-held key and look up the caller."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from server.core.SessionGate import is_https
from server.dependencies.auth import current_user
from server.dependencies.body import read_body
from server.models.requests import EmbodyRequest
from server.models.responses import UserDocsResponse, UserResponse

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/embody")
async def embody(request: Request, body: dict = Depends(read_body)) -> JSONResponse:
    """Bind ``userKey`` to a stable short user id and set the identity cookie.

    Raises:
        ValidationFailed: 400 if neither userKey nor a legacy userId is given.
    """
    gate = request.app.state.session_gate
    payload = EmbodyRequest.model_validate(body)
    user_id = gate.embody(user_key=payload.userKey, user_id=payload.userId)

    response = JSONResponse(content=UserResponse(userId=user_id).model_dump())
    gate.set_identity_cookie(response, user_id, secure=is_https(request.headers, request.url.scheme))
    return response


@router.get("/me")
async def me(user_id: str | None = Depends(current_user)) -> dict:
    return UserResponse(userId=user_id).model_dump()


@router.get("/me/docs")
async def my_docs(request: Request, user_id: str | None = Depends(current_user)) -> dict:
    """List the documents the caller owns."""
    docs = request.app.state.acl_service.owned_by(user_id) if user_id else []
    return UserDocsResponse(userId=user_id, docs=docs).model_dump()
