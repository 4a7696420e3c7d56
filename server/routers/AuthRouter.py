"""Admin login/logout. The admin cookie carries the operator secret itself."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from server.core.SessionGate import is_https
from server.dependencies.body import read_body
from server.models.errors import InvalidPassword
from server.models.requests import PasswordRequest
from server.models.responses import OkResponse

router = APIRouter(tags=["auth"])


@router.post("/login")
async def login(request: Request, body: dict = Depends(read_body)) -> JSONResponse:
    """Exchange the admin secret for the admin cookie.

    Raises:
        InvalidPassword: 401 if the password does not match the secret.
    """
    gate = request.app.state.session_gate
    password = PasswordRequest.model_validate(body).get_password()
    if not gate.check_admin_password(password):
        request.app.state.logging.warning("Admin login failed from %s", request.client.host if request.client else "?")
        raise InvalidPassword()

    response = JSONResponse(content=OkResponse().model_dump())
    gate.set_admin_cookie(response, secure=is_https(request.headers, request.url.scheme))
    return response


@router.post("/logout")
async def logout(request: Request) -> JSONResponse:
    response = JSONResponse(content=OkResponse().model_dump())
    request.app.state.session_gate.clear_admin_cookie(response)
    return response
