from fastapi import Request

from server.models.errors import AuthRequired


async def require_admin(request: Request) -> None:
    """Verify the admin cookie against the configured secret.

    Args:
        request (Request): The FastAPI request object (provides app.state).

    Raises:
        AuthRequired: 401 if the cookie is missing or does not match.
    """
    if not request.app.state.session_gate.authenticate_admin(request.cookies):
        request.app.state.logging.warning("Admin auth failed for %s %s", request.method, request.url.path)
        raise AuthRequired()


async def current_user(request: Request) -> str | None:
    """Resolve the caller's anonymous identity from the identity cookie."""
    return request.app.state.session_gate.identify(request.cookies)
