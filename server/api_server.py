"""FastAPI application entry point for the collaborative document server.

HTTP routes cover admin login, anonymous identities and per-document access
control; the WebSocket route on ``/`` carries sync-engine frames through the
connection gate.
"""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import ValidationError

from server.core.ConnectionGate import ConnectionGate
from server.core.DocumentAclService import DocumentAclService
from server.core.DocumentDiscovery import DocumentDiscovery
from server.core.SessionGate import SessionGate
from server.models.errors import AclError, AuthRequired
from server.routers.AuthRouter import router as auth_router
from server.routers.DocumentRouter import router as document_router
from server.routers.MetaRouter import router as meta_router
from server.routers.MetricsRouter import router as metrics_router
from server.routers.SyncRouter import router as sync_router
from server.routers.UserRouter import router as user_router
from shared.clients.sync.SyncClientManager import SyncClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.config import ServerSettings
from shared.security.TokenCodec import TokenCodec
from shared.stores.CredentialStore import CredentialStore

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")

DEFAULT_CORS_ORIGINS = ["http://localhost:5173", "http://localhost:8000"]


def load_settings(helper_config: HelperConfig) -> ServerSettings:
    """Resolve all server settings from the environment, creating the data dir."""
    return ServerSettings(
        data_dir=helper_config.get_path_val("DATA_DIR", default=".amrg", create=True),
        port=int(helper_config.get_number_val("PORT", default=3030)),
        admin_secret=helper_config.get_string_val("AUTH_TOKEN", default="") or None,
        doc_token_ttl_seconds=int(helper_config.get_number_val("DOC_TOKEN_TTL_SECONDS", default=24 * 60 * 60)),
        ws_close_grace_ms=int(helper_config.get_number_val("WS_CLOSE_GRACE_MS", default=200)),
        sync_engine=helper_config.get_string_val("SYNC_ENGINE", default="relay"),
    )


def cors_origins(helper_config: HelperConfig) -> list[str]:
    """Origins allowed to call with credentials. Read once, when the middleware is built."""
    return helper_config.get_list_val("CORS_ALLOWED_ORIGINS", default=DEFAULT_CORS_ORIGINS)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)
    settings = load_settings(app.state.helper_config)
    app.state.settings = settings

    if settings.open_mode:
        logging.warning(
            "AUTH_TOKEN is not set: server runs in OPEN mode, every caller is treated as admin.",
            color="red",
        )

    store = CredentialStore(helper_config=app.state.helper_config, data_dir=settings.data_dir)
    codec = TokenCodec(settings.admin_secret)
    app.state.store = store
    app.state.session_gate = SessionGate(
        helper_config=app.state.helper_config,
        store=store,
        settings=settings,
    )
    app.state.acl_service = DocumentAclService(
        helper_config=app.state.helper_config,
        store=store,
        codec=codec,
        doc_token_ttl_seconds=settings.doc_token_ttl_seconds,
    )
    app.state.connection_gate = ConnectionGate(
        helper_config=app.state.helper_config,
        session_gate=app.state.session_gate,
        acl_service=app.state.acl_service,
        close_grace_ms=settings.ws_close_grace_ms,
    )
    app.state.discovery = DocumentDiscovery(helper_config=app.state.helper_config, data_dir=settings.data_dir)

    sync_client = SyncClientManager(
        helper_config=app.state.helper_config,
        data_dir=settings.data_dir,
        engine=settings.sync_engine,
    ).get_client()
    await sync_client.boot()
    app.state.sync_client = sync_client

    logging.info("Document server ready, data dir %s", settings.data_dir, color="green")

    # while the app is running...
    yield

    logging.info("Shutting down sync engine...")
    await sync_client.close()
    logging.info("Document server shut down.")


app = FastAPI(
    title="amrg document server",
    description=(
        "Collaborative document sync server with admin login, per-document "
        "passwords, anonymous identities and document ownership. Sync frames "
        "travel over the WebSocket on / and are screened per frame."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(HelperConfig(logger=logging)),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.exception_handler(AclError)
async def handle_acl_error(request: Request, exc: AclError) -> Response:
    if isinstance(exc, AuthRequired):
        return PlainTextResponse("Unauthorized", status_code=401)
    return JSONResponse(status_code=exc.status_code, content={"ok": False, "error": exc.error})


@app.exception_handler(RequestValidationError)
@app.exception_handler(ValidationError)
async def handle_validation_error(request: Request, exc: Exception) -> JSONResponse:
    logging.debug("Rejected request body on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=400, content={"ok": False, "error": "invalid_request"})


app.include_router(auth_router)
app.include_router(user_router)
app.include_router(meta_router)
app.include_router(document_router)
app.include_router(metrics_router)
app.include_router(sync_router)


if __name__ == "__main__":
    import uvicorn

    port = int(HelperConfig(logger=logging).get_number_val("PORT", default=3030))
    logging.info("Starting document server v%s on port %d...", app_version, port)
    uvicorn.run(app, host="0.0.0.0", port=port)
