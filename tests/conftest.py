import logging
import os
import tempfile

# Logs go to a throwaway directory instead of the checkout
os.environ.setdefault("ROOT_DIR", tempfile.mkdtemp(prefix="amrg-test-root-"))

import pytest
from fastapi.testclient import TestClient

from server.core.DocumentAclService import DocumentAclService
from server.core.SessionGate import SessionGate
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger
from shared.models.config import ServerSettings
from shared.security.TokenCodec import TokenCodec
from shared.stores.CredentialStore import CredentialStore

SECRET = "s3cret"


def parse_set_cookies(response) -> dict[str, str]:
    """Map cookie name to value for every Set-Cookie header of a response."""
    cookies = {}
    for header in response.headers.get_list("set-cookie"):
        name, _, rest = header.partition("=")
        cookies[name.strip()] = rest.split(";", 1)[0].strip().strip('"')
    return cookies


def cookie_header(cookies: dict[str, str]) -> dict[str, str]:
    """Explicit Cookie header so tests never depend on the client's cookie jar."""
    if not cookies:
        return {}
    return {"cookie": "; ".join(f"{k}={v}" for k, v in cookies.items())}


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=ColorLogger(logging.getLogger("amrg.tests")))


@pytest.fixture
def data_dir(tmp_path) -> str:
    path = tmp_path / "data"
    path.mkdir()
    return str(path)


@pytest.fixture
def store(helper_config, data_dir) -> CredentialStore:
    return CredentialStore(helper_config=helper_config, data_dir=data_dir)


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(SECRET)


@pytest.fixture
def settings(data_dir) -> ServerSettings:
    return ServerSettings(data_dir=data_dir, port=3030, admin_secret=SECRET)


@pytest.fixture
def session_gate(helper_config, store, settings) -> SessionGate:
    return SessionGate(helper_config=helper_config, store=store, settings=settings)


@pytest.fixture
def acl(helper_config, store, codec) -> DocumentAclService:
    return DocumentAclService(helper_config=helper_config, store=store, codec=codec, doc_token_ttl_seconds=3600)


@pytest.fixture
def make_client(monkeypatch, data_dir):
    """Build a TestClient against a fresh data dir. Use it as a context manager so the lifespan runs."""

    def _make(secret: str | None = SECRET, **env) -> TestClient:
        monkeypatch.setenv("DATA_DIR", data_dir)
        if secret:
            monkeypatch.setenv("AUTH_TOKEN", secret)
        else:
            monkeypatch.delenv("AUTH_TOKEN", raising=False)
        for key, value in env.items():
            monkeypatch.setenv(key, str(value))
        from server.api_server import app

        return TestClient(app)

    return _make
