"""Liveness banner and the admin metrics feed consumed by the dashboard."""

import socket

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from server.dependencies.auth import require_admin
from server.models.responses import MetricsDocument, MetricsResponse

router = APIRouter(tags=["metrics"])


@router.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return "👍 collaborative document sync server is running"


@router.get("/metrics.json", dependencies=[Depends(require_admin)])
async def metrics(request: Request) -> dict:
    """Report server identity, open sync sockets and every stored document.

    Documents are rediscovered from disk on each call and annotated with
    their protection flag and label.
    """
    state = request.app.state
    acl = state.acl_service
    protected = set(acl.protected_ids())
    labels = acl.labels()

    documents = [
        MetricsDocument(**doc.model_dump(), protected=doc.id in protected, label=labels.get(doc.id))
        for doc in state.discovery.list_documents()
    ]
    return MetricsResponse(
        hostname=socket.gethostname(),
        port=state.settings.port,
        dataDir=state.settings.data_dir,
        activeConnections=state.sync_client.get_peer_count(),
        documents=documents,
    ).model_dump()
