"""WebSocket endpoint for the sync engine, guarded by the connection gate."""

import uuid

from fastapi import APIRouter, WebSocket
from fastapi.responses import PlainTextResponse

from shared.clients.sync.SyncClientInterface import Frame, SyncPeer

router = APIRouter(tags=["sync"])


async def _reject(websocket: WebSocket) -> None:
    """Answer the upgrade with a raw 401 so no WebSocket handshake completes."""
    response = PlainTextResponse("Unauthorized", status_code=401, headers={"Connection": "close"})
    try:
        await websocket.send_denial_response(response)
    except RuntimeError:
        # Server without the denial-response extension: refuse the handshake instead
        await websocket.close(code=1008)


def _sender(websocket: WebSocket):
    async def send(frame: Frame) -> None:
        if isinstance(frame, str):
            await websocket.send_text(frame)
        else:
            await websocket.send_bytes(frame)
    return send


@router.websocket("/")
async def sync_socket(websocket: WebSocket) -> None:
    """Admit the socket, then screen every inbound frame before the sync engine sees it."""
    state = websocket.app.state
    gate = state.connection_gate
    sync_client = state.sync_client
    cookies = dict(websocket.cookies)

    if not gate.admit(cookies):
        client = websocket.client
        state.logging.warning("Rejected WebSocket upgrade from %s", client.host if client else "?")
        await _reject(websocket)
        return

    await websocket.accept()
    peer = SyncPeer(uuid.uuid4().hex, send=_sender(websocket))
    await sync_client.attach(peer)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            frame = message.get("bytes")
            if frame is None:
                frame = message.get("text")

            doc_id = gate.find_violation(frame, cookies)
            if doc_id is not None:
                await sync_client.detach(peer)
                await gate.enforce(websocket, doc_id)
                break
            await sync_client.receive(peer, frame)
    finally:
        await sync_client.detach(peer)
