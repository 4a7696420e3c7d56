"""Connection gate: upgrade-time admin check and per-frame write policy.

The sync protocol is owned by the external engine, so frames are never
parsed. Instead every inbound frame is scanned for the raw bytes of each
protected document id. A hit on a socket without a valid session token for
that document is treated as an unauthorized write and the socket is closed
with 1008 (policy violation). This is a heuristic: an id that appears inside
unrelated payload bytes also triggers it.
"""

import asyncio
from typing import Any, Mapping

from starlette.websockets import WebSocket

from server.core.DocumentAclService import DocumentAclService
from server.core.SessionGate import SessionGate
from shared.helper.HelperConfig import HelperConfig

POLICY_VIOLATION = 1008
POLICY_VIOLATION_REASON = "Write to protected document not authorized"


def frame_to_bytes(frame: Any) -> bytes:
    """Normalise text, binary and fragmented frame payloads to one byte string."""
    if frame is None:
        return b""
    if isinstance(frame, str):
        return frame.encode("utf-8")
    if isinstance(frame, (bytes, bytearray, memoryview)):
        return bytes(frame)
    if isinstance(frame, (list, tuple)):
        return b"".join(frame_to_bytes(part) for part in frame)
    return str(frame).encode("utf-8")


class ConnectionGate:
    """Authorisation checkpoint for sync sockets."""

    def __init__(
        self,
        helper_config: HelperConfig,
        session_gate: SessionGate,
        acl_service: DocumentAclService,
        close_grace_ms: int = 200,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._session_gate = session_gate
        self._acl = acl_service
        self._grace_seconds = close_grace_ms / 1000

    ##########################################
    ################ UPGRADE #################
    ##########################################

    def admit(self, cookies: Mapping[str, str]) -> bool:
        """Upgrade-time check, identical to the HTTP admin check."""
        return self._session_gate.authenticate_admin(cookies)

    ##########################################
    ################ FRAMES ##################
    ##########################################

    def find_violation(self, frame: Any, cookies: Mapping[str, str]) -> str | None:
        """Return the protected document id this frame writes to without permission, if any.

        Args:
            frame (Any): Raw frame payload (text, bytes or list of fragments).
            cookies (Mapping[str, str]): Cookies captured at upgrade time.

        Returns:
            str | None: The first offending document id, or None if the frame may pass.
        """
        protected = self._acl.protected_ids()
        if not protected:
            return None
        payload = frame_to_bytes(frame)
        for doc_id in protected:
            if doc_id and doc_id.encode("utf-8") in payload:
                if not self._acl.has_write_access(doc_id, cookies):
                    return doc_id
        return None

    async def enforce(self, websocket: WebSocket, doc_id: str) -> None:
        """Close a socket for a policy violation and tear it down after the grace period.

        The close frame is sent first; if the peer does not acknowledge within
        the grace period the handler returns anyway, which drops the transport.
        """
        client = websocket.client
        self.logging.warning(
            "Closing socket %s: unauthorized frame for protected document %s",
            f"{client.host}:{client.port}" if client else "?",
            doc_id,
            color="yellow",
        )
        await websocket.close(code=POLICY_VIOLATION, reason=POLICY_VIOLATION_REASON)
        try:
            await asyncio.wait_for(self._drain(websocket), timeout=self._grace_seconds)
        except asyncio.TimeoutError:
            self.logging.debug("Peer ignored close frame, terminating.")

    async def _drain(self, websocket: WebSocket) -> None:
        """Discard inbound messages until the peer acknowledges the close."""
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                return
