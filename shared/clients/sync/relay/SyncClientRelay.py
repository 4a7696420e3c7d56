import asyncio

from shared.clients.sync.SyncClientInterface import Frame, SyncClientInterface, SyncPeer
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class SyncClientRelay(SyncClientInterface):
    """Forwards every admitted frame verbatim to all other attached peers.

    Merging and persistence stay with the clients; the relay never decodes a frame.
    """

    def __init__(self, helper_config: HelperConfig, data_dir: str):
        super().__init__(helper_config=helper_config, data_dir=data_dir)
        self._max_frame_bytes = int(self.get_config_val("MAX_FRAME_BYTES", default=10 * 1024 * 1024, val_type="number"))

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_engine_name(self) -> str:
        return "Relay"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="MAX_FRAME_BYTES", val_type="number", default=10 * 1024 * 1024),
        ]

    ##########################################
    ################ FRAMES ##################
    ##########################################

    async def receive(self, peer: SyncPeer, frame: Frame) -> None:
        size = len(frame.encode("utf-8")) if isinstance(frame, str) else len(frame)
        if size > self._max_frame_bytes:
            self.logging.warning("Dropping %d byte frame from %s (limit %d)", size, peer.peer_id, self._max_frame_bytes)
            return

        targets = [p for p in self.get_peers() if p.peer_id != peer.peer_id]
        if not targets:
            return
        results = await asyncio.gather(*[p.send(frame) for p in targets], return_exceptions=True)
        for target, result in zip(targets, results):
            if isinstance(result, Exception):
                self.logging.warning("Relay to %s failed: %s", target.peer_id, result)
