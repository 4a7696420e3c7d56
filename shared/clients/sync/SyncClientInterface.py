from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

Frame = bytes | str


class SyncPeer:
    """One admitted socket as seen by a sync engine.

    Args:
        peer_id (str): Opaque, unique connection id.
        send (Callable[[Frame], Awaitable[None]]): Coroutine delivering a frame to the socket.
    """

    def __init__(self, peer_id: str, send: Callable[[Frame], Awaitable[None]]) -> None:
        self.peer_id = peer_id
        self._send = send

    async def send(self, frame: Frame) -> None:
        await self._send(frame)

    def __repr__(self) -> str:
        return f"SyncPeer({self.peer_id!r})"


class SyncClientInterface(ABC):
    """Adapter around the external document sync engine.

    The engine owns the wire protocol and the storage encoding. The server only
    hands it frames that already passed the connection gate.
    """

    def __init__(self, helper_config: HelperConfig, data_dir: str):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self._data_dir = data_dir
        self._peers: dict[str, SyncPeer] = {}
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Validates that all required configuration values for the engine are set and valid.

        Raises:
            ValueError: If any required configuration value is missing or invalid.
        """
        for config in self._get_required_config():
            _ = self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_engine_name(self) -> str:
        """
        Returns the name of the engine in lowercase. E.g. "relay"
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Returns all configurations the engine reads.

        Returns:
            list[EnvConfig]: A list containing the details of each configuration key.
        """
        pass

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Retrieves an engine setting. Keys are prefixed, e.g. "SYNC_RELAY_MAX_FRAME_BYTES".

        Args:
            raw_key (str): The setting name without prefix
            default (Any): The value to return if the variable is not set
            val_type (str): "string", "number", "bool" or "list"
        """
        key = f"SYNC_{self.get_engine_name().upper()}_{raw_key.upper()}"
        if val_type == "string":
            return self._helper_config.get_string_val(key, default=default)
        elif val_type == "number":
            return self._helper_config.get_number_val(key, default=default)
        elif val_type == "bool":
            return self._helper_config.get_bool_val(key, default=default)
        elif val_type == "list":
            return self._helper_config.get_list_val(key, default=default)
        else:
            raise ValueError(f"Unsupported config value type '{val_type}' for env key '{raw_key}' in sync engine '{self.get_engine_name()}'.")

    def get_peer_count(self) -> int:
        return len(self._peers)

    def get_peers(self) -> list[SyncPeer]:
        return list(self._peers.values())

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        """Prepare engine resources. Called once from the app lifespan."""
        self.logging.info("Sync engine '%s' booted on %s", self.get_engine_name(), self._data_dir)

    async def close(self) -> None:
        """Release engine resources and forget all peers."""
        self._peers.clear()

    async def attach(self, peer: SyncPeer) -> None:
        """Register a socket that passed the upgrade gate."""
        self._peers[peer.peer_id] = peer
        self.logging.debug("Peer %s attached (%d active)", peer.peer_id, len(self._peers))

    async def detach(self, peer: SyncPeer) -> None:
        """Forget a socket. Safe to call more than once."""
        if self._peers.pop(peer.peer_id, None) is not None:
            self.logging.debug("Peer %s detached (%d active)", peer.peer_id, len(self._peers))

    ##########################################
    ################ FRAMES ##################
    ##########################################

    @abstractmethod
    async def receive(self, peer: SyncPeer, frame: Frame) -> None:
        """Process one inbound frame that was admitted by the connection gate.

        Args:
            peer (SyncPeer): The sending socket.
            frame (Frame): Text or binary frame content, unmodified.
        """
        pass
