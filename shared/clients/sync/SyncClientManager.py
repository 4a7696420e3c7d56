from shared.helper.HelperConfig import HelperConfig
from shared.clients.sync.SyncClientInterface import SyncClientInterface


class SyncClientManager:
    """Manager class to instantiate the configured sync engine adapter."""

    def __init__(self, helper_config: HelperConfig, data_dir: str, engine: str | None = None):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self._data_dir = data_dir
        self._engine = engine
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """Read the sync engine name from env configuration.

        Returns:
            str: Capitalised engine name (e.g. "Relay").

        Raises:
            ValueError: If the engine name is empty.
        """
        engine = self._engine or self.helper_config.get_string_val("SYNC_ENGINE", default="relay")
        if not engine.strip():
            raise ValueError("No sync engine specified in configuration (SYNC_ENGINE).")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> SyncClientInterface:
        """Instantiate the sync client for the configured engine.

        Returns:
            SyncClientInterface: The instantiated client.

        Raises:
            ValueError: If the engine is unsupported or cannot be imported.
        """
        engine = self._get_engine_from_env()
        class_name = f"SyncClient{engine}"
        try:
            module = __import__(
                f"shared.clients.sync.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError("Unsupported sync engine '%s'. Error: %s" % (engine, e))
        client = client_class(helper_config=self.helper_config, data_dir=self._data_dir)
        self.logging.debug("Instantiated sync client for engine: %s", engine)
        return client

    def get_client(self) -> SyncClientInterface:
        """Return the instantiated sync client."""
        return self.client
