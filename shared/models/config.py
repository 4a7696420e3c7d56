from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    Represents a single environment setting an engine adapter depends on.

    Attributes:
        env_key (str): The key/name of the environment variable, without the engine prefix.
        val_type (str): Expected value type: "string", "number", "bool" or "list".
        default (str | int | float | bool | list | None): Value used when the variable is unset. None marks the setting as required.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | list | None = None


class ServerSettings(BaseModel):
    """Resolved server configuration, built once at startup."""

    data_dir: str
    port: int
    admin_secret: str | None = None
    doc_token_ttl_seconds: int = 24 * 60 * 60
    ws_close_grace_ms: int = 200
    sync_engine: str = "relay"

    @property
    def open_mode(self) -> bool:
        """True when no admin secret is configured and every caller counts as admin."""
        return not self.admin_secret
