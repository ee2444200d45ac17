"""Configuration schema using Pydantic.

Single data model and defaults for vbookbridge, persisted to ~/.vbookbridge/config.json.
"""

from pydantic import BaseModel, Field, ConfigDict
from pydantic_settings import BaseSettings


class AddressConfig(BaseModel):
    """Target address normalization."""
    default_port: int = 8080  # Appended when the operator omits a port
    bridge_port_offset: int = 10  # Local file bridge listens on target port minus this


class ResolverConfig(BaseModel):
    """Callback address selection."""
    prefix_octets: int = 2  # Leading octets compared against the target host
    private_weight: int = 10
    prefix_weight: int = 5
    skip_interface_patterns: list[str] = Field(
        default_factory=lambda: ["vethernet", "virtual", "hyper-v", "wsl", "vmware", "virtualbox", "docker"]
    )


class BridgeConfig(BaseModel):
    """Local file bridge (HTTP server the runtime app calls back into)."""
    bind_host: str = "0.0.0.0"
    log_level: str = "warning"
    shutdown_timeout: float = 2.0


class ClientConfig(BaseModel):
    """Connection to the runtime app."""
    connect_timeout: float = 10.0
    response_timeout: float | None = 60.0  # None waits until the runtime app closes
    chunk_size: int = 4096
    install_timeout: float = 30.0


class SessionConfig(BaseModel):
    """Per-project session state file, relative to the project root."""
    dirname: str = ".vbook"
    filename: str = "session.json"


class Config(BaseSettings):
    """Root configuration for vbookbridge."""
    address: AddressConfig = Field(default_factory=AddressConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    bridge: BridgeConfig = Field(default_factory=BridgeConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)

    model_config = ConfigDict(
        env_prefix="VBOOKBRIDGE_",
        env_nested_delimiter="__"
    )
