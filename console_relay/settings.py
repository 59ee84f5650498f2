"""Settings for the console relay.

Sources, highest priority first:
    1. keyword arguments (tests, composition root)
    2. environment variables, prefix CONSOLE_RELAY_, nested delimiter "__"
       (e.g. CONSOLE_RELAY_MINECRAFT__SOCKET_PATH=/run/mc.stdin)
    3. .env in the working directory
    4. TOML file: config.toml in the working directory, or the path named by
       CONSOLE_RELAY_CONFIG_FILE, with [minecraft] and [webserver] tables

Example config.toml:

    [minecraft]
    systemd_unit = "minecraft-server.service"
    socket_path = "/run/minecraft-server.stdin"

    [webserver]
    cert_path = "/etc/console-relay/tls"
    map_path = "var/lib/minecraft/bluemap/web"
"""

import logging
import os
from pathlib import Path
from typing import Literal, Optional, Tuple, Type

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

CONFIG_FILE_ENV = "CONSOLE_RELAY_CONFIG_FILE"
DEFAULT_CONFIG_FILE = "config.toml"


class MinecraftSettings(BaseModel):
    """Managed process: where its logs come from and where commands go."""

    # Snapshot file served by GET /log, and the tailed file when log_source="file"
    log_path: str = "/var/lib/minecraft/logs/latest.log"

    # Control input (the server's stdin, exposed as a FIFO by systemd)
    socket_path: str = "/run/minecraft-server.stdin"

    # Journal unit whose entries are relayed; exact match on _SYSTEMD_UNIT
    systemd_unit: str = "minecraft-server.service"

    log_source: Literal["journal", "file"] = "journal"
    poll_interval: float = Field(default=1.0, gt=0.0, le=60.0)
    bus_capacity: int = Field(default=16, ge=1, le=65536)


class WebserverSettings(BaseModel):
    """HTTP surface."""

    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)
    tls_port: int = Field(default=443, ge=1, le=65535)

    # Directory holding cert.pem and key.pem; enables TLS when set
    cert_path: Optional[str] = None

    # Directory served under /map/ (rooted at /). Older config files call it
    # bluemaps_path
    map_path: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("map_path", "bluemaps_path"),
    )

    assets_dir: str = "assets"

    # Text frame sent when a websocket session starts; None disables the probe
    websocket_probe_message: Optional[str] = None

    log_level: str = "INFO"
    log_json: bool = True

    @field_validator("log_level", mode="after")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Accept only level names the logging module knows."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Invalid log level: {v}")
        return level


class Settings(BaseSettings):
    """Console relay settings."""

    minecraft: MinecraftSettings = Field(default_factory=MinecraftSettings)
    webserver: WebserverSettings = Field(default_factory=WebserverSettings)

    model_config = SettingsConfigDict(
        env_prefix="CONSOLE_RELAY_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        toml_file = Path(os.environ.get(CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE))
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            file_secret_settings,
        )

    # =========================================================================
    # HELPER METHODS
    # =========================================================================
    def tls_files(self) -> Optional[Tuple[Path, Path]]:
        """Return (cert.pem, key.pem) when TLS is configured."""
        if not self.webserver.cert_path:
            return None
        base = Path(self.webserver.cert_path)
        return base / "cert.pem", base / "key.pem"

    def listen_port(self) -> int:
        return self.webserver.tls_port if self.webserver.cert_path else self.webserver.port


# =============================================================================
# GLOBAL SETTINGS (Lazy Initialization)
# =============================================================================

_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get global settings instance.

    Creates a new Settings instance lazily if none exists.
    Prefer dependency injection over this global getter for testability.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings_instance: Settings) -> None:
    """Set the global settings instance (bootstrap and tests)."""
    global _settings
    _settings = settings_instance


def reset_settings() -> None:
    """Reset the global settings instance.

    Forces re-creation on next get_settings() call.
    """
    global _settings
    _settings = None
