"""Unit tests for settings loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from console_relay.settings import (
    CONFIG_FILE_ENV,
    Settings,
    WebserverSettings,
    get_settings,
    reset_settings,
    set_settings,
)

TOML_CONFIG = """
[minecraft]
systemd_unit = "paper.service"
socket_path = "/run/paper.stdin"

[webserver]
cert_path = "/etc/console-relay/tls"
map_path = "var/lib/minecraft/bluemap/web"
"""


class TestDefaults:

    def test_defaults(self):
        settings = Settings()

        assert settings.minecraft.systemd_unit == "minecraft-server.service"
        assert settings.minecraft.socket_path == "/run/minecraft-server.stdin"
        assert settings.minecraft.log_source == "journal"
        assert settings.minecraft.bus_capacity == 16
        assert settings.webserver.port == 3000
        assert settings.webserver.websocket_probe_message is None

    def test_plain_http_without_cert_path(self):
        settings = Settings()

        assert settings.tls_files() is None
        assert settings.listen_port() == 3000


class TestSources:
    """TOML file, environment and precedence."""

    def test_config_toml_in_working_directory(self):
        Path("config.toml").write_text(TOML_CONFIG)

        settings = Settings()

        assert settings.minecraft.systemd_unit == "paper.service"
        assert settings.minecraft.socket_path == "/run/paper.stdin"
        assert settings.webserver.map_path == "var/lib/minecraft/bluemap/web"

    def test_tls_from_cert_path(self):
        Path("config.toml").write_text(TOML_CONFIG)

        settings = Settings()

        assert settings.tls_files() == (
            Path("/etc/console-relay/tls/cert.pem"),
            Path("/etc/console-relay/tls/key.pem"),
        )
        assert settings.listen_port() == 443

    def test_bluemaps_path_key_sets_map_path(self):
        Path("config.toml").write_text('[webserver]\nbluemaps_path = "srv/map"\n')

        assert Settings().webserver.map_path == "srv/map"

    def test_map_path_keyword(self):
        assert WebserverSettings(map_path="srv/map").map_path == "srv/map"

    def test_config_file_env(self, tmp_path, monkeypatch):
        config = tmp_path / "elsewhere" / "relay.toml"
        config.parent.mkdir()
        config.write_text('[minecraft]\nsystemd_unit = "fabric.service"\n')
        monkeypatch.setenv(CONFIG_FILE_ENV, str(config))

        assert Settings().minecraft.systemd_unit == "fabric.service"

    def test_nested_environment_variables(self, monkeypatch):
        monkeypatch.setenv("CONSOLE_RELAY_MINECRAFT__SOCKET_PATH", "/tmp/mc.stdin")
        monkeypatch.setenv("CONSOLE_RELAY_WEBSERVER__PORT", "8080")

        settings = Settings()

        assert settings.minecraft.socket_path == "/tmp/mc.stdin"
        assert settings.webserver.port == 8080

    def test_environment_overrides_toml(self, monkeypatch):
        Path("config.toml").write_text(TOML_CONFIG)
        monkeypatch.setenv("CONSOLE_RELAY_MINECRAFT__SYSTEMD_UNIT", "override.service")

        settings = Settings()

        assert settings.minecraft.systemd_unit == "override.service"
        assert settings.minecraft.socket_path == "/run/paper.stdin"


class TestValidation:

    def test_log_level_is_normalized(self):
        assert WebserverSettings(log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level_rejected(self):
        with pytest.raises(ValidationError):
            WebserverSettings(log_level="loud")

    def test_log_source_must_be_known(self):
        with pytest.raises(ValidationError):
            Settings(minecraft={"log_source": "syslog"})

    def test_bus_capacity_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(minecraft={"bus_capacity": 0})


class TestGlobalSettings:

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_set_and_reset(self):
        custom = Settings(webserver={"port": 9000})
        set_settings(custom)
        assert get_settings() is custom

        reset_settings()
        assert get_settings() is not custom
