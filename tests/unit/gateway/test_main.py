"""Unit tests for the composition root and the CLI entry point."""

from pathlib import Path
from unittest.mock import patch

from console_relay.bootstrap import create_app_context
from console_relay.gateway import main as main_module
from console_relay.settings import CONFIG_FILE_ENV, get_settings
from console_relay.sources import FileSource

from fixtures.transports import FakeSource


class TestCreateAppContext:

    def test_wires_settings_into_components(self, settings):
        context = create_app_context(settings)

        assert context.settings is settings
        assert context.bus.capacity == settings.minecraft.bus_capacity
        assert context.command_bridge.control_path == settings.minecraft.socket_path
        assert isinstance(context.reader._source, FileSource)
        assert not context.feed_alive

    def test_source_override(self, settings):
        source = FakeSource()
        context = create_app_context(settings, source=source)

        assert context.reader._source is source

    def test_without_reader(self, settings):
        context = create_app_context(settings, with_reader=False)

        assert context.reader is None
        assert not context.feed_alive


class TestMain:

    def test_parse_args_default(self):
        assert main_module.parse_args([]).config is None

    def test_runs_uvicorn_with_plain_http(self):
        with patch.object(main_module.uvicorn, "run") as run:
            main_module.main([])

        run.assert_called_once()
        kwargs = run.call_args.kwargs
        assert kwargs["port"] == 3000
        assert kwargs["ssl_certfile"] is None
        assert kwargs["log_config"] is None

    def test_config_flag_enables_tls(self, tmp_path, monkeypatch):
        config = tmp_path / "relay.toml"
        config.write_text('[webserver]\ncert_path = "/etc/relay/tls"\nport = 8443\n')
        monkeypatch.setenv(CONFIG_FILE_ENV, "unused.toml")

        with patch.object(main_module.uvicorn, "run") as run:
            main_module.main(["--config", str(config)])

        kwargs = run.call_args.kwargs
        assert kwargs["port"] == 443
        assert kwargs["ssl_certfile"] == str(Path("/etc/relay/tls/cert.pem"))
        assert kwargs["ssl_keyfile"] == str(Path("/etc/relay/tls/key.pem"))
        assert get_settings().webserver.cert_path == "/etc/relay/tls"
