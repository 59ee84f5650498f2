"""Console relay entry point.

Usage:
    console-relay                          # config.toml in the working directory
    console-relay --config /etc/relay.toml
    CONSOLE_RELAY_WEBSERVER__PORT=8080 console-relay

With webserver.cert_path set the server listens with TLS on
webserver.tls_port, otherwise plain HTTP on webserver.port.
"""

from __future__ import annotations

import argparse
import os
from typing import List, Optional

import uvicorn

from console_relay.bootstrap import create_app_context
from console_relay.gateway.app import create_app
from console_relay.settings import CONFIG_FILE_ENV, Settings, set_settings


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Relay a game server's log to websocket clients and forward operator commands",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help=f"TOML config file (default: ${CONFIG_FILE_ENV} or ./config.toml)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    if args.config is not None:
        os.environ[CONFIG_FILE_ENV] = args.config

    settings = Settings()
    set_settings(settings)

    context = create_app_context(settings)
    app = create_app(context)

    host = settings.webserver.host
    port = settings.listen_port()
    tls = settings.tls_files()
    context.logger.info("gateway_listening", host=host, port=port, tls=tls is not None)

    uvicorn.run(
        app,
        host=host,
        port=port,
        ssl_certfile=str(tls[0]) if tls else None,
        ssl_keyfile=str(tls[1]) if tls else None,
        log_level=settings.webserver.log_level.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
