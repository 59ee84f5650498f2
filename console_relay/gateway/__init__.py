"""Console Relay Gateway - HTTP and WebSocket surface.

This package exposes the relay core over HTTP:
- /ws streams live log lines (one FanoutSession per connection)
- /log returns the current log file
- /command writes to the server's control input

Static assets, TLS and configuration loading are thin wrappers around
FastAPI, uvicorn and pydantic-settings.
"""

from console_relay.gateway.app import create_app

__all__ = ["create_app"]
