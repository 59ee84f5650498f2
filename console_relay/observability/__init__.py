"""Observability for the console relay (Prometheus metrics)."""

from console_relay.observability.metrics import (
    record_command,
    record_http_request,
    record_lag,
    record_session_end,
)

__all__ = [
    "record_command",
    "record_http_request",
    "record_lag",
    "record_session_end",
]
