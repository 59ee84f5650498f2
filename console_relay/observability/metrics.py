"""Prometheus metrics instrumentation for the console relay."""

from __future__ import annotations

from prometheus_client import Counter, Gauge


LINES_PUBLISHED = Counter(
    "console_relay_lines_published_total",
    "Log lines published to the broadcast bus.",
)

LINES_FILTERED = Counter(
    "console_relay_lines_filtered_total",
    "Source entries discarded because they belong to another unit.",
)

SUBSCRIBERS = Gauge(
    "console_relay_bus_subscribers",
    "Live broadcast bus subscriptions.",
)

LAG_EVENTS = Counter(
    "console_relay_lag_events_total",
    "Times a subscriber observed dropped lines.",
)

LINES_SKIPPED = Counter(
    "console_relay_lines_skipped_total",
    "Lines evicted from a lagging subscriber's queue.",
)

ACTIVE_SESSIONS = Gauge(
    "console_relay_active_sessions",
    "Websocket fanout sessions currently running.",
)

SESSIONS_ENDED = Counter(
    "console_relay_sessions_ended_total",
    "Fanout sessions ended, by reason.",
    labelnames=("reason",),
)

COMMANDS = Counter(
    "console_relay_commands_total",
    "Operator commands by outcome.",
    labelnames=("outcome",),
)

HTTP_REQUESTS = Counter(
    "console_relay_http_requests_total",
    "HTTP requests by method, path and status.",
    labelnames=("method", "path", "status_code"),
)


def record_lag(skipped: int) -> None:
    LAG_EVENTS.inc()
    LINES_SKIPPED.inc(skipped)


def record_session_end(reason: str) -> None:
    SESSIONS_ENDED.labels(reason=reason).inc()


def record_command(success: bool) -> None:
    COMMANDS.labels(outcome="delivered" if success else "failed").inc()


def record_http_request(method: str, path: str, status_code: int) -> None:
    HTTP_REQUESTS.labels(method=method, path=path, status_code=str(status_code)).inc()
