"""Structured logging for the console relay.

Every component receives a LoggerProtocol and binds its own name:

    from console_relay.logging import configure_logging, create_logger

    configure_logging(level="INFO", json_output=True)   # once, at startup
    logger = create_logger("console_relay")
    reader_log = logger.bind(component="log_reader", source="journal")

Components that were not handed a logger fall back to the one installed for
the current HTTP request (see request_scope), or to an unbound default.

Inside request_scope() the request id, method and path are also bound as
structlog context variables, so they appear on every event logged while the
request is handled, including events from code that never saw the request.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional

import structlog

from console_relay.protocols import LoggerProtocol, RequestContext

_configured = False

_request_context: ContextVar[Optional[RequestContext]] = ContextVar(
    "console_relay_request_context", default=None
)
_current_logger: ContextVar[Optional[LoggerProtocol]] = ContextVar(
    "console_relay_current_logger", default=None
)

# Third-party loggers that would otherwise repeat what we already log
_QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
}


class Logger:
    """LoggerProtocol over a structlog bound logger.

    Bound fields are kept on the wrapper so bind() can build children
    without reaching into structlog internals.
    """

    def __init__(self, fields: Optional[Dict[str, Any]] = None):
        self._fields: Dict[str, Any] = dict(fields or {})
        self._bound = structlog.get_logger().bind(**self._fields)

    @property
    def fields(self) -> Dict[str, Any]:
        return dict(self._fields)

    def bind(self, **fields: Any) -> "Logger":
        return Logger({**self._fields, **fields})

    def debug(self, event: str, **kw: Any) -> None:
        self._bound.debug(event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._bound.info(event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._bound.warning(event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._bound.error(event, **kw)

    def critical(self, event: str, **kw: Any) -> None:
        self._bound.critical(event, **kw)

    def exception(self, event: str, **kw: Any) -> None:
        """Log at error level with the active exception's traceback."""
        self._bound.exception(event, **kw)

    def __repr__(self) -> str:
        return f"Logger({self._fields!r})"


def _level_number(level: str) -> int:
    number = logging.getLevelName(level.upper())
    return number if isinstance(number, int) else logging.INFO


def configure_logging(level: str = "INFO", *, json_output: bool = True) -> None:
    """Route structlog and stdlib logging to stdout.

    Only the first call takes effect, so the composition root can call it
    unconditionally.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: One JSON object per line when True, colored console
            output otherwise
    """
    global _configured
    if _configured:
        return

    threshold = _level_number(level)

    # uvicorn and starlette log through stdlib logging
    logging.basicConfig(level=threshold, format="%(message)s", stream=sys.stdout)
    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)

    renderer = (
        structlog.processors.JSONRenderer(sort_keys=True)
        if json_output
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )
    _configured = True


def create_logger(component: str, **fields: Any) -> LoggerProtocol:
    """Root logger for a process-level component, e.g. create_logger("console_relay")."""
    return Logger({"component": component, **fields})


def get_current_logger() -> LoggerProtocol:
    """Logger installed by the enclosing request_scope, else an unbound one."""
    return _current_logger.get() or Logger()


def set_current_logger(logger: LoggerProtocol) -> None:
    _current_logger.set(logger)


def get_component_logger(
    component: str,
    logger: Optional[LoggerProtocol] = None,
) -> LoggerProtocol:
    """Bind ``component`` onto the injected logger or the current one."""
    return (logger or get_current_logger()).bind(component=component)


def get_request_context() -> Optional[RequestContext]:
    return _request_context.get()


@contextmanager
def request_scope(ctx: RequestContext, logger: LoggerProtocol) -> Iterator[RequestContext]:
    """Install ``ctx`` and ``logger`` for the duration of one request.

    The previous context and logger are restored on exit, so scopes nest.
    """
    ctx_token = _request_context.set(ctx)
    logger_token = _current_logger.set(logger)
    try:
        with structlog.contextvars.bound_contextvars(
            request_id=ctx.request_id,
            method=ctx.method,
            path=ctx.path,
        ):
            yield ctx
    finally:
        _current_logger.reset(logger_token)
        _request_context.reset(ctx_token)


__all__ = [
    "Logger",
    "configure_logging",
    "create_logger",
    "get_component_logger",
    "get_current_logger",
    "get_request_context",
    "request_scope",
    "set_current_logger",
]
