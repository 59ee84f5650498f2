"""Unit tests for logger creation and request scope."""

import pytest
import structlog

from console_relay.logging import (
    Logger,
    create_logger,
    get_component_logger,
    get_current_logger,
    get_request_context,
    request_scope,
)
from console_relay.protocols import LoggerProtocol, RequestContext


def _ctx(request_id="req-1"):
    return RequestContext(request_id=request_id, method="POST", path="/command")


class TestLogger:

    def test_create_logger_binds_component(self):
        logger = create_logger("reader", unit="minecraft-server.service")

        assert isinstance(logger, LoggerProtocol)
        assert logger.fields == {"component": "reader", "unit": "minecraft-server.service"}

    def test_bind_merges_context(self):
        child = create_logger("gateway").bind(request_id="abc")

        assert isinstance(child, Logger)
        assert child.fields == {"component": "gateway", "request_id": "abc"}

    def test_component_logger_uses_injected_logger(self, mock_logger):
        result = get_component_logger("fanout_session", mock_logger)

        mock_logger.bind.assert_called_once_with(component="fanout_session")
        assert result is mock_logger


class TestRequestScope:

    def test_defaults_outside_scope(self):
        assert get_request_context() is None
        assert isinstance(get_current_logger(), Logger)

    def test_scope_sets_and_restores(self, mock_logger):
        ctx = _ctx()

        with request_scope(ctx, mock_logger) as scoped:
            assert scoped is ctx
            assert get_request_context() is ctx
            assert get_current_logger() is mock_logger
            assert structlog.contextvars.get_contextvars()["request_id"] == "req-1"

        assert get_request_context() is None
        assert "request_id" not in structlog.contextvars.get_contextvars()

    def test_nested_scopes(self, mock_logger):
        outer, inner = _ctx("outer"), _ctx("inner")

        with request_scope(outer, mock_logger):
            with request_scope(inner, mock_logger):
                assert get_request_context() is inner
            assert get_request_context() is outer


class TestRequestContext:

    def test_to_dict(self):
        ctx = RequestContext(request_id="r", method="GET", path="/log", client="10.0.0.2")
        assert ctx.to_dict() == {
            "request_id": "r",
            "method": "GET",
            "path": "/log",
            "client": "10.0.0.2",
        }

    @pytest.mark.parametrize("request_id", ["", "   "])
    def test_request_id_required(self, request_id):
        with pytest.raises(ValueError):
            RequestContext(request_id=request_id, method="GET", path="/")
