"""Pytest configuration for console-relay tests.

Key Principles:
- Every test runs in its own working directory with no CONSOLE_RELAY_*
  environment, so no config.toml or .env leaks in
- Log sources and client transports are faked (fixtures.transports)
- Real FIFOs and subprocesses are used where the behavior depends on them
"""

import os
import sys
from pathlib import Path

import pytest

# tests directory (for fixtures.*)
tests_root = Path(__file__).parent
if str(tests_root) not in sys.path:
    sys.path.insert(0, str(tests_root))

from console_relay.bus import BroadcastBus
from console_relay.settings import (
    MinecraftSettings,
    Settings,
    WebserverSettings,
    reset_settings,
)


# =============================================================================
# PYTEST MARKERS
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (may use mocks)"
    )
    config.addinivalue_line(
        "markers", "integration: Tests using real FIFOs or subprocesses"
    )
    config.addinivalue_line(
        "markers", "slow: Slow-running tests"
    )


# =============================================================================
# ISOLATION
# =============================================================================

@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Fresh cwd, no relay env vars, no cached global settings."""
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.upper().startswith("CONSOLE_RELAY_"):
            monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()


# =============================================================================
# SHARED FIXTURES
# =============================================================================

@pytest.fixture
def bus() -> BroadcastBus:
    """Bus with the default per-subscriber capacity."""
    return BroadcastBus()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing every path into tmp_path.

    The log file and control input are NOT created; tests create what
    they need.
    """
    return Settings(
        minecraft=MinecraftSettings(
            log_path=str(tmp_path / "latest.log"),
            socket_path=str(tmp_path / "server.stdin"),
            log_source="file",
            poll_interval=0.01,
        ),
        webserver=WebserverSettings(
            assets_dir=str(tmp_path / "no-assets"),
            log_json=False,
        ),
    )
