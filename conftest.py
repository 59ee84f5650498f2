"""Root conftest.py for console-relay tests.

This file MUST be at the repository root for fixtures to be discovered
when running tests from any subdirectory.
"""

import pytest
from unittest.mock import MagicMock


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing.

    bind() returns the same mock, so components that bind their own
    context still log through it and calls can be asserted directly.
    """
    logger = MagicMock(name="logger")
    logger.bind.return_value = logger
    return logger
