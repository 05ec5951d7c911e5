"""
Shared test configuration and fixtures for the IP owner tests.
"""

import pytest

from tests.test_helpers import FakeClock


@pytest.fixture
def clock():
    """Controllable clock starting at a fixed reading."""
    return FakeClock()
