"""
Root conftest for all tests.

Shared fixtures for trust-chain evaluation and isolation of the per-event
logging context.
"""

import pytest

from libs.common.logging.context import clear_event_id

DEFAULT_TRUSTED_NETWORKS = ["10.0.0.0/8", "192.168.0.0/16"]


@pytest.fixture
def trusted_networks() -> list[str]:
    """The trusted networks used throughout the scenario tests."""
    return list(DEFAULT_TRUSTED_NETWORKS)


@pytest.fixture(autouse=True)
def _isolate_event_id():
    """Make sure no test leaks an event ID into the next one."""
    clear_event_id()
    yield
    clear_event_id()
