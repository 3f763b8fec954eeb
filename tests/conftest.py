"""
Pytest configuration and fixtures for logship.

Provides cross-platform event loop configuration and isolation of the
process-wide token store / in-flight guard.
"""

import asyncio
import sys

import pytest

from logship.settings import get_settings
from logship.tokens import reset_state

# Set policy *before* pytest-asyncio creates any loops
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


@pytest.fixture(autouse=True)
def _isolate_shared_state():
    """Every test starts with empty shared stores and fresh settings."""
    reset_state()
    get_settings.cache_clear()
    yield
    reset_state()
    get_settings.cache_clear()


@pytest.fixture
def group_name():
    return "test-group"


@pytest.fixture
def stream_name():
    return "test-stream"
