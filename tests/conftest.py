"""Pytest configuration for correlator tests."""

import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from correlator.core.config import setup_testing  # noqa: E402
from correlator.core.context import ContextVarStore  # noqa: E402

# Testing configurations: the middleware needs an initialized library.
setup_testing()


@pytest.fixture
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


@pytest.fixture
def store():
    """A fresh context store, independent of the service singleton."""
    return ContextVarStore("test_correlation_id")
