"""
Pytest configuration for lazyset tests.

Puts the repository root on the Python path so the tests can import the
lazyset package without installing it.
"""

import sys
from pathlib import Path

# Add the parent directory to the Python path
parent_dir = Path(__file__).parent.parent
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))

import pytest

from lazyset import build_registry


@pytest.fixture
def registry():
    """A private registry preloaded with the bundled plugins"""
    return build_registry("test")


@pytest.fixture
def naturals():
    """Generator function producing 1, 2, 3, ... forever"""
    def counter():
        n = 1
        while True:
            yield n
            n += 1
    return counter


@pytest.fixture
def counting_producer():
    """Finite producer that records how often it is started"""
    calls = {"count": 0}

    def producer():
        calls["count"] += 1
        yield from range(10)

    producer.calls = calls
    return producer
