# PATH: tests/conftest.py
"""
Pytest configuration and fixtures for LENDSIM tests.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from lending.memory import InMemoryStateSource, demo_state  # noqa: E402
from lending.simulator import SimulationEngine  # noqa: E402
from lending.state_reader import StateReader  # noqa: E402


def pytest_configure(config):
    """Configure pytest."""
    # Add custom markers
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


@pytest.fixture
def state():
    """Demo position snapshot: 20.0 collateral, 8.0 debt, HF 2.125."""
    return demo_state()


@pytest.fixture
def memory_source():
    """Fresh in-memory ledger holding the demo position."""
    return InMemoryStateSource()


@pytest.fixture
def engine(memory_source):
    """Simulation engine reading from the in-memory ledger."""
    return SimulationEngine(StateReader(memory_source))
