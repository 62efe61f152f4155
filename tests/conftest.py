"""
Pytest configuration and shared fixtures for pydynamo tests.
"""
import pytest
import numpy as np
from pathlib import Path

import jax

jax.config.update("jax_enable_x64", True)
jax.config.update("jax_platforms", "cpu")


@pytest.fixture(scope="session")
def test_data_dir():
    """Fixture that provides the path to the test data directory."""
    return Path(__file__).parent


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
