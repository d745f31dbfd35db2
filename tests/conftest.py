"""
Pytest configuration and shared fixtures.
"""
import numpy as np
import pytest

from vlogstudio.config.settings import Settings
from vlogstudio.utils.logging_config import setup_logging

from utils import FakeSession, RecordingSleep, make_settings

# Set up logging for tests
setup_logging(level="DEBUG")


@pytest.fixture
def settings() -> Settings:
    """Settings with every provider configured and default tunables."""
    return make_settings()


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)
