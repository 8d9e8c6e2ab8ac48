"""
Test configuration and fixtures for the TestIT Importer project.

This file is the root pytest configuration file that sets up pytest
markers and imports fixtures from the fixtures modules to make them
available to all tests.
"""

import pytest

from tests.fixtures.export import export_dir
from tests.fixtures.fake_tms import FakeTestIt


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark a test as a unit test")
    config.addinivalue_line("markers", "integration: mark a test as an integration test")
    config.addinivalue_line("markers", "cli: mark a test that tests CLI functionality")


@pytest.fixture
def fake_tms() -> FakeTestIt:
    """An empty fake Test IT server."""
    return FakeTestIt()


@pytest.fixture
def tms_client(fake_tms):
    """A real TmsClient talking to the fake server without retry pauses."""
    return fake_tms.client()
