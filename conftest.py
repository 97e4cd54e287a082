"""Pytest configuration for Soft Delete Toolkit."""

import os

import pytest

from softdelete_toolkit.config import set_config
from softdelete_toolkit.soft_delete.fields import get_field_resolver


def pytest_configure(config):
    """Configure pytest with custom settings."""
    config.addinivalue_line("markers", "integration: test runs against a database file")


@pytest.fixture(autouse=True)
def reset_global_config(monkeypatch):
    """Start every test from default configuration."""
    for name in list(os.environ):
        if name.startswith("SOFTDELETE_"):
            monkeypatch.delenv(name, raising=False)
    set_config(None)
    get_field_resolver().clear()
    yield
    set_config(None)
    get_field_resolver().clear()
