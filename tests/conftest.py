"""Pytest configuration and shared fixtures for gridsync tests."""

import pytest

import gridsync.io.logging_setup
from tests.harness import FakeView, SyncHarness


@pytest.fixture
def view():
    return FakeView()


@pytest.fixture
def sync():
    """A ConnectionManager on fakes, already connected."""
    harness = SyncHarness()
    harness.connect()
    return harness


@pytest.fixture
def tmp_settings(tmp_path, monkeypatch):
    """Redirect the settings file to a temp directory."""
    settings_file = tmp_path / "settings.json"
    monkeypatch.setattr("gridsync.io.settings.get_config_path", lambda: settings_file)
    return settings_file


@pytest.fixture
def clean_logging():
    gridsync.io.logging_setup.reset_for_tests()
    yield
    gridsync.io.logging_setup.reset_for_tests()
