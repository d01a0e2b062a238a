"""Pytest fixtures for magick bridge tests."""

from pathlib import Path

import pytest

from magick_bridge.config import Settings
from magick_bridge.core.preferences import MemoryPreferenceStore
from magick_bridge.services.bridge_service import MagickBridgeService

from tests.helpers.fake_runner import FakeMagickRunner

FAKE_MAGICK = Path("/fake/magick")
FAKE_VERSION = "7.1.0-0"


@pytest.fixture
def test_settings(tmp_path):
    """Settings isolated from the environment and the user's home directory."""
    return Settings(
        _env_file=None,
        executable_path=None,
        preferences_dir=str(tmp_path / "prefs"),
        memory_limit="",
        map_limit="",
        disk_limit="",
    )


@pytest.fixture
def fake_runner():
    return FakeMagickRunner()


@pytest.fixture
def memory_store():
    return MemoryPreferenceStore()


@pytest.fixture
def service(fake_runner, test_settings, memory_store):
    """An uninitialised service wired to the fake runner."""
    return MagickBridgeService(
        runner=fake_runner, settings=test_settings, preferences=memory_store
    )


@pytest.fixture
def ready_service(service):
    """A service initialised against the fake executable."""
    service.initialize_with_path(FAKE_MAGICK, FAKE_VERSION)
    return service


@pytest.fixture
def fake_magick_file(tmp_path):
    """A regular file standing in for a magick binary on disk."""
    path = tmp_path / "bin" / "magick"
    path.parent.mkdir(parents=True)
    path.write_bytes(b"#!/bin/sh\n")
    path.chmod(0o755)
    return path
