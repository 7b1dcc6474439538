"""
Test Configuration File

Unified setup for Python path, avoiding sys.path.insert in each test file.
Provides the QApplication fixture required for PyQt6 tests and the shared
fakes of the client core collaborators.
"""

import os
import sys
from pathlib import Path

import pytest

# Add the src directory to the Python path
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

tests_path = Path(__file__).parent
if str(tests_path) not in sys.path:
    sys.path.insert(0, str(tests_path))

# Headless Qt for CI
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(scope="session")
def qapp():
    """
    Create QApplication for all tests.

    Uses session scope to avoid creating multiple QApplication instances.
    """
    from PyQt6.QtWidgets import QApplication

    # Check if a QApplication instance already exists
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


@pytest.fixture
def scheduler():
    from fakes import ManualScheduler

    return ManualScheduler()


@pytest.fixture
def transport():
    from fakes import FakeTransport

    return FakeTransport()


@pytest.fixture
def event_bus():
    from core.event_bus import EventBus

    bus = EventBus()
    yield bus
    bus.shutdown()


@pytest.fixture
def lifecycle(transport, event_bus, scheduler):
    """A lifecycle that is already Connected"""
    from services.connection_lifecycle import ConnectionLifecycle

    lifecycle = ConnectionLifecycle(transport, event_bus, scheduler)
    lifecycle.connect().result(timeout=1)
    assert lifecycle.is_connected
    return lifecycle


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """ConfigService writing only below tmp_path"""
    from services.config_service import ConfigService

    base = tmp_path / "user-config"
    monkeypatch.setenv("APPDATA", str(base))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(base))
    return ConfigService(str(tmp_path / "config.yaml"))
