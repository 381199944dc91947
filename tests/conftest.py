"""Shared test fixtures for tokentop."""

import os
import sys
from pathlib import Path

import pytest

from tokentop.services.json_reader import read_message_record, read_session_envelope
from helpers import CountingReader, FakeClock


@pytest.fixture(scope="session")
def qapp():
    """Create a QCoreApplication for tests that need Qt."""
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    from PySide6.QtCore import QCoreApplication

    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication(sys.argv[:1] or ["test"])
    yield app


@pytest.fixture
def isolated_settings(qapp, tmp_path):
    """Point QSettings at a throwaway directory."""
    from PySide6.QtCore import QSettings
    QSettings.setDefaultFormat(QSettings.IniFormat)
    QSettings.setPath(QSettings.IniFormat, QSettings.UserScope, str(tmp_path / "config"))
    return tmp_path / "config"


@pytest.fixture
def storage_root(tmp_path) -> Path:
    """Create an empty agent storage tree."""
    root = tmp_path / "opencode" / "storage"
    (root / "session").mkdir(parents=True)
    (root / "message").mkdir()
    (root / "part").mkdir()
    return root


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def envelope_reader() -> CountingReader:
    return CountingReader(read_session_envelope)


@pytest.fixture
def message_reader() -> CountingReader:
    return CountingReader(read_message_record)


@pytest.fixture
def store(qapp, storage_root, clock, envelope_reader, message_reader):
    from tokentop.services.usage_store import SessionUsageStore

    s = SessionUsageStore(
        storage_root,
        envelope_reader=envelope_reader,
        message_reader=message_reader,
        clock=clock,
    )
    yield s
    s.cleanup()
