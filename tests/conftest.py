"""Pytest configuration - Qt application, isolated app data, shared fixtures.

Store, sync and preview queue are QObjects driven by QTimer and queued
signals, so a QCoreApplication must exist for the whole session. No display
is needed.
"""
from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from PyQt5.QtCore import QCoreApplication

ROOT = Path(__file__).resolve().parents[1]


def pytest_sessionstart(session):
    os.chdir(ROOT)


@pytest.fixture(scope="session")
def qapp():
    """Session-wide Qt application (event loop for timers and signals)."""
    app = QCoreApplication.instance() or QCoreApplication(sys.argv)
    yield app


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path, monkeypatch):
    """Point the app data dir at a temp dir so tests never touch real presets."""
    data_dir = tmp_path / "appdata"
    monkeypatch.setenv("PL_DATA_DIR", str(data_dir))
    monkeypatch.delenv("PL_PRESETS_DIR", raising=False)
    return data_dir


@pytest.fixture
def presets_dir(tmp_path):
    """Empty presets directory."""
    path = tmp_path / "presets"
    path.mkdir()
    return path


@pytest.fixture
def project_root():
    """Return path to project root."""
    return ROOT
