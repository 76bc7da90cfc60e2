"""Shared fixtures: isolate settings from the developer's environment."""

import os

import pytest

from emudock.config import reset_settings_cache


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Run every test in an empty directory with no EMUDOCK_ variables set."""
    for key in list(os.environ):
        if key.upper().startswith("EMUDOCK_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    reset_settings_cache()
    yield
    reset_settings_cache()
