"""
Shared pytest fixtures for jobqueue tests.

Every test starts with no ``JOBQUEUE_*`` environment variables and a
fresh settings cache, so defaults are deterministic.
"""

import os

import pytest

from jobqueue.settings import get_settings


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch):
    """Drop JOBQUEUE_* env vars and reset the cached settings."""
    for key in list(os.environ):
        if key.startswith("JOBQUEUE_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(os.path.dirname(__file__))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
