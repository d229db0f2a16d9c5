"""
Configuration for pytest to set up the proper import paths and shared fixtures.
"""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add the parent directory to Python path so we can import from sources, app, etc.
parent_dir = Path(__file__).parent.parent
sys.path.insert(0, str(parent_dir))

# Import after path setup
from app import app, get_settings
from models import EngineSettings
from sources import EXHAUSTED, Source


class RecordingSource(Source):
    """Finite source that remembers every element it handed out."""

    def __init__(self, items):
        super().__init__()
        self._items = list(items)
        self.pulled = []
        self.pull_calls = 0

    def _pull(self):
        self.pull_calls += 1
        if len(self.pulled) == len(self._items):
            return EXHAUSTED
        item = self._items[len(self.pulled)]
        self.pulled.append(item)
        return item


def _naturals(log):
    """Infinite generator 0, 1, 2, ... that records what was produced."""
    n = 0
    while True:
        log.append(n)
        yield n
        n += 1


@pytest.fixture
def recording_source():
    return RecordingSource


@pytest.fixture
def naturals():
    return _naturals


@pytest.fixture
def test_settings():
    return EngineSettings(pool_limit=50, default_result_limit=20, max_result_limit=100)


@pytest.fixture
def client(test_settings):
    app.dependency_overrides[get_settings] = lambda: test_settings
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
