"""
Shared fixtures
"""
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from dvir_emailer.storage.sqlite_backend import SQLiteBackend


@pytest.fixture
def store(tmp_path):
    """SQLite document store in a temporary directory"""
    backend = SQLiteBackend(db_path=str(tmp_path / "test.db"))
    yield backend
    backend.close()


class FakeHandle:
    """Pending scheduled call"""

    def __init__(self, delay, fn):
        self.delay = delay
        self.fn = fn
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.fn()


class FakeScheduler:
    """Records scheduled calls instead of starting timers"""

    def __init__(self):
        self.handles = []

    def __call__(self, delay, fn):
        handle = FakeHandle(delay, fn)
        self.handles.append(handle)
        return handle

    @property
    def last(self):
        return self.handles[-1]


@pytest.fixture
def scheduler():
    return FakeScheduler()
