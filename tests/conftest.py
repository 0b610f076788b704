import pytest
from datetime import datetime, timedelta

from file_janitor.models import FileRecord
from file_janitor.scanning.hasher import HashResult

NOW = datetime(2024, 6, 1, 12, 0, 0)


class FakeHasher:
    """Serves digests from a dict; unknown paths behave like unreadable files."""

    def __init__(self, digests):
        self.digests = dict(digests)
        self.calls = []

    def hash(self, path, stopped_flag=None):
        self.calls.append(path)
        if path in self.digests:
            return HashResult(self.digests[path])
        return HashResult(None, error=f"No such file: {path}")


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_record():
    """Builds a FileRecord; modified one day before NOW unless given."""
    def _make(path, size=100, modified_at=NOW - timedelta(days=1), is_dir=False, entry_count=None):
        return FileRecord.from_path(path, size, modified_at, is_dir=is_dir, entry_count=entry_count)
    return _make


@pytest.fixture
def fake_hasher():
    return FakeHasher
