import os
import tempfile

# Settings are read at import time
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="summary-desk-logs-"))
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("SUMMARY_WEBHOOK_URL", "https://hooks.example.test/summary")
os.environ.setdefault("SPIN_UP_WEBHOOK_URL", "https://hooks.example.test/spin-up")
os.environ.setdefault("WEBHOOK_AUTH_KEY", "test-key")

import pytest

from helpers import FakeClock
from summary_desk.core.storage.blob_store import LocalFilesystemBlobStore, set_blob_store
from summary_desk.exceptions import TriggerRejected


@pytest.fixture
def store(tmp_path):
    store = LocalFilesystemBlobStore(base_path=tmp_path / "bucket", retry_delay=0, sleep=lambda _s: None)
    set_blob_store(store)
    yield store
    set_blob_store(None)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def already_exists():
    return TriggerRejected("Summary already exists", status_code=200, already_exists=True)
