"""Shared test helpers: fixed timestamps, blob store seeding, fakes."""
import os
from datetime import datetime, timezone


def at(day: int) -> datetime:
    return datetime(2024, 1, day, 12, 0, tzinfo=timezone.utc)


def put_pdf(store, name: str, uploaded_at: datetime = None, content: bytes = b"%PDF-1.4 test") -> str:
    """Upload a PDF to the local store with a fixed mtime. Returns its key."""
    key = f"uploads/{name}"
    store.put_bytes(key, content, "application/pdf")
    if uploaded_at is not None:
        ts = uploaded_at.timestamp()
        os.utime(store.base_path / key, (ts, ts))
    return key


def put_summary(store, base_name: str, content: str = "# Summary\n\nAll good.") -> str:
    key = f"summaries/{base_name}.md"
    store.put_bytes(key, content.encode("utf-8"), "text/markdown")
    return key


class FakeTrigger:
    """Stands in for the n8n webhooks.

    on_trigger runs after a call is recorded; set error to make calls fail.
    """

    def __init__(self, on_trigger=None, error: Exception = None):
        self.calls = []
        self.spin_ups = 0
        self.on_trigger = on_trigger
        self.error = error

    async def trigger(self, name: str, object_path: str) -> None:
        self.calls.append({"pdfName": name, "objectPath": object_path})
        if self.error is not None:
            raise self.error
        if self.on_trigger is not None:
            self.on_trigger(name, object_path)

    async def spin_up(self) -> bool:
        self.spin_ups += 1
        return True


class FakeClock:
    """Monotonic clock that only moves when sleep() is awaited."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
