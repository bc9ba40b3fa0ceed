import pytest

from helpers import at, put_pdf, put_summary
from summary_desk.core.storage.blob_store import LocalFilesystemBlobStore
from summary_desk.exceptions import InvalidFilenameError, NotFoundError, StoreError
from summary_desk.services.deletion import DeletionCoordinator


class RecordingStore(LocalFilesystemBlobStore):
    """Local store that records delete calls and can fail chosen keys."""

    def __init__(self, base_path, fail_delete=()):
        super().__init__(base_path=base_path, retry_delay=0, sleep=lambda _s: None)
        self.deleted = []
        self.fail_delete = set(fail_delete)

    def delete(self, key):
        self.deleted.append(key)
        if key in self.fail_delete:
            raise StoreError("delete refused", operation="delete", key=key)
        super().delete(key)


def test_deletes_pdf_and_summary(tmp_path):
    store = RecordingStore(tmp_path)
    put_pdf(store, "report.pdf", at(1))
    put_summary(store, "report")

    result = DeletionCoordinator(store).delete_document("uploads/report.pdf", has_summary=True)

    assert store.deleted == ["uploads/report.pdf", "summaries/report.md"]
    assert result.summary_deleted
    assert result.anomalies == []
    assert not store.exists("uploads/report.pdf")
    assert not store.exists("summaries/report.md")


def test_no_summary_delete_when_document_has_none(tmp_path):
    store = RecordingStore(tmp_path)
    put_pdf(store, "report.pdf", at(1))

    result = DeletionCoordinator(store).delete_document("uploads/report.pdf", has_summary=False)

    assert store.deleted == ["uploads/report.pdf"]
    assert result.summary_key is None
    assert not result.summary_deleted


def test_accepts_bare_document_name(tmp_path):
    store = RecordingStore(tmp_path)
    put_pdf(store, "report.pdf", at(1))

    result = DeletionCoordinator(store).delete_document("report.pdf")

    assert result.pdf_key == "uploads/report.pdf"
    assert not store.exists("uploads/report.pdf")


def test_missing_pdf_raises_not_found(tmp_path):
    store = RecordingStore(tmp_path)

    with pytest.raises(NotFoundError) as exc_info:
        DeletionCoordinator(store).delete_document("uploads/gone.pdf", has_summary=True)

    assert exc_info.value.action == "refresh"
    assert store.deleted == []


def test_summary_delete_failure_does_not_undo_pdf_delete(tmp_path):
    store = RecordingStore(tmp_path, fail_delete={"summaries/report.md"})
    put_pdf(store, "report.pdf", at(1))
    put_summary(store, "report")

    result = DeletionCoordinator(store).delete_document("uploads/report.pdf", has_summary=True)

    assert not store.exists("uploads/report.pdf")
    assert store.exists("summaries/report.md")
    assert not result.summary_deleted
    assert "delete refused" in result.summary_error


def test_pdf_delete_failure_propagates(tmp_path):
    store = RecordingStore(tmp_path, fail_delete={"uploads/report.pdf"})
    put_pdf(store, "report.pdf", at(1))
    put_summary(store, "report")

    with pytest.raises(StoreError):
        DeletionCoordinator(store).delete_document("uploads/report.pdf", has_summary=True)

    assert store.exists("summaries/report.md")


def test_object_still_present_after_delete_is_reported(tmp_path):
    class StickyStore(RecordingStore):
        def delete(self, key):
            self.deleted.append(key)

    store = StickyStore(tmp_path)
    put_pdf(store, "report.pdf", at(1))

    result = DeletionCoordinator(store).delete_document("uploads/report.pdf")

    assert result.anomalies == ["uploads/report.pdf still exists after delete"]


def test_summary_already_gone_does_not_fail_deletion(tmp_path):
    class VanishingSummaryStore(RecordingStore):
        def delete(self, key):
            if key.startswith("summaries/"):
                self.deleted.append(key)
                raise NotFoundError("Object not found", operation="delete", key=key)
            super().delete(key)

    store = VanishingSummaryStore(tmp_path)
    put_pdf(store, "report.pdf", at(1))

    result = DeletionCoordinator(store).delete_document("uploads/report.pdf", has_summary=True)

    assert not store.exists("uploads/report.pdf")
    assert result.summary_deleted
    assert result.summary_error is None
    assert result.anomalies == []


def test_nested_upload_key_deletes_matching_summary(tmp_path):
    store = RecordingStore(tmp_path)
    put_pdf(store, "uploads/x.pdf", at(1))
    put_summary(store, "uploads/x")
    put_summary(store, "x")

    result = DeletionCoordinator(store).delete_document("uploads/uploads/x.pdf", has_summary=True)

    assert result.summary_key == "summaries/uploads/x.md"
    assert not store.exists("summaries/uploads/x.md")
    assert store.exists("summaries/x.md")


def test_key_outside_storage_root_is_rejected(tmp_path):
    store = RecordingStore(tmp_path / "bucket")
    outside = tmp_path / "outside.pdf"
    outside.write_bytes(b"%PDF")

    with pytest.raises(InvalidFilenameError):
        DeletionCoordinator(store).delete_document("uploads/../../outside.pdf")

    assert outside.exists()
