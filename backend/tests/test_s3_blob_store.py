from datetime import datetime, timezone
from urllib.parse import urlparse

import pytest
from botocore.stub import Stubber

from summary_desk.core.storage.blob_store import S3BlobStore
from summary_desk.exceptions import NotFoundError, StoreError, TransientStoreError

BUCKET = "pdfs"


def _make_store():
    return S3BlobStore(
        access_key_id="minio",
        secret_access_key="minio-secret",
        bucket=BUCKET,
        endpoint_url="http://minio.test:9000",
        retry_attempts=3,
        retry_delay=0,
        sleep=lambda _s: None,
    )


@pytest.fixture
def s3_store():
    store = _make_store()
    with Stubber(store.client) as stubber:
        store.stubber = stubber
        yield store
        stubber.assert_no_pending_responses()


def _listed(key, day):
    return {"Key": key, "Size": 10, "LastModified": datetime(2024, 1, day, tzinfo=timezone.utc)}


def test_exists_false_on_404(s3_store):
    s3_store.stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)
    assert s3_store.exists("uploads/missing.pdf") is False


def test_exists_retries_transient_errors(s3_store):
    s3_store.stubber.add_client_error("head_object", service_error_code="SlowDown", http_status_code=503)
    s3_store.stubber.add_client_error("head_object", service_error_code="503", http_status_code=503)
    s3_store.stubber.add_response("head_object", {}, {"Bucket": BUCKET, "Key": "uploads/a.pdf"})
    assert s3_store.exists("uploads/a.pdf") is True


def test_get_bytes_missing_key_is_not_found(s3_store):
    s3_store.stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)
    with pytest.raises(NotFoundError) as exc_info:
        s3_store.get_bytes("summaries/a.md")
    assert exc_info.value.key == "summaries/a.md"


def test_list_follows_continuation_tokens(s3_store, caplog):
    s3_store.stubber.add_response(
        "list_objects_v2",
        {"Contents": [_listed("uploads/a.pdf", 1)], "IsTruncated": True, "NextContinuationToken": "page-2"},
        {"Bucket": BUCKET, "Prefix": "uploads/", "MaxKeys": 1000},
    )
    s3_store.stubber.add_response(
        "list_objects_v2",
        {"Contents": [_listed("uploads/b.pdf", 2)], "IsTruncated": False},
        {"Bucket": BUCKET, "Prefix": "uploads/", "MaxKeys": 999, "ContinuationToken": "page-2"},
    )

    objects = s3_store.list_objects("uploads/")

    assert [o.key for o in objects] == ["uploads/a.pdf", "uploads/b.pdf"]
    assert objects[1].last_modified == datetime(2024, 1, 2, tzinfo=timezone.utc)
    assert "Listing truncated at max_keys" not in caplog.messages


def test_list_respects_max_keys_and_warns(s3_store, caplog):
    s3_store.stubber.add_response(
        "list_objects_v2",
        {"Contents": [_listed("uploads/a.pdf", 1), _listed("uploads/b.pdf", 2)], "IsTruncated": True,
         "NextContinuationToken": "more"},
        {"Bucket": BUCKET, "Prefix": "uploads/", "MaxKeys": 2},
    )
    assert len(s3_store.list_objects("uploads/", max_keys=2)) == 2
    assert "Listing truncated at max_keys" in caplog.messages


def test_delete_is_not_retried(s3_store):
    s3_store.stubber.add_client_error("delete_object", service_error_code="ServiceUnavailable", http_status_code=503)
    with pytest.raises(TransientStoreError):
        s3_store.delete("uploads/a.pdf")


def test_unknown_error_code_is_a_store_error(s3_store):
    s3_store.stubber.add_client_error("head_object", service_error_code="AccessDenied", http_status_code=403)
    with pytest.raises(StoreError) as exc_info:
        s3_store.exists("uploads/a.pdf")
    assert not isinstance(exc_info.value, TransientStoreError)


def test_check_connection_reports_false_instead_of_raising(s3_store):
    s3_store.stubber.add_client_error("head_bucket", service_error_code="NoSuchBucket", http_status_code=404)
    assert s3_store.check_connection() is False


def test_signed_read_url_is_path_style_and_inline():
    url = _make_store().signed_read_url("uploads/a.pdf")
    parsed = urlparse(url)

    assert parsed.netloc == "minio.test:9000"
    assert parsed.path == f"/{BUCKET}/uploads/a.pdf"
    assert "X-Amz-Algorithm=AWS4-HMAC-SHA256" in parsed.query
    assert "X-Amz-Expires=3600" in parsed.query
    assert "response-content-disposition=inline" in parsed.query


def test_presign_upload_targets_upload_key():
    url = _make_store().presign_upload("uploads/a.pdf", "application/pdf", expiry_seconds=600)
    parsed = urlparse(url)

    assert parsed.path == f"/{BUCKET}/uploads/a.pdf"
    assert "X-Amz-Expires=600" in parsed.query
