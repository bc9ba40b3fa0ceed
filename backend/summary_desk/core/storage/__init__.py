"""Blob storage backends."""
from summary_desk.core.storage.blob_store import (
    BlobObject,
    BlobStore,
    LocalFilesystemBlobStore,
    S3BlobStore,
    get_blob_store,
    set_blob_store,
)
