from __future__ import annotations

from pathlib import Path

import boto3
import pytest
from botocore.stub import Stubber

from docrag.errors import ObjectNotFoundError, StorageUploadError, StorageWriteError
from docrag.storage.objects import LocalObjectStore, S3ObjectStore


def test_local_put_get_delete(object_store: LocalObjectStore) -> None:
    object_store.put("doc.txt", b"payload", "text/plain")
    assert object_store.get("doc.txt") == b"payload"
    assert object_store.delete("doc.txt") is True
    assert object_store.delete("doc.txt") is False
    with pytest.raises(ObjectNotFoundError):
        object_store.get("doc.txt")


def test_local_keys_are_never_overwritten(object_store: LocalObjectStore) -> None:
    object_store.put("doc.txt", b"first")
    with pytest.raises(StorageUploadError):
        object_store.put("doc.txt", b"second")
    assert object_store.get("doc.txt") == b"first"


def test_local_rejects_keys_outside_root(object_store: LocalObjectStore) -> None:
    with pytest.raises(StorageWriteError):
        object_store.put("../escape.txt", b"data")


def test_local_urls(tmp_path: Path) -> None:
    plain = LocalObjectStore(tmp_path / "files")
    assert plain.url_for("a b.pdf").startswith("file://")
    public = LocalObjectStore(tmp_path / "files", public_base_url="https://cdn.example.com/uploads/")
    assert public.url_for("a b.pdf") == "https://cdn.example.com/uploads/a%20b.pdf"


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="eu-west-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


def test_s3_put_sends_content_type_and_cache_control(s3_client) -> None:
    store = S3ObjectStore("bucket", "eu-west-1", prefix="uploads", client=s3_client)
    with Stubber(s3_client) as stubber:
        stubber.add_response(
            "put_object",
            {},
            {
                "Bucket": "bucket",
                "Key": "uploads/doc.pdf",
                "Body": b"%PDF",
                "ContentType": "application/pdf",
                "CacheControl": "max-age=3600",
            },
        )
        store.put("doc.pdf", b"%PDF", "application/pdf")
        stubber.assert_no_pending_responses()


def test_s3_missing_object_maps_to_not_found(s3_client) -> None:
    store = S3ObjectStore("bucket", "eu-west-1", client=s3_client)
    with Stubber(s3_client) as stubber:
        stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)
        with pytest.raises(ObjectNotFoundError):
            store.get("missing.pdf")


def test_s3_delete_of_absent_object_reports_false(s3_client) -> None:
    store = S3ObjectStore("bucket", "eu-west-1", client=s3_client)
    with Stubber(s3_client) as stubber:
        stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)
        assert store.delete("missing.pdf") is False


def test_s3_delete_removes_existing_object(s3_client) -> None:
    store = S3ObjectStore("bucket", "eu-west-1", client=s3_client)
    with Stubber(s3_client) as stubber:
        stubber.add_response("head_object", {}, {"Bucket": "bucket", "Key": "doc.pdf"})
        stubber.add_response("delete_object", {}, {"Bucket": "bucket", "Key": "doc.pdf"})
        assert store.delete("doc.pdf") is True


def test_s3_url_for(s3_client) -> None:
    store = S3ObjectStore("bucket", "eu-west-1", prefix="uploads/", client=s3_client)
    assert store.url_for("doc.pdf") == "https://bucket.s3.eu-west-1.amazonaws.com/uploads/doc.pdf"
