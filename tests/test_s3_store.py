from __future__ import annotations

import asyncio
import io
from pathlib import Path

import pytest
from botocore.response import StreamingBody
from botocore.stub import Stubber

from docweave.config import RemoteConfig
from docweave.remote import DeleteFailure, ObjectNotFound, ObjectStoreError, RemoteSync, S3ObjectStore


@pytest.fixture
def s3_store() -> S3ObjectStore:
    return S3ObjectStore.from_config(
        RemoteConfig(bucket="docs-bucket", access_key_id="testing", secret_access_key="testing")
    )


def test_get_missing_key_raises_not_found(s3_store: S3ObjectStore) -> None:
    with Stubber(s3_store.client) as stubber:
        stubber.add_client_error(
            "get_object",
            service_error_code="NoSuchKey",
            http_status_code=404,
            expected_params={"Bucket": "docs-bucket", "Key": "site/manifest/billing.json"},
        )
        with pytest.raises(ObjectNotFound):
            asyncio.run(s3_store.get("site/manifest/billing.json"))


def test_get_other_errors_raise_store_error(s3_store: S3ObjectStore) -> None:
    with Stubber(s3_store.client) as stubber:
        stubber.add_client_error("get_object", service_error_code="AccessDenied", http_status_code=403)
        with pytest.raises(ObjectStoreError) as excinfo:
            asyncio.run(s3_store.get("site/manifest/billing.json"))
    assert not isinstance(excinfo.value, ObjectNotFound)


def test_list_keys_collects_contents(s3_store: S3ObjectStore) -> None:
    with Stubber(s3_store.client) as stubber:
        stubber.add_response(
            "list_objects_v2",
            {"Contents": [{"Key": "site/manifest/a.json"}, {"Key": "site/manifest/b.json"}], "IsTruncated": False},
            {"Bucket": "docs-bucket", "Prefix": "site/manifest"},
        )
        keys = asyncio.run(s3_store.list_keys("site/manifest"))

    assert keys == ["site/manifest/a.json", "site/manifest/b.json"]


def test_delete_many_reports_per_key_errors(s3_store: S3ObjectStore) -> None:
    with Stubber(s3_store.client) as stubber:
        stubber.add_response(
            "delete_objects",
            {
                "Deleted": [{"Key": "site/a.html"}],
                "Errors": [{"Key": "site/b.html", "Code": "AccessDenied", "Message": "Access Denied"}],
            },
            {
                "Bucket": "docs-bucket",
                "Delete": {"Objects": [{"Key": "site/a.html"}, {"Key": "site/b.html"}], "Quiet": True},
            },
        )
        failures = asyncio.run(s3_store.delete_many(["site/a.html", "site/b.html"]))

    assert failures == [DeleteFailure(key="site/b.html", message="Access Denied")]


def test_delete_many_rejected_request_raises(s3_store: S3ObjectStore) -> None:
    with Stubber(s3_store.client) as stubber:
        stubber.add_client_error("delete_objects", service_error_code="AccessDenied", http_status_code=403)
        with pytest.raises(ObjectStoreError):
            asyncio.run(s3_store.delete_many(["site/a.html"]))


def test_from_config_requires_bucket() -> None:
    with pytest.raises(ValueError):
        S3ObjectStore.from_config(RemoteConfig())


def test_put_file_sends_body_and_content_type(tmp_path: Path, s3_store: S3ObjectStore) -> None:
    page = tmp_path / "a.html"
    page.write_bytes(b"<p>a</p>")
    with Stubber(s3_store.client) as stubber:
        stubber.add_response(
            "put_object",
            {},
            {"Bucket": "docs-bucket", "Key": "site/a.html", "Body": b"<p>a</p>", "ContentType": "text/html"},
        )
        asyncio.run(s3_store.put_file("site/a.html", page, "text/html"))
        stubber.assert_no_pending_responses()


def test_put_file_failure_raises_store_error(tmp_path: Path, s3_store: S3ObjectStore) -> None:
    page = tmp_path / "a.html"
    page.write_bytes(b"a")
    with Stubber(s3_store.client) as stubber:
        stubber.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)
        with pytest.raises(ObjectStoreError):
            asyncio.run(s3_store.put_file("site/a.html", page))


def test_put_file_missing_local_file_raises_store_error(tmp_path: Path, s3_store: S3ObjectStore) -> None:
    with pytest.raises(ObjectStoreError):
        asyncio.run(s3_store.put_file("site/gone.html", tmp_path / "gone.html"))


def test_upload_current_counts_rejected_puts(tmp_path: Path, s3_store: S3ObjectStore) -> None:
    output = tmp_path / "dist"
    output.mkdir()
    (output / "a.html").write_bytes(b"a")
    (output / "b.html").write_bytes(b"b")
    sync = RemoteSync(s3_store, bucket_root="site/", module_name="billing", max_concurrency=1)

    with Stubber(s3_store.client) as stubber:
        stubber.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)
        stubber.add_response("put_object", {})
        summary = asyncio.run(sync.upload_current(output))

    assert summary.failed_keys == ["site/a.html"]
    assert summary.uploaded == 1


def test_download_all_manifests_from_s3(tmp_path: Path, s3_store: S3ObjectStore) -> None:
    payload = b'{"id": "", "name": "search"}'
    sync = RemoteSync(s3_store, bucket_root="site/", module_name="billing")

    with Stubber(s3_store.client) as stubber:
        stubber.add_response(
            "list_objects_v2",
            {"Contents": [{"Key": "site/manifest/search.json"}], "IsTruncated": False},
            {"Bucket": "docs-bucket", "Prefix": "site/manifest"},
        )
        stubber.add_response(
            "get_object",
            {"Body": StreamingBody(io.BytesIO(payload), len(payload))},
            {"Bucket": "docs-bucket", "Key": "site/manifest/search.json"},
        )
        written = asyncio.run(sync.download_all_manifests(tmp_path / "staging"))

    assert written == [tmp_path / "staging" / "search.json"]
    assert written[0].read_bytes() == payload
