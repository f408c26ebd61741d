"""Object store abstraction and the S3-compatible implementation."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..config import RemoteConfig

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class ObjectStoreError(RuntimeError):
    """Raised when the object store rejects or fails a request."""


class ObjectNotFound(ObjectStoreError):
    """Raised when a requested key does not exist."""


@dataclass(frozen=True, slots=True)
class DeleteFailure:
    """A key the store refused to delete, with its reason."""

    key: str
    message: str


class ObjectStore(Protocol):
    """Asynchronous key/value object store used by remote sync."""

    async def get(self, key: str) -> bytes: ...

    async def list_keys(self, prefix: str) -> list[str]: ...

    async def put_file(self, key: str, path: Path, content_type: str | None = None) -> None: ...

    async def delete_many(self, keys: list[str]) -> list[DeleteFailure]: ...


class S3ObjectStore:
    """S3-compatible object store backed by boto3.

    Works with AWS S3, MinIO, LocalStack and other S3-compatible services.
    boto3 is synchronous, so each request runs on a worker thread.
    """

    def __init__(
        self,
        bucket: str,
        *,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        max_pool_connections: int = 10,
    ) -> None:
        self.bucket = bucket
        client_kwargs = {
            "service_name": "s3",
            "region_name": region,
            "config": BotoConfig(signature_version="s3v4", max_pool_connections=max_pool_connections),
        }
        if endpoint_url:
            client_kwargs["endpoint_url"] = endpoint_url
        if access_key and secret_key:
            client_kwargs["aws_access_key_id"] = access_key
            client_kwargs["aws_secret_access_key"] = secret_key
        self.client = boto3.client(**client_kwargs)
        logger.debug("S3 store ready for bucket %s (endpoint %s)", bucket, endpoint_url or "default")

    @classmethod
    def from_config(cls, remote: RemoteConfig) -> S3ObjectStore:
        if not remote.bucket:
            raise ValueError("remote.bucket must be set to publish")
        return cls(
            remote.bucket,
            region=remote.region,
            endpoint_url=remote.endpoint_url,
            access_key=remote.access_key_id,
            secret_key=remote.secret_access_key,
            max_pool_connections=max(10, remote.max_concurrency),
        )

    async def get(self, key: str) -> bytes:
        return await asyncio.to_thread(self._get_sync, key)

    async def list_keys(self, prefix: str) -> list[str]:
        return await asyncio.to_thread(self._list_sync, prefix)

    async def put_file(self, key: str, path: Path, content_type: str | None = None) -> None:
        await asyncio.to_thread(self._put_sync, key, path, content_type)

    async def delete_many(self, keys: list[str]) -> list[DeleteFailure]:
        return await asyncio.to_thread(self._delete_sync, keys)

    def _get_sync(self, key: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES:
                raise ObjectNotFound(f"s3://{self.bucket}/{key} does not exist") from exc
            raise ObjectStoreError(f"Failed to get s3://{self.bucket}/{key}: {exc}") from exc
        except BotoCoreError as exc:
            raise ObjectStoreError(f"Failed to get s3://{self.bucket}/{key}: {exc}") from exc

    def _list_sync(self, prefix: str) -> list[str]:
        keys: list[str] = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                keys.extend(obj["Key"] for obj in page.get("Contents", []))
        except (BotoCoreError, ClientError) as exc:
            raise ObjectStoreError(f"Failed to list s3://{self.bucket}/{prefix}: {exc}") from exc
        return keys

    def _put_sync(self, key: str, path: Path, content_type: str | None) -> None:
        try:
            body = path.read_bytes()
        except OSError as exc:
            raise ObjectStoreError(f"Failed to read {path} for upload: {exc}") from exc
        extra_args = {"ContentType": content_type} if content_type else {}
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=body, **extra_args)
        except (BotoCoreError, ClientError) as exc:
            raise ObjectStoreError(f"Failed to upload {path} to s3://{self.bucket}/{key}: {exc}") from exc

    def _delete_sync(self, keys: list[str]) -> list[DeleteFailure]:
        if not keys:
            return []
        try:
            response = self.client.delete_objects(
                Bucket=self.bucket,
                Delete={"Objects": [{"Key": key} for key in keys], "Quiet": True},
            )
        except (BotoCoreError, ClientError) as exc:
            raise ObjectStoreError(f"Failed to delete {len(keys)} object(s) from s3://{self.bucket}: {exc}") from exc
        return [
            DeleteFailure(key=error.get("Key", ""), message=error.get("Message") or error.get("Code", "unknown error"))
            for error in response.get("Errors", [])
        ]
