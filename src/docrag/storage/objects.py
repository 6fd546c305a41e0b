"""Raw upload storage backends."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from docrag.errors import ObjectNotFoundError, StorageReadError, StorageUploadError, StorageWriteError
from docrag.metrics.observability import get_logger


class ObjectStore(Protocol):
    """Key/value storage for uploaded files."""

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        """Store ``data`` under ``key``. Raises ``StorageUploadError``."""

    def get(self, key: str) -> bytes:
        """Return the bytes stored under ``key``. Raises ``ObjectNotFoundError``."""

    def delete(self, key: str) -> bool:
        """Remove ``key``; returns whether an object was removed."""

    def url_for(self, key: str) -> str:
        """Return a URL the stored object can be fetched from."""


class LocalObjectStore:
    """Object store writing files beneath a root directory."""

    _logger = get_logger("storage.local")

    def __init__(self, root: str | Path, *, public_base_url: str | None = None) -> None:
        self._root = Path(root)
        self._public_base_url = public_base_url.rstrip("/") if public_base_url else None

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        path = self._path_for(key)
        if path.exists():
            raise StorageUploadError(f"Object already exists: {key}")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise StorageUploadError(f"Failed to store file: {exc}") from exc
        self._logger.info("storage.put", key=key, size=len(data), content_type=content_type)

    def get(self, key: str) -> bytes:
        path = self._path_for(key)
        if not path.is_file():
            raise ObjectNotFoundError(f"File not stored: {key}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StorageReadError(f"Failed to read file {key}: {exc}") from exc

    def delete(self, key: str) -> bool:
        path = self._path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StorageWriteError(f"Failed to delete file {key}: {exc}") from exc
        return True

    def url_for(self, key: str) -> str:
        if self._public_base_url:
            return f"{self._public_base_url}/{quote(key)}"
        return self._path_for(key).resolve().as_uri()

    def _path_for(self, key: str) -> Path:
        candidate = (self._root / key).resolve()
        if self._root.resolve() not in candidate.parents:
            raise StorageWriteError(f"Invalid object key: {key}")
        return candidate


class S3ObjectStore:
    """Object store backed by an S3 bucket."""

    _logger = get_logger("storage.s3")

    def __init__(self, bucket: str, region: str = "us-east-1", *, prefix: str = "", client=None) -> None:
        self._bucket = bucket
        self._region = region
        self._prefix = prefix.strip("/")
        self._s3_client = client or boto3.client("s3", region_name=region)

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        try:
            self._s3_client.put_object(
                Bucket=self._bucket,
                Key=self._object_key(key),
                Body=data,
                ContentType=content_type,
                CacheControl="max-age=3600",
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageUploadError(f"Failed to store file: {exc}") from exc
        self._logger.info("storage.put", bucket=self._bucket, key=key, size=len(data))

    def get(self, key: str) -> bytes:
        try:
            response = self._s3_client.get_object(Bucket=self._bucket, Key=self._object_key(key))
            return response["Body"].read()
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in {"NoSuchKey", "404"}:
                raise ObjectNotFoundError(f"File not stored: {key}") from exc
            raise StorageReadError(f"Failed to read file {key}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageReadError(f"Failed to read file {key}: {exc}") from exc

    def delete(self, key: str) -> bool:
        object_key = self._object_key(key)
        try:
            self._s3_client.head_object(Bucket=self._bucket, Key=object_key)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in {"NoSuchKey", "404"}:
                return False
            raise StorageWriteError(f"Failed to delete file {key}: {exc}") from exc
        try:
            self._s3_client.delete_object(Bucket=self._bucket, Key=object_key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageWriteError(f"Failed to delete file {key}: {exc}") from exc
        return True

    def url_for(self, key: str) -> str:
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{quote(self._object_key(key))}"

    def _object_key(self, key: str) -> str:
        return f"{self._prefix}/{key}" if self._prefix else key
