import io
import mimetypes
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from imagevariants.config import (
    AWS_REGION, S3_BUCKET, STORAGE_BACKEND, STORAGE_ROOT, logger,
)
from imagevariants.errors import StorageReadFailure, StorageWriteFailure


_MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}


class LocalStorage:
    """Encoded files under a directory root, addressed by ``/relative/path``."""

    def __init__(self, root: str | Path = STORAGE_ROOT):
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        return self.root / path.lstrip("/")

    @contextmanager
    def create_file(self, path: str) -> Iterator[BinaryIO]:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("wb") as fh:
                yield fh
        except OSError as exc:
            raise StorageWriteFailure(f"cannot write {path}: {exc}") from exc
        logger.info("Wrote %s", target)

    def open_file(self, path: str) -> BinaryIO:
        return self._resolve(path).open("rb")

    def write_bytes(self, path: str, data: bytes) -> None:
        with self.create_file(path) as fh:
            fh.write(data)

    def read_bytes(self, path: str) -> bytes:
        with self.open_file(path) as fh:
            return fh.read()

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def delete_file(self, path: str) -> None:
        logger.info("Deleting %s", path)
        self._resolve(path).unlink(missing_ok=True)


class S3Storage:
    """Same contract as LocalStorage, backed by an S3 bucket."""

    def __init__(self, bucket: Optional[str] = S3_BUCKET, region: str = AWS_REGION,
                 prefix: str = "", client=None):
        self.bucket = bucket
        self.region = region
        self.prefix = prefix.strip("/")
        self.client = client or boto3.client("s3", region_name=region)

    def key_for(self, path: str) -> str:
        key = path.lstrip("/")
        return f"{self.prefix}/{key}" if self.prefix else key

    def public_url(self, path: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{self.key_for(path)}"

    @contextmanager
    def create_file(self, path: str) -> Iterator[BinaryIO]:
        buf = io.BytesIO()
        yield buf
        self.write_bytes(path, buf.getvalue())

    def open_file(self, path: str) -> BinaryIO:
        key = self.key_for(path)
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in _MISSING_KEY_CODES:
                raise FileNotFoundError(f"s3://{self.bucket}/{key}") from exc
            raise StorageReadFailure(f"cannot fetch {key}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageReadFailure(f"cannot fetch {key}: {exc}") from exc
        return response["Body"]

    def write_bytes(self, path: str, data: bytes) -> None:
        key         = self.key_for(path)
        mimetype, _ = mimetypes.guess_type(key)
        logger.info("Uploading %d bytes → %s", len(data), key)
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=mimetype or "application/octet-stream",
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageWriteFailure(f"cannot upload {key}: {exc}") from exc

    def read_bytes(self, path: str) -> bytes:
        body = self.open_file(path)
        try:
            return body.read()
        except BotoCoreError as exc:
            raise StorageReadFailure(f"cannot read {self.key_for(path)}: {exc}") from exc
        finally:
            body.close()

    def exists(self, path: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=self.key_for(path))
        except ClientError:
            return False
        return True

    def delete_file(self, path: str) -> None:
        logger.info("Deleting key=%s from S3", self.key_for(path))
        self.client.delete_object(Bucket=self.bucket, Key=self.key_for(path))


def build_storage():
    if STORAGE_BACKEND == "s3":
        return S3Storage()
    return LocalStorage()
