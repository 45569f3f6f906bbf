import io
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from imagevariants.errors import DecodeFailure, StorageReadFailure, StorageWriteFailure
from imagevariants.models import ImageFormat, NewImage, StorageKind
from imagevariants.repository import ImageRepository
from imagevariants.resolver import VariantResolver
from imagevariants.utils.storage import LocalStorage, S3Storage


def _client_error(op: str, code: str = "NoSuchKey") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "missing"}}, op)


def test_local_round_trip(tmp_path):
    storage = LocalStorage(tmp_path)
    storage.write_bytes("/assets/uploads/a.png", b"abc")

    assert (tmp_path / "assets" / "uploads" / "a.png").read_bytes() == b"abc"
    assert storage.exists("/assets/uploads/a.png")
    assert storage.read_bytes("/assets/uploads/a.png") == b"abc"

    storage.delete_file("/assets/uploads/a.png")
    assert not storage.exists("/assets/uploads/a.png")


def test_local_create_file_streams(tmp_path):
    storage = LocalStorage(tmp_path)
    with storage.create_file("x/y.bin") as fh:
        fh.write(b"12")
        fh.write(b"34")
    with storage.open_file("/x/y.bin") as fh:
        assert fh.read() == b"1234"


def test_local_missing_file_raises_oserror(tmp_path):
    with pytest.raises(FileNotFoundError):
        LocalStorage(tmp_path).read_bytes("/nope.png")


def test_s3_write_uses_prefixed_key_and_content_type():
    client  = MagicMock()
    storage = S3Storage(bucket="bucket", region="eu-west-1", prefix="variants/", client=client)

    storage.write_bytes("/assets/uploads/640_480-1-orig_1.jpg", b"data")

    client.put_object.assert_called_once_with(
        Bucket="bucket",
        Key="variants/assets/uploads/640_480-1-orig_1.jpg",
        Body=b"data",
        ContentType="image/jpeg",
    )
    assert storage.public_url("/a.png") == "https://bucket.s3.eu-west-1.amazonaws.com/variants/a.png"


def test_s3_create_file_uploads_on_close():
    client  = MagicMock()
    storage = S3Storage(bucket="bucket", client=client)
    with storage.create_file("/a.png") as fh:
        fh.write(b"png")
    assert client.put_object.call_args.kwargs["Body"] == b"png"
    assert client.put_object.call_args.kwargs["Key"] == "a.png"


def test_s3_write_failure_is_tagged():
    client = MagicMock()
    client.put_object.side_effect = _client_error("PutObject")
    with pytest.raises(StorageWriteFailure):
        S3Storage(bucket="bucket", client=client).write_bytes("/a.png", b"x")


def test_s3_read_and_missing_key():
    client = MagicMock()
    client.get_object.return_value = {"Body": io.BytesIO(b"bytes")}
    storage = S3Storage(bucket="bucket", client=client)
    assert storage.read_bytes("/a.png") == b"bytes"

    client.get_object.side_effect = _client_error("GetObject")
    with pytest.raises(FileNotFoundError):
        storage.read_bytes("/a.png")


def test_s3_exists():
    client  = MagicMock()
    storage = S3Storage(bucket="bucket", client=client)
    assert storage.exists("/a.png")
    client.head_object.side_effect = _client_error("HeadObject")
    assert not storage.exists("/a.png")


def test_s3_read_errors_other_than_missing_key_are_tagged():
    client  = MagicMock()
    storage = S3Storage(bucket="bucket", client=client)

    client.get_object.side_effect = _client_error("GetObject", code="AccessDenied")
    with pytest.raises(StorageReadFailure):
        storage.read_bytes("/a.png")

    client.get_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.example")
    with pytest.raises(StorageReadFailure):
        storage.read_bytes("/a.png")


def test_resolve_surfaces_s3_outage_as_image_error(session):
    client   = MagicMock()
    resolver = VariantResolver(ImageRepository(session), S3Storage(bucket="bucket", client=client))
    image_id = resolver.repository.insert(NewImage(
        StorageKind.FILE_BACKED, "/assets/uploads/800_600.png", 800, 600, ImageFormat.PNG,
    ))

    client.get_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.example")
    with pytest.raises(StorageReadFailure) as excinfo:
        resolver.resolve_by_id(image_id, 10, 10)
    assert excinfo.value.kind == "storageReadFailure"

    client.get_object.side_effect = _client_error("GetObject")
    with pytest.raises(DecodeFailure):
        resolver.resolve_by_id(image_id, 10, 10)
