import re

import pytest

from marketplace.core.config import settings
from marketplace.infrastructure import storage


class RecordingS3Client:
    def __init__(self):
        self.calls = []

    def put_object(self, **kwargs):
        self.calls.append(("put_object", kwargs))

    def delete_object(self, **kwargs):
        self.calls.append(("delete_object", kwargs))


@pytest.fixture
def s3(monkeypatch):
    client = RecordingS3Client()
    monkeypatch.setattr(settings, "STORAGE_DRIVER", "s3")
    monkeypatch.setattr(settings, "S3_BUCKET", "docs")
    monkeypatch.setattr(settings, "S3_REGION", "us-east-1")
    monkeypatch.setattr(settings, "STORAGE_PUBLIC_URL", None)
    monkeypatch.setattr(storage, "_s3_client", client)
    return client


def test_build_file_key():
    key, file_name = storage.build_file_key("/providers/abc/documents/", "scan.PDF")
    assert re.fullmatch(r"providers/abc/documents/\d+-[0-9a-f-]{36}\.PDF", key)
    assert key.endswith(file_name)

    key, _ = storage.build_file_key("", "noext")
    assert "/" not in key


def test_local_save_and_delete(uploads_dir):
    stored = storage.save_file(b"hello", "note.txt", "providers/p1/documents", "text/plain")
    assert stored.size == 5
    assert stored.mime_type == "text/plain"
    assert stored.url == f"/uploads/{stored.key}"

    path = uploads_dir.joinpath(*stored.key.split("/"))
    assert path.read_bytes() == b"hello"

    storage.delete_file(stored.key)
    assert not path.exists()
    # already gone
    storage.delete_file(stored.key)
    storage.delete_file(None)


def test_local_public_url_override(uploads_dir, monkeypatch):
    monkeypatch.setattr(settings, "STORAGE_PUBLIC_URL", "https://cdn.example.com/files/")
    stored = storage.save_file(b"x", "a.png", "f")
    assert stored.url == f"https://cdn.example.com/files/{stored.key}"


def test_local_rejects_escaping_keys(uploads_dir):
    with pytest.raises(ValueError):
        storage.delete_file("../../etc/passwd")


def test_s3_save_and_delete(s3):
    stored = storage.save_file(b"data", "id.jpg", "providers/p2/documents", "image/jpeg")
    assert stored.url == f"https://docs.s3.us-east-1.amazonaws.com/{stored.key}"

    name, kwargs = s3.calls[0]
    assert name == "put_object"
    assert kwargs["Bucket"] == "docs"
    assert kwargs["Key"] == stored.key
    assert kwargs["Body"] == b"data"
    assert kwargs["ContentType"] == "image/jpeg"

    storage.delete_file(stored.key)
    assert s3.calls[1] == ("delete_object", {"Bucket": "docs", "Key": stored.key})


def test_s3_requires_configuration(monkeypatch):
    monkeypatch.setattr(storage, "_s3_client", None)
    monkeypatch.setattr(settings, "S3_BUCKET", "")
    monkeypatch.setattr(settings, "S3_REGION", "")
    with pytest.raises(RuntimeError):
        storage.get_s3_client()


def test_s3_client_does_not_retry(monkeypatch):
    created = {}

    def fake_client(service, **kwargs):
        created.update(kwargs, service=service)
        return RecordingS3Client()

    monkeypatch.setattr(storage, "_s3_client", None)
    monkeypatch.setattr(settings, "S3_BUCKET", "docs")
    monkeypatch.setattr(settings, "S3_REGION", "us-east-1")
    monkeypatch.setattr(settings, "S3_ENDPOINT", None)
    monkeypatch.setattr(storage.boto3, "client", fake_client)

    client = storage.get_s3_client()
    assert storage.get_s3_client() is client
    assert created["service"] == "s3"
    assert created["region_name"] == "us-east-1"
    assert created["config"].retries["max_attempts"] == 0
