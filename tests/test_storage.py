# tests/test_storage.py
import json

import pytest
import urllib3

from legaldocs.errors import BackendError
from legaldocs.storage import ObjectStore, object_keys, safe_filename


class FakeMinio:
    def __init__(self, exists=True, fail=None):
        self.exists = exists
        self.fail = fail
        self.calls = []

    def bucket_exists(self, bucket_name):
        self.calls.append(("bucket_exists", bucket_name))
        return self.exists

    def make_bucket(self, bucket_name):
        self.calls.append(("make_bucket", bucket_name))

    def set_bucket_policy(self, bucket_name, policy):
        self.calls.append(("set_bucket_policy", bucket_name, json.loads(policy)))

    def put_object(self, bucket_name, object_name, data, length, content_type):
        if self.fail:
            raise self.fail
        self.calls.append(("put_object", bucket_name, object_name, data.read(), length, content_type))


def test_keys_share_one_timestamp():
    original, text = object_keys("Lease Agreement.pdf", now_ms=1700000000123)
    assert original == "originals/1700000000123-Lease Agreement.pdf"
    assert text == "converted/1700000000123-Lease Agreement.txt"


def test_safe_filename_drops_client_paths():
    assert safe_filename("C:\\Users\\me\\lease.pdf") == "lease.pdf"
    assert safe_filename("../../etc/passwd") == "passwd"
    assert safe_filename("") == "uploaded"


def test_public_url_is_quoted():
    store = ObjectStore(FakeMinio(), "documents", "http://localhost:9000/")
    assert store.public_url("originals/1-Lease Agreement.pdf") == (
        "http://localhost:9000/documents/originals/1-Lease%20Agreement.pdf"
    )


def test_put_writes_bytes():
    minio = FakeMinio()
    store = ObjectStore(minio, "documents", "http://localhost:9000")
    assert store.put("converted/1-a.txt", b"hello", "text/plain") == "converted/1-a.txt"
    assert minio.calls[-1] == ("put_object", "documents", "converted/1-a.txt", b"hello", 5, "text/plain")


def test_put_failure_becomes_backend_error():
    store = ObjectStore(FakeMinio(fail=urllib3.exceptions.HTTPError("connection refused")), "documents", "http://x")
    with pytest.raises(BackendError) as exc:
        store.put("originals/1-a.pdf", b"%PDF")
    assert "connection refused" in exc.value.message


def test_ensure_bucket_creates_public_read_bucket():
    minio = FakeMinio(exists=False)
    ObjectStore(minio, "documents", "http://x").ensure_bucket()
    names = [c[0] for c in minio.calls]
    assert names == ["bucket_exists", "make_bucket", "set_bucket_policy"]
    policy = minio.calls[-1][2]
    assert policy["Statement"][0]["Action"] == ["s3:GetObject"]
    assert policy["Statement"][0]["Resource"] == ["arn:aws:s3:::documents/*"]


def test_ensure_bucket_leaves_existing_bucket_alone():
    minio = FakeMinio(exists=True)
    ObjectStore(minio, "documents", "http://x").ensure_bucket()
    assert [c[0] for c in minio.calls] == ["bucket_exists"]
