# legaldocs/storage.py
import io
import json
import logging
import threading
import time
from pathlib import PurePosixPath
from typing import Optional, Tuple
from urllib.parse import quote

import urllib3
from minio import Minio
from minio.error import S3Error

from legaldocs.config import settings
from legaldocs.errors import BackendError

logger = logging.getLogger(__name__)

ORIGINALS_PREFIX = "originals"
CONVERTED_PREFIX = "converted"

_lock = threading.Lock()
_store = None


def safe_filename(filename: Optional[str]) -> str:
    # strip any client-side path parts (both separators)
    name = PurePosixPath((filename or "").replace("\\", "/")).name
    return name or "uploaded"


def object_keys(filename: str, now_ms: Optional[int] = None) -> Tuple[str, str]:
    """
    Keys for the original file and its extracted text.
    Both share one millisecond timestamp so a retried upload never collides with the failed one.
    """
    name = safe_filename(filename)
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    stem = PurePosixPath(name).stem or name
    return f"{ORIGINALS_PREFIX}/{stamp}-{name}", f"{CONVERTED_PREFIX}/{stamp}-{stem}.txt"


def _public_read_policy(bucket: str) -> str:
    return json.dumps({
        "Version": "2012-10-17",
        "Statement": [{
            "Effect": "Allow",
            "Principal": {"AWS": ["*"]},
            "Action": ["s3:GetObject"],
            "Resource": [f"arn:aws:s3:::{bucket}/*"],
        }],
    })


class ObjectStore:
    """
    Thin wrapper over a MinIO client: put a blob, build its public url.
    Calls are blocking; async callers go through asyncio.to_thread.
    """

    def __init__(self, client: Minio, bucket: str, public_base_url: str):
        self.client = client
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")

    def ensure_bucket(self) -> None:
        if not self.client.bucket_exists(bucket_name=self.bucket):
            self.client.make_bucket(bucket_name=self.bucket)
            self.client.set_bucket_policy(bucket_name=self.bucket, policy=_public_read_policy(self.bucket))
            logger.info("Created public-read bucket %s", self.bucket)

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        try:
            self.client.put_object(
                bucket_name=self.bucket,
                object_name=key,
                data=io.BytesIO(data),
                length=len(data),
                content_type=content_type,
            )
        except S3Error as e:
            logger.error("put_object failed for %s/%s: %s", self.bucket, key, e)
            raise BackendError(e.message or str(e)) from e
        except urllib3.exceptions.HTTPError as e:
            logger.error("Object store unreachable while writing %s/%s: %s", self.bucket, key, e)
            raise BackendError(f"Object store unavailable: {e}") from e
        logger.debug("Stored %s/%s (%d bytes)", self.bucket, key, len(data))
        return key

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{self.bucket}/{quote(key)}"

    def ping(self) -> bool:
        return self.client.bucket_exists(bucket_name=self.bucket)


def get_object_store() -> ObjectStore:
    global _store
    if _store is None:
        with _lock:
            if _store is None:
                client = Minio(
                    endpoint=settings.minio_endpoint,
                    access_key=settings.minio_access_key,
                    secret_key=settings.minio_secret_key,
                    secure=settings.minio_secure,
                )
                store = ObjectStore(client, settings.storage_bucket, settings.public_base_url())
                try:
                    store.ensure_bucket()
                except Exception:
                    logger.exception("Error while ensuring bucket %s exists.", settings.storage_bucket)
                _store = store
    return _store
