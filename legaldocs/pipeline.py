# legaldocs/pipeline.py
"""
Upload pipeline:
 1) convert the file to text through the conversion service
 2) store the original file
 3) store the extracted text next to it (converted/<same stamp>-<stem>.txt)
 4) resolve both public urls
 5) insert the documents row

Strictly sequential; the first failing step aborts the rest and its message
reaches the caller unchanged. Objects written before the failure are left
in the bucket (logged as orphaned); there is no rollback and no retry.
"""
import asyncio
import inspect
import logging
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Awaitable, Callable, Optional, Union

import httpx
from pydantic import BaseModel

from legaldocs import clients
from legaldocs.config import settings
from legaldocs.errors import ConversionFailed, PayloadTooLarge, ValidationFailed
from legaldocs.metrics import uploads_failed, uploads_total
from legaldocs.models import Document
from legaldocs.repository import DocumentRepository
from legaldocs.storage import ObjectStore, object_keys, safe_filename

logger = logging.getLogger(__name__)

STEP_CONVERT = ("Converting document to text...", 20)
STEP_ORIGINAL = ("Uploading original document...", 40)
STEP_TEXT = ("Uploading converted text...", 60)
STEP_URLS = ("Finalizing upload...", 80)
STEP_DATABASE = ("Saving to database...", 90)
STEP_DONE = ("Upload complete!", 100)


@dataclass
class FileUpload:
    filename: str
    content_type: Optional[str]
    data: bytes


class UploadProgress(BaseModel):
    step: str
    progress: int


ProgressCallback = Callable[[UploadProgress], Union[None, Awaitable[None]]]


async def _report(progress: Optional[ProgressCallback], step) -> None:
    update = UploadProgress(step=step[0], progress=step[1])
    logger.info("upload progress %d%%: %s", update.progress, update.step)
    if progress is None:
        return
    result = progress(update)
    if inspect.isawaitable(result):
        await result


def _accepted_type(upload: FileUpload) -> bool:
    ext = PurePosixPath(safe_filename(upload.filename)).suffix.lower()
    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    return ext in settings.allowed_extensions or content_type in settings.allowed_content_types


def validate_upload(ctx, name: str, upload: Optional[FileUpload]) -> str:
    """Checks run before any network call. Returns the trimmed display name."""
    ctx.require_user("User must be logged in to upload documents")
    clean_name = (name or "").strip()
    if not clean_name:
        raise ValidationFailed("Please enter a name for your document.")
    if upload is None or not upload.filename or not upload.data:
        raise ValidationFailed("Please select a PDF document to upload.")
    if not _accepted_type(upload):
        raise ValidationFailed("Please select a PDF document only.")
    if len(upload.data) > settings.max_upload_size:
        raise PayloadTooLarge("Payload too large")
    return clean_name


async def upload_document(
    ctx,
    name: str,
    upload: Optional[FileUpload],
    *,
    store: ObjectStore,
    repo: DocumentRepository,
    client: Optional[httpx.AsyncClient] = None,
    progress: Optional[ProgressCallback] = None,
) -> Document:
    clean_name = validate_upload(ctx, name, upload)
    user_id = ctx.user_id

    with ctx.in_flight("uploading", "An upload is already in progress."):
        uploads_total.inc()
        logger.info("Starting upload process for %s (user=%s)", upload.filename, user_id)
        stored = []
        try:
            await _report(progress, STEP_CONVERT)
            conversion = await clients.convert_document(upload.filename, upload.content_type, upload.data, client=client)
            if not conversion.success:
                raise ConversionFailed(conversion.error or "Failed to convert document")

            original_key, text_key = object_keys(upload.filename)

            await _report(progress, STEP_ORIGINAL)
            await asyncio.to_thread(store.put, original_key, upload.data, upload.content_type or "application/pdf")
            stored.append(original_key)

            await _report(progress, STEP_TEXT)
            await asyncio.to_thread(store.put, text_key, conversion.text.encode("utf-8"), "text/plain; charset=utf-8")
            stored.append(text_key)

            await _report(progress, STEP_URLS)
            original_url = store.public_url(original_key)
            txt_url = store.public_url(text_key)

            await _report(progress, STEP_DATABASE)
            doc = await repo.insert(name=clean_name, original_url=original_url, txt_url=txt_url, user_id=user_id)
        except Exception as e:
            uploads_failed.inc()
            logger.error("Upload of %s failed: %s", upload.filename, e)
            if stored:
                logger.warning("Orphaned objects left in bucket after failed upload: %s", ", ".join(stored))
            raise

        await _report(progress, STEP_DONE)

    ctx.invalidate_documents()
    logger.info("Upload complete: document %s for user %s", doc.id, user_id)
    return doc
