# legaldocs/compare.py
import logging
from typing import Optional

import httpx

from legaldocs import clients
from legaldocs.errors import DecodeError, NotFound, TransportError, ValidationFailed, WorkflowError
from legaldocs.metrics import comparisons_failed, comparisons_total
from legaldocs.repository import DocumentRepository, as_uuid

logger = logging.getLogger(__name__)


async def compare_documents(
    ctx,
    doc_a_id: Optional[str],
    doc_b_id: Optional[str],
    *,
    repo: DocumentRepository,
    client: Optional[httpx.AsyncClient] = None,
) -> bool:
    """
    Hand two of the principal's documents to the vector workflow.
    Only the outcome is kept: ctx.documents_processed opens or closes the compare chat.
    """
    user_id = ctx.require_user()
    if not doc_a_id or not doc_b_id:
        raise ValidationFailed("Please select two documents to compare.")
    # ids are UUIDs; "ABC..." and "abc..." name the same row
    parsed_a, parsed_b = as_uuid(doc_a_id), as_uuid(doc_b_id)
    if str(doc_a_id) == str(doc_b_id) or (parsed_a is not None and parsed_a == parsed_b):
        raise ValidationFailed("Please select two different documents to compare.")

    doc_a = await repo.get_for_user(doc_a_id, user_id)
    doc_b = await repo.get_for_user(doc_b_id, user_id)
    if doc_a is None or doc_b is None:
        raise NotFound("Document not found")

    with ctx.in_flight("comparing", "A comparison is already in progress."):
        comparisons_total.inc()
        try:
            try:
                result = await clients.vectorize_documents(doc_a.original_url, doc_b.original_url, client=client)
            except TransportError as e:
                raise TransportError("Failed to process documents in vector workflow", status=e.status) from e

            try:
                error_count = int(result.get("error_count") or 0)
            except (TypeError, ValueError) as e:
                raise DecodeError("Unexpected vector workflow response") from e
            if error_count > 0:
                errors = result.get("errors") or []
                logger.error("Vector workflow errors: %s", errors)
                raise WorkflowError(
                    f"Vector processing failed with {error_count} error(s): {', '.join(str(e) for e in errors)}"
                )
        except Exception:
            comparisons_failed.inc()
            ctx.documents_processed = False
            raise

    ctx.documents_processed = True
    logger.info("Documents %s and %s processed for user %s", doc_a.id, doc_b.id, user_id)
    return True
