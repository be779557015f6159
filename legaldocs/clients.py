# legaldocs/clients.py
"""
HTTP calls to the conversion service and the n8n workflows.

No retries: a failed call is reported once and the orchestrator decides
what the user sees.
"""
import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from legaldocs.config import settings
from legaldocs.errors import DecodeError, TransportError
from legaldocs.extract import ConversionResult

logger = logging.getLogger(__name__)

_default_client: Optional[httpx.AsyncClient] = None


def get_client() -> httpx.AsyncClient:
    global _default_client
    if _default_client is None:
        _default_client = httpx.AsyncClient(timeout=settings.http_timeout)
    return _default_client


async def close_client() -> None:
    global _default_client
    if _default_client is not None:
        await _default_client.aclose()
        _default_client = None


def _workflow_headers() -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if settings.workflow_token:
        headers["Authorization"] = f"Bearer {settings.workflow_token}"
    return headers


async def _send(client: httpx.AsyncClient, method: str, url: str, **kwargs) -> httpx.Response:
    try:
        resp = await client.request(method, url, **kwargs)
    except httpx.ConnectError as e:
        logger.error("Could not connect to %s: %s", url, e)
        raise TransportError("Failed to fetch", connect_failed=True) from e
    except httpx.HTTPError as e:
        logger.error("Request to %s failed: %r", url, e)
        raise TransportError(str(e) or e.__class__.__name__) from e

    if not resp.is_success:
        logger.error("Non-2xx (status=%d) from %s. Body snippet: %.500s", resp.status_code, url, resp.text)
        raise TransportError(f"HTTP error! status: {resp.status_code}", status=resp.status_code)
    return resp


def _json(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError as e:
        logger.error("Non-JSON response from %s; body snippet: %.500s", resp.request.url, resp.text)
        raise DecodeError("Invalid JSON response") from e


async def convert_document(
    filename: str,
    content_type: Optional[str],
    data: bytes,
    client: Optional[httpx.AsyncClient] = None,
) -> ConversionResult:
    """Never raises: every failure comes back as success=False with a readable error."""
    client = client or get_client()
    logger.info("Converting file via conversion service: %s, type: %s", filename, content_type)
    files = {"file": (filename, data, content_type or "application/octet-stream")}
    headers = {}
    if settings.workflow_token:
        headers["Authorization"] = f"Bearer {settings.workflow_token}"
    try:
        resp = await _send(client, "POST", settings.conversion_url, files=files, headers=headers)
        return ConversionResult.model_validate(_json(resp))
    except TransportError as e:
        return ConversionResult(text="", success=False, error=e.message)
    except ValidationError:
        logger.error("Conversion service returned an unexpected body")
        return ConversionResult(text="", success=False, error="Invalid conversion response")


async def vectorize_documents(file1_url: str, file2_url: str, client: Optional[httpx.AsyncClient] = None) -> Dict[str, Any]:
    client = client or get_client()
    logger.info("Sending documents to vector workflow")
    resp = await _send(
        client,
        "POST",
        settings.vector_workflow_url,
        json={"file1_url": file1_url, "file2_url": file2_url},
        headers=_workflow_headers(),
    )
    payload = _json(resp)
    if not isinstance(payload, dict):
        raise DecodeError("Unexpected vector workflow response")
    return payload


async def ask_comparison(user_prompt: str, client: Optional[httpx.AsyncClient] = None) -> Any:
    client = client or get_client()
    logger.info("Proxying prompt to comparison Q&A workflow")
    resp = await _send(
        client,
        "POST",
        settings.compare_qa_url,
        json={"user_prompt": user_prompt},
        headers=_workflow_headers(),
    )
    return _json(resp)


async def ask_civic(user_prompt: str, client: Optional[httpx.AsyncClient] = None) -> Any:
    client = client or get_client()
    logger.info("Sending query to civic education workflow")
    resp = await _send(
        client,
        "GET",
        settings.civic_qa_url,
        params={"user_prompt": user_prompt},
        headers=_workflow_headers(),
    )
    return _json(resp)
