# legaldocs/main.py
import asyncio
import logging
import uuid
from typing import Any, Dict, Optional

import redis.asyncio as aioredis
from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from legaldocs import clients, db
from legaldocs.auth import AuthedUser, get_session_context, require_bearer_auth
from legaldocs.chat import CHANNELS, send_civic_message, send_compare_message, switch_language
from legaldocs.compare import compare_documents
from legaldocs.config import settings
from legaldocs.db import get_async_session
from legaldocs.errors import LegalDocsError, NotFound, PayloadTooLarge
from legaldocs.extract import convert_file
from legaldocs.metrics import conversions_total
from legaldocs.pipeline import FileUpload, upload_document
from legaldocs.repository import DocumentRepository
from legaldocs.session import SessionContext, sessions
from legaldocs.storage import get_object_store

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title="Legal Documents", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Redis helper (upload progress status)
_redis = None


def get_redis():
    global _redis
    if _redis is None:
        _redis = aioredis.from_url(settings.redis_url, decode_responses=True)
    return _redis


@app.on_event("startup")
async def startup():
    logging.basicConfig(level=settings.log_level)
    await db.init_models()


@app.on_event("shutdown")
async def shutdown():
    global _redis
    try:
        await clients.close_client()
    except Exception:
        logger.exception("Failed to close httpx client on shutdown")
    if _redis is not None:
        try:
            await _redis.aclose()
        except Exception:
            logger.exception("Failed to close redis on shutdown")
        _redis = None
    await db.close_engine()


@app.exception_handler(HTTPException)
def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)


@app.exception_handler(LegalDocsError)
def legaldocs_exception_handler(request: Request, exc: LegalDocsError):
    return JSONResponse({"detail": exc.message}, status_code=exc.status_code)


class CompareRequest(BaseModel):
    doc_a_id: Optional[str] = None
    doc_b_id: Optional[str] = None


class ChatRequest(BaseModel):
    user_prompt: str = ""


class CivicChatRequest(ChatRequest):
    language: str = "english"
    topic: str = "finance-bill"


class LanguageRequest(BaseModel):
    language: str


@app.get("/healthz")
async def healthz():
    ok = {"database": False, "redis": False, "storage": False}
    try:
        ok["database"] = await asyncio.wait_for(db.ping(), timeout=2.0)
    except Exception:
        logger.exception("Database health check failed")
    try:
        await get_redis().ping()
        ok["redis"] = True
    except Exception:
        logger.exception("Redis ping failed")
    try:
        store = get_object_store()
        await asyncio.wait_for(asyncio.to_thread(store.ping), timeout=2.0)
        ok["storage"] = True
    except Exception:
        logger.exception("Object store health check failed")
    status = 200 if all(ok.values()) else 503
    return JSONResponse(ok, status_code=status)


@app.get("/metrics")
def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


# ---------- conversion service ----------
@app.post("/convert-document")
async def convert_document(file: Optional[UploadFile] = File(None)):
    if file is None:
        return JSONResponse({"error": "No file provided"}, status_code=400)
    data = await _read_upload(file)
    conversions_total.inc()
    result = await asyncio.to_thread(convert_file, file.filename or "", file.content_type, data)
    return JSONResponse(result.model_dump(exclude_none=True), status_code=200 if result.success else 500)


# ---------- documents ----------
async def _read_upload(file: UploadFile) -> bytes:
    max_size = settings.max_upload_size
    buf = bytearray()
    while True:
        chunk = await file.read(1024 * 64)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_size:
            raise PayloadTooLarge("Payload too large")
    return bytes(buf)


def _status_key(user_id: str, upload_id: str) -> str:
    # scoped by principal: a client-chosen upload_id never reaches another user's hash
    return f"upload:{user_id}:{upload_id}"


async def _publish_status(key: str, mapping: Dict[str, Any]) -> None:
    # status is advisory; never fail the upload because redis is down
    try:
        r = get_redis()
        await r.hset(key, mapping={k: str(v) for k, v in mapping.items()})
        await r.expire(key, settings.upload_status_ttl)
    except Exception:
        logger.exception("Failed to publish upload status to %s", key)


@app.post("/documents", status_code=201)
async def upload(
    name: str = Form(""),
    file: Optional[UploadFile] = File(None),
    upload_id: Optional[str] = Form(None),
    ctx: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_async_session),
):
    upload_id = upload_id or uuid.uuid4().hex
    status_key = _status_key(ctx.user_id, upload_id)
    upload_file = None
    if file is not None:
        upload_file = FileUpload(filename=file.filename or "", content_type=file.content_type, data=await _read_upload(file))

    steps = []

    async def on_progress(update):
        steps.append(update.model_dump())
        await _publish_status(status_key, {
            "status": "processing",
            "step": update.step,
            "progress": update.progress,
            "user_id": ctx.user_id,
        })

    try:
        doc = await upload_document(
            ctx,
            name,
            upload_file,
            store=get_object_store(),
            repo=DocumentRepository(session),
            client=clients.get_client(),
            progress=on_progress,
        )
    except Exception as e:
        if steps:
            await _publish_status(status_key, {"status": "failed", "error": getattr(e, "message", str(e))})
        raise

    await _publish_status(status_key, {"status": "completed", "document_id": str(doc.id)})
    return {"upload_id": upload_id, "document": doc.to_dict(), "progress": steps}


@app.get("/uploads/{upload_id}")
async def upload_status(upload_id: str, user: AuthedUser = Depends(require_bearer_auth)):
    info = await get_redis().hgetall(_status_key(user.sub, upload_id))
    if not info:
        raise NotFound("upload_id not found")
    return info


@app.get("/documents")
async def list_documents(
    q: Optional[str] = None,
    ctx: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_async_session),
):
    if ctx.documents is None:
        rows = await DocumentRepository(session).list_for_user(ctx.require_user())
        ctx.documents = [r.to_dict() for r in rows]
    items = ctx.documents
    if q:
        needle = q.lower()
        items = [d for d in items if needle in d["name"].lower()]
    return {"items": items}


@app.delete("/documents/{doc_id}")
async def delete_document(
    doc_id: str,
    ctx: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_async_session),
):
    # only the row goes; stored objects stay in the bucket
    deleted = await DocumentRepository(session).delete_for_user(doc_id, ctx.require_user())
    if deleted:
        ctx.invalidate_documents()
    return {"deleted": deleted, "doc_id": doc_id}


# ---------- comparison ----------
@app.post("/compare")
async def compare(
    body: CompareRequest,
    ctx: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_async_session),
):
    await compare_documents(
        ctx,
        body.doc_a_id,
        body.doc_b_id,
        repo=DocumentRepository(session),
        client=clients.get_client(),
    )
    return {"documents_processed": ctx.documents_processed}


@app.get("/compare/status")
async def compare_status(ctx: SessionContext = Depends(get_session_context)):
    return {"documents_processed": ctx.documents_processed, "comparing": ctx.comparing}


@app.post("/compare-documents")
async def compare_documents_relay(request: Request, user: AuthedUser = Depends(require_bearer_auth)):
    """Same-origin relay: forwards {user_prompt} to the comparison Q&A workflow as-is."""
    try:
        body = await request.json()
    except ValueError:
        body = None
    user_prompt = body.get("user_prompt") if isinstance(body, dict) else None
    if not user_prompt:
        return JSONResponse({"error": "user_prompt is required"}, status_code=400)

    logger.info("Relaying prompt for %s to comparison workflow", user.sub)
    try:
        result = await clients.ask_comparison(user_prompt, client=clients.get_client())
    except LegalDocsError as e:
        logger.error("Error in compare-documents relay: %s", e.message)
        return JSONResponse({"error": "Internal server error", "message": e.message}, status_code=500)
    return JSONResponse(result)


# ---------- chat ----------
@app.post("/compare/chat")
async def compare_chat(body: ChatRequest, ctx: SessionContext = Depends(get_session_context)):
    messages = await send_compare_message(ctx, body.user_prompt, client=clients.get_client())
    return {"messages": [m.view() for m in messages]}


@app.post("/civic/chat")
async def civic_chat(body: CivicChatRequest, ctx: SessionContext = Depends(get_session_context)):
    messages = await send_civic_message(
        ctx,
        body.user_prompt,
        language=body.language,
        topic=body.topic,
        client=clients.get_client(),
    )
    return {"messages": [m.view() for m in messages]}


@app.post("/civic/language")
async def civic_language(body: LanguageRequest, ctx: SessionContext = Depends(get_session_context)):
    transcript = ctx.transcript("civic")
    messages = switch_language(transcript, body.language)
    return {"language": transcript.language, "messages": [m.view() for m in messages]}


@app.get("/chat/{channel}/messages")
async def chat_messages(channel: str, ctx: SessionContext = Depends(get_session_context)):
    if channel not in CHANNELS:
        raise NotFound(f"Unknown chat channel: {channel}")
    transcript = ctx.transcript(channel)
    return {
        "channel": channel,
        "sending": transcript.sending,
        "language": transcript.language,
        "messages": [m.view() for m in transcript.messages],
    }


@app.delete("/session")
async def end_session(user: AuthedUser = Depends(require_bearer_auth)):
    return {"ended": sessions.end(user.sub)}
