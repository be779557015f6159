# legaldocs/chat.py
"""
Chat relay: forward a prompt to a Q&A workflow and keep the session transcript.

A relayed message always ends with exactly one new assistant or error
message. Workflow failures are turned into error messages, never raised.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Literal, Optional

import httpx
from pydantic import BaseModel, Field

from legaldocs import clients
from legaldocs.civic import COMING_SOON, FALLBACK_REPLY, LANGUAGES, TOPICS, parse_civic_reply
from legaldocs.errors import Busy, LegalDocsError, TransportError, ValidationFailed
from legaldocs.metrics import chat_errors_total, chat_requests_total
from legaldocs.render import render_markdown

logger = logging.getLogger(__name__)

COMPARE = "compare"
CIVIC = "civic"
CHANNELS = (COMPARE, CIVIC)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatMessage(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    type: Literal["user", "assistant", "error"]
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)
    english_content: Optional[str] = None
    swahili_content: Optional[str] = None

    def view(self) -> dict:
        data = self.model_dump(mode="json")
        data["html"] = render_markdown(self.content)
        return data


@dataclass
class Transcript:
    channel: str
    messages: List[ChatMessage] = field(default_factory=list)
    sending: bool = False
    language: str = "english"


def error_text(exc: LegalDocsError) -> str:
    if isinstance(exc, TransportError) and exc.connect_failed:
        return (
            "Unable to connect to the chat service. This might be a temporary network issue or the "
            "service might be unavailable. Please try again in a few moments."
        )
    return f"Service error: {exc.message}. Please try again later."


async def send_message(
    transcript: Transcript,
    prompt: str,
    ask: Callable[[str], Awaitable[ChatMessage]],
) -> List[ChatMessage]:
    """idle -> sending -> idle. Returns the user message and the reply appended."""
    text = (prompt or "").strip()
    if not text:
        raise ValidationFailed("Please enter a message.")
    if transcript.sending:
        raise Busy("A message is already being sent.")

    user_msg = ChatMessage(type="user", content=text)
    transcript.messages.append(user_msg)
    transcript.sending = True
    chat_requests_total.labels(channel=transcript.channel).inc()
    try:
        reply = await ask(text)
    except LegalDocsError as e:
        logger.warning("Chat relay on %s failed: %s", transcript.channel, e.message)
        chat_errors_total.labels(channel=transcript.channel).inc()
        reply = ChatMessage(type="error", content=error_text(e))
    finally:
        transcript.sending = False

    transcript.messages.append(reply)
    return [user_msg, reply]


async def _ask_compare(text: str, client: Optional[httpx.AsyncClient]) -> ChatMessage:
    data = await clients.ask_comparison(text, client=client)
    output = data.get("output") if isinstance(data, dict) else None
    if not isinstance(output, str) or not output.strip():
        output = FALLBACK_REPLY
    return ChatMessage(type="assistant", content=output)


async def send_compare_message(ctx, prompt: str, client: Optional[httpx.AsyncClient] = None) -> List[ChatMessage]:
    if not ctx.documents_processed:
        raise ValidationFailed("Please compare two documents before asking about them.")

    async def ask(text):
        return await _ask_compare(text, client)

    return await send_message(ctx.transcript(COMPARE), prompt, ask)


async def _ask_civic(text: str, language: str, client: Optional[httpx.AsyncClient]) -> ChatMessage:
    payload = await clients.ask_civic(text, client=client)
    answer = parse_civic_reply(payload, language)
    if answer.empty:
        return ChatMessage(type="assistant", content=FALLBACK_REPLY)
    return ChatMessage(
        type="assistant",
        content=answer.text_for(language),
        english_content=answer.english or None,
        swahili_content=answer.swahili or None,
    )


async def send_civic_message(
    ctx,
    prompt: str,
    language: str = "english",
    topic: str = "finance-bill",
    client: Optional[httpx.AsyncClient] = None,
) -> List[ChatMessage]:
    if language not in LANGUAGES:
        raise ValidationFailed(f"Unsupported language: {language}")
    if topic not in TOPICS:
        raise ValidationFailed(f"Unknown topic: {topic}")

    transcript = ctx.transcript(CIVIC)
    transcript.language = language

    async def ask(text):
        if topic == "constitution":
            return ChatMessage(
                type="assistant",
                content=COMING_SOON[language],
                english_content=COMING_SOON["english"],
                swahili_content=COMING_SOON["swahili"],
            )
        return await _ask_civic(text, language, client)

    return await send_message(transcript, prompt, ask)


def switch_language(transcript: Transcript, language: str) -> List[ChatMessage]:
    """Re-point assistant messages that carry both variants at the chosen language."""
    if language not in LANGUAGES:
        raise ValidationFailed(f"Unsupported language: {language}")
    transcript.language = language
    for message in transcript.messages:
        if message.type == "assistant" and (message.english_content or message.swahili_content):
            variant = message.english_content if language == "english" else message.swahili_content
            message.content = variant or message.content
    return transcript.messages
