# legaldocs/civic.py
"""
Normalizer for the civic-education workflow's replies.

The workflow answers in one of two shapes:
  structured: {"success": true, "data": {"answer": {"english", "swahili"},
                                         "markdown": {"formatted"}}}
  plain:      a JSON string, or an object with content/answer/response/output
Both become a CivicAnswer; anything else is a DecodeError.
"""
from typing import Any, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError

from legaldocs.errors import DecodeError

LANGUAGES = ("english", "swahili")
TOPICS = ("finance-bill", "constitution")

FALLBACK_REPLY = "I apologize, but I received an empty response. Please try rephrasing your question."

COMING_SOON = {
    "english": (
        "The Constitution section is coming soon! We're working hard to bring you comprehensive "
        "information about Kenya's Constitution. For now, you can explore the Finance Bill section."
    ),
    "swahili": (
        "Sehemu ya Katiba inakuja hivi karibuni! Tunafanya kazi kwa bidii kukuletea maelezo ya kina "
        "kuhusu Katiba ya Kenya. Kwa sasa, unaweza kuchunguza sehemu ya Mswada wa Fedha."
    ),
}

_PLAIN_KEYS = ("content", "answer", "response", "output")


class CivicAnswer(BaseModel):
    model_config = ConfigDict(frozen=True)

    english: str = ""
    swahili: str = ""

    @property
    def empty(self) -> bool:
        return not (self.english.strip() or self.swahili.strip())

    def text_for(self, language: str) -> str:
        primary = self.swahili if language == "swahili" else self.english
        other = self.english if language == "swahili" else self.swahili
        return primary or other


class _Answer(BaseModel):
    english: Optional[str] = None
    swahili: Optional[str] = None


class _Markdown(BaseModel):
    formatted: Optional[str] = None


class _Data(BaseModel):
    answer: _Answer
    markdown: Optional[_Markdown] = None


class StructuredReply(BaseModel):
    success: Literal[True]
    data: _Data


def split_language_sections(formatted: str) -> Optional[Tuple[str, str]]:
    """'## English ... ## Swahili ...' -> (english, swahili); None if either heading is missing."""
    if "## English" not in formatted or "## Swahili" not in formatted:
        return None
    sections = formatted.split("## ")
    english = next((s for s in sections if s.startswith("English")), "")
    swahili = next((s for s in sections if s.startswith("Swahili")), "")
    return english.replace("English\n", "", 1).strip(), swahili.replace("Swahili\n", "", 1).strip()


def _plain(text: str, language: str) -> CivicAnswer:
    if language == "swahili":
        return CivicAnswer(swahili=text)
    return CivicAnswer(english=text)


def _structured(reply: StructuredReply) -> CivicAnswer:
    english = reply.data.answer.english or ""
    swahili = reply.data.answer.swahili or ""
    formatted = reply.data.markdown.formatted if reply.data.markdown else None
    if formatted:
        sections = split_language_sections(formatted)
        if sections is None:
            english = swahili = formatted
        else:
            english = sections[0] or english
            swahili = sections[1] or swahili
    return CivicAnswer(english=english, swahili=swahili)


def parse_civic_reply(payload: Any, language: str = "english") -> CivicAnswer:
    if isinstance(payload, str):
        return _plain(payload, language)

    if isinstance(payload, dict):
        if payload.get("success") is True and isinstance(payload.get("data"), dict) and "answer" in payload["data"]:
            try:
                return _structured(StructuredReply.model_validate(payload))
            except ValidationError as e:
                raise DecodeError("Malformed civic education response") from e
        for key in _PLAIN_KEYS:
            value = payload.get(key)
            if isinstance(value, str):
                return _plain(value, language)

    raise DecodeError("Unrecognized civic education response")
