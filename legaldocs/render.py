# legaldocs/render.py
import html
import re

_BOLD_RE = re.compile(r"\*\*(.*?)\*\*")
_BULLETS = ("- ", "* ", "• ")


def _inline(text: str) -> str:
    return _BOLD_RE.sub(r"<strong>\1</strong>", html.escape(text, quote=False))


def render_markdown(content: str) -> str:
    """
    Light markdown for chat replies: headings, bullets, bold, colon-terminated
    section headers. Input is escaped first; only the tags below are emitted.
    """
    out = []
    for line in (content or "").split("\n"):
        stripped = line.strip()
        if not stripped:
            out.append("<br>")
        elif stripped.startswith("## "):
            out.append(f"<h3>{_inline(stripped[3:])}</h3>")
        elif stripped.startswith("# "):
            out.append(f"<h2>{_inline(stripped[2:])}</h2>")
        elif stripped.startswith(_BULLETS):
            out.append(f'<div class="bullet">• {_inline(stripped[2:])}</div>')
        elif stripped.endswith(":") and "**" not in stripped:
            out.append(f'<div class="section-header">{_inline(stripped)}</div>')
        else:
            out.append(f"<div>{_inline(stripped)}</div>")
    return "\n".join(out)
