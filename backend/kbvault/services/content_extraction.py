"""
Plain-text extraction and size ceilings for converted HTML.
"""
import re
from typing import List, Tuple

from ..core.config import MAX_CONTENT_CHARS, MAX_TEXT_CHARS

TRUNCATION_MARKER = "\n<!-- Content truncated due to size -->"

_SCRIPT_RE = re.compile(r"<script[^>]*>[\s\S]*?</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")

# Order matters: &amp; is decoded after &nbsp; so "&amp;nbsp;" stays literal
_ENTITIES = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
)


def extract_text_from_html(html: str, max_chars: int = MAX_TEXT_CHARS) -> str:
    """
    Strip markup from HTML and return searchable plain text.

    Script and style blocks are removed with their content, every other tag
    becomes a space, common entities are decoded and whitespace collapsed.
    The result is capped at `max_chars`.
    """
    text = _SCRIPT_RE.sub("", html)
    text = _STYLE_RE.sub("", text)
    text = _TAG_RE.sub(" ", text)

    for entity, replacement in _ENTITIES:
        text = text.replace(entity, replacement)

    text = _WHITESPACE_RE.sub(" ", text).strip()
    return text[:max_chars]


def cap_content(html: str, max_chars: int = MAX_CONTENT_CHARS) -> Tuple[str, bool]:
    """
    Apply the storage ceiling to HTML content.

    Returns:
        (content, truncated) - oversized content is cut to `max_chars` and
        followed by a visible truncation marker comment
    """
    if len(html) <= max_chars:
        return html, False
    return html[:max_chars] + TRUNCATION_MARKER, True


def derive_keywords(text: str, limit: int = 15, min_length: int = 4) -> List[str]:
    """First `limit` space-separated tokens of at least `min_length` characters."""
    return [word for word in text.split(" ") if len(word) >= min_length][:limit]
