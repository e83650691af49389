"""Source-preserving HTML parsing and serialization.

``html.parser`` decodes character references while building the tree, so a
plain round trip turns ``&nbsp;`` into a raw U+00A0 and ``<br>`` into
``<br/>``. Entity references are therefore swapped for private-use markers
before parsing and swapped back on output, and documents are serialized
without re-escaping and with void tags closed the way the source closes
them.
"""

from __future__ import annotations

import html
import re

from bs4 import BeautifulSoup
from bs4.formatter import HTMLFormatter

HTML_PARSER = "html.parser"

ENTITY_OPEN = "\ue000"
ENTITY_CLOSE = "\ue001"

_ENTITY_BODY = r"#[0-9]+|#[xX][0-9a-fA-F]+|[A-Za-z][A-Za-z0-9]*"
_ENTITY_RE = re.compile(rf"&({_ENTITY_BODY});")
_PROTECTED_RE = re.compile(rf"{ENTITY_OPEN}({_ENTITY_BODY}){ENTITY_CLOSE}")
_SELF_CLOSED_VOID_RE = re.compile(
    r"<(?:area|base|br|col|embed|hr|img|input|link|meta|source|track|wbr)\b[^<>]*/>",
    re.IGNORECASE,
)


class SourceFormatter(HTMLFormatter):
    """Writes text as parsed and attributes in source order."""

    def __init__(self, void_element_close_prefix: str | None = None):
        super().__init__(
            entity_substitution=None, void_element_close_prefix=void_element_close_prefix
        )

    def attributes(self, tag):
        if tag.attrs is None:
            return []
        return list(tag.attrs.items())


_SOURCE_FORMATTER = SourceFormatter()
_SELF_CLOSING_FORMATTER = SourceFormatter(void_element_close_prefix="/")


def protect_entities(text: str) -> str:
    return _ENTITY_RE.sub(lambda m: f"{ENTITY_OPEN}{m.group(1)}{ENTITY_CLOSE}", text)


def restore_entities(text: str) -> str:
    """Turn markers back into the entity references of the source text."""
    return _PROTECTED_RE.sub(lambda m: f"&{m.group(1)};", text)


def decode_entities(text: str) -> str:
    """Value of ``text`` as a browser reads it, e.g. for attribute values."""
    return html.unescape(restore_entities(text))


def parse_source(text: str) -> BeautifulSoup:
    return BeautifulSoup(protect_entities(text), HTML_PARSER)


def serialize_source(tree: BeautifulSoup, source_text: str = "") -> str:
    """Serialize ``tree`` keeping the entity and void-tag spelling of ``source_text``."""
    if _SELF_CLOSED_VOID_RE.search(source_text):
        formatter = _SELF_CLOSING_FORMATTER
    else:
        formatter = _SOURCE_FORMATTER
    return restore_entities(tree.decode(formatter=formatter))
