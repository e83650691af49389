"""Insert <link rel="stylesheet"> references to compiled CSS."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from bs4 import BeautifulSoup, Doctype, Tag

from .markup import decode_entities

logger = logging.getLogger(__name__)


def _normalize_href(href: str) -> str:
    return href.replace("\\", "/")


def compiled_css_href(
    html_output_path: Path | str,
    css_base_name: str,
    compiled_css_dir: Path | str,
    suffix: str = ".css",
) -> str:
    """Relative href from the HTML output location to the compiled CSS file.

    The compiled file is expected at ``compiled_css_dir/<base><suffix>``; it
    usually does not exist yet when the link is written.
    """
    target = Path(compiled_css_dir) / f"{css_base_name}{suffix}"
    relative = os.path.relpath(target, Path(html_output_path).parent)
    return _normalize_href(relative)


def _is_stylesheet(link: Tag) -> bool:
    rel = link.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return "stylesheet" in (value.lower() for value in rel)


def _ensure_head(soup: BeautifulSoup) -> Tag:
    head = soup.head
    if head is not None:
        return head

    head = soup.new_tag("head")
    if soup.html is not None:
        soup.html.insert(0, head)
    else:
        position = 0
        for index, child in enumerate(soup.contents):
            if isinstance(child, Doctype):
                position = index + 1
        soup.insert(position, head)
    logger.debug("Created missing <head> element")
    return head


def ensure_stylesheet_link(
    soup: BeautifulSoup,
    html_output_path: Path | str,
    css_base_name: str,
    compiled_css_dir: Path | str,
    suffix: str = ".css",
) -> bool:
    """Make sure ``soup`` links the compiled stylesheet for ``css_base_name``.

    Returns:
        True if a new <link> was appended to <head>, False if a stylesheet
        link with the same href already existed.
    """
    href = compiled_css_href(html_output_path, css_base_name, compiled_css_dir, suffix)

    for link in soup.find_all("link"):
        if not _is_stylesheet(link):
            continue
        existing = link.get("href")
        if existing and _normalize_href(decode_entities(existing)) == href:
            logger.debug("Stylesheet link %r already present; not adding a duplicate", href)
            return False

    head = _ensure_head(soup)
    head.append(soup.new_tag("link", attrs={"rel": "stylesheet", "href": href}))
    head.append("\n")
    return True
