"""Per-document refactor: extract styles and scripts, link compiled CSS.

The orchestrator itself never writes. CSS merging and script path resolution
are delegated to the writer passed in, and the rewritten HTML and extracted
scripts are returned for the writer to persist.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import NamedTuple, Protocol

from bs4 import BeautifulSoup

from .conf import RefactorConfig
from .extractors import ExtractedScriptFile, StyleRegistry, extract_scripts, extract_styles
from .links import ensure_stylesheet_link
from .markup import decode_entities, parse_source, serialize_source
from .naming import NamingPolicy, derive_base_name

logger = logging.getLogger(__name__)


class DocumentWriter(Protocol):
    """Persistence operations the orchestrator depends on."""

    def read_document(self, path: Path) -> str: ...

    def css_target_path(self, html_path: Path, base_name: str) -> Path: ...

    def merge_css(self, target: Path, css: str, source_name: str) -> Path | None: ...

    def resolve_script_target(self, path: Path, content: str) -> Path: ...


class Document(NamedTuple):
    path: Path
    text: str
    tree: BeautifulSoup


def parse_html(text: str) -> BeautifulSoup:
    """Parse HTML leniently; malformed markup is repaired, never rejected.

    Entity references survive parsing as markers, see ``markup``.
    """
    return parse_source(text)


def serialize_html(tree: BeautifulSoup, source_text: str = "") -> str:
    return serialize_source(tree, source_text)


@dataclass
class RefactorResult:
    """Outcome of refactoring one document."""

    path: Path
    original_html: str
    html: str
    base_name: str
    scripts: list[ExtractedScriptFile] = field(default_factory=list)
    css: str = ""
    css_path: Path | None = None
    link_added: bool = False
    changed: bool = False
    linked_scripts: list[Path] = field(default_factory=list)


def _is_local_src(src: str) -> bool:
    lowered = src.lower()
    return not (
        "://" in src
        or lowered.startswith(("//", "/", "data:", "blob:", "#"))
    )


def local_script_paths(tree: BeautifulSoup, html_path: Path) -> list[Path]:
    """Absolute paths of the local files referenced by <script src>."""
    html_dir = Path(html_path).parent
    paths: list[Path] = []
    for tag in tree.find_all("script", src=True):
        src = decode_entities(tag["src"]).split("?", 1)[0].split("#", 1)[0].strip()
        if not src or not _is_local_src(src):
            continue
        path = Path(os.path.normpath(html_dir / src))
        if path not in paths:
            paths.append(path)
    return paths


def load_document(path: Path, writer: DocumentWriter) -> Document:
    text = writer.read_document(path)
    return Document(path=Path(path), text=text, tree=parse_html(text))


def refactor_html(
    document: Document,
    config: RefactorConfig,
    writer: DocumentWriter,
) -> RefactorResult:
    """Refactor a parsed document.

    Steps run in this order: styles are extracted and merged into the CSS
    target, the compiled stylesheet link is inserted (only when a CSS target
    resulted), then inline scripts are extracted. ``document.tree`` is
    mutated in place.

    If no step changed anything, ``result.html`` is the original text
    unchanged, so unchanged documents round-trip byte for byte.
    """
    path = document.path
    source_name = config.relative(path)
    base_name = derive_base_name(path, NamingPolicy.from_config(config))
    tree = document.tree
    logger.debug("Processing %s (base name %r)", source_name, base_name)

    css, styles_changed = extract_styles(tree, source_name, StyleRegistry())

    css_path = None
    link_added = False
    if css:
        target = writer.css_target_path(path, base_name)
        css_path = writer.merge_css(target, css, source_name)
        if css_path is not None:
            link_added = ensure_stylesheet_link(
                tree,
                path,
                base_name,
                config.compiled_css_link_dir,
                config.compiled_css_suffix,
            )
            if link_added:
                logger.info("Added link to compiled CSS for %s", source_name)

    scripts, scripts_changed = extract_scripts(
        tree, path, base_name, config, writer.resolve_script_target
    )

    changed = styles_changed or link_added or scripts_changed
    html = serialize_html(tree, document.text) if changed else document.text
    if not changed:
        logger.debug("No inline styles or scripts in %s", source_name)

    return RefactorResult(
        path=path,
        original_html=document.text,
        html=html,
        base_name=base_name,
        scripts=scripts,
        css=css,
        css_path=css_path,
        link_added=link_added,
        changed=changed,
        linked_scripts=local_script_paths(tree, path),
    )


def refactor_document(
    path: Path | str,
    config: RefactorConfig,
    writer: DocumentWriter,
) -> RefactorResult:
    """Read, parse and refactor the document at ``path``.

    Raises:
        FileNotFoundError: If the document cannot be read.
    """
    return refactor_html(load_document(Path(path), writer), config, writer)
