"""Deterministic, length-bounded base names for extracted asset files.

A base name is derived from an HTML document's path relative to the project
root and is shared by the extracted CSS source, the compiled CSS artifact and
the extracted script files of that document. The same path and policy always
produce the same name, which is what lets repeated runs target the same files.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple

from .extractors import compute_content_hash

if TYPE_CHECKING:
    from .conf import RefactorConfig

logger = logging.getLogger(__name__)

FILENAME_SANITIZATION_RE = re.compile(r"[^A-Za-z0-9_.-]")
REPEATED_UNDERSCORE_RE = re.compile(r"_+")
FILENAME_REPLACEMENT = "_"
FALLBACK_BASE_NAME = "page"
TRUNCATION_HASH_LENGTH = 8
HTML_SUFFIXES = (".html", ".htm")


class NamingPolicy(NamedTuple):
    """Inputs of the naming function besides the document path."""

    root: Path
    max_length: int = 100
    prefixes_to_omit: tuple[str, ...] = ()

    @classmethod
    def from_config(cls, config: RefactorConfig) -> NamingPolicy:
        return cls(
            root=config.project_root,
            max_length=config.max_filename_length,
            prefixes_to_omit=tuple(config.html_prefixes_to_omit),
        )


def sanitize_filename(text: str) -> str:
    """Replace unsafe filename characters with ``_`` and collapse repeats."""
    if not text:
        return ""
    sanitized = FILENAME_SANITIZATION_RE.sub(FILENAME_REPLACEMENT, text)
    return REPEATED_UNDERSCORE_RE.sub(FILENAME_REPLACEMENT, sanitized)


def generate_safe_base_name(candidate: str, max_length: int, context: str = "") -> str:
    """Sanitize ``candidate`` and bound it to ``max_length`` characters.

    Names over the limit are truncated and suffixed with ``_`` plus a short
    SHA-256 of the *original* candidate, so two long names sharing a prefix
    still differ. Never returns an empty string.
    """
    sanitized = sanitize_filename(candidate)
    if sanitized in ("", ".", ".."):
        logger.debug(
            "Base name candidate %r sanitized to nothing usable; using %r",
            candidate,
            FALLBACK_BASE_NAME,
        )
        sanitized = FALLBACK_BASE_NAME

    if len(sanitized) <= max_length:
        return sanitized

    digest = compute_content_hash(candidate, TRUNCATION_HASH_LENGTH)
    head = sanitized[: max_length - TRUNCATION_HASH_LENGTH - 1].rstrip(FILENAME_REPLACEMENT)
    shortened = f"{head}_{digest}" if head else digest
    logger.warning(
        "%sFilename base %r (%d chars) exceeds max length %d; shortened to %r",
        f"[{context}] " if context else "",
        sanitized,
        len(sanitized),
        max_length,
        shortened,
    )
    return shortened


def _strip_prefix(relative_path: str, prefixes: tuple[str, ...]) -> str:
    for prefix in prefixes:
        normalized = prefix.replace("\\", "/").strip("/")
        if not normalized:
            continue
        if relative_path.startswith(normalized + "/"):
            stripped = relative_path[len(normalized) + 1 :]
            logger.debug(
                "Stripped prefix %r for name generation; effective path %r",
                normalized + "/",
                stripped,
            )
            return stripped
    return relative_path


def _html_stem(filename: str) -> str:
    lowered = filename.lower()
    for suffix in HTML_SUFFIXES:
        if lowered.endswith(suffix):
            return filename[: -len(suffix)]
    return filename


def derive_base_name(path: str | Path, policy: NamingPolicy) -> str:
    """Derive the shared asset base name for an HTML document.

    ``src/pages/blog/post.html`` with the default prefixes becomes
    ``blog_post``; a document at the root keeps its bare stem.
    """
    relative = os.path.relpath(os.path.abspath(path), os.path.abspath(policy.root))
    relative = relative.replace("\\", "/")
    effective = _strip_prefix(relative, policy.prefixes_to_omit)

    directory, _, filename = effective.rpartition("/")
    stem = _html_stem(filename)
    if directory and directory != ".":
        candidate = f"{directory.replace('/', '_')}_{stem}"
    else:
        candidate = stem

    return generate_safe_base_name(candidate, policy.max_length, "naming")
