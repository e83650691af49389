"""Extract inline <style> blocks, style attributes and <script> bodies from a parsed document."""

from __future__ import annotations

import hashlib
import logging
import os
import re
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple

from bs4 import BeautifulSoup, Tag

from .markup import decode_entities, restore_entities

if TYPE_CHECKING:
    from .conf import RefactorConfig

logger = logging.getLogger(__name__)

NO_EXTRACT_ATTR = "data-no-extract"
GENERATED_CLASS_PREFIX = "css-"

# Script types that are executed as JavaScript; anything else (importmap,
# application/ld+json, text/template, ...) stays inline.
_JS_TYPES = frozenset(
    {
        "",
        "text/javascript",
        "application/javascript",
        "text/ecmascript",
        "application/ecmascript",
        "module",
    }
)

_WHITESPACE_RE = re.compile(r"\s+")


class ExtractedStyleRule(NamedTuple):
    """One deduplicated rule generated from inline ``style`` attributes."""

    declarations: str
    class_name: str


class ExtractedScriptFile(NamedTuple):
    """One inline <script> body moved to its own file."""

    file_name: str
    content: str
    output_path: Path
    src: str
    index: int


def compute_content_hash(content: str, length: int = 8) -> str:
    """Compute a short SHA-256 hash of content for matching and filenames."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:length]


def normalize_style_declarations(raw: str) -> str:
    """Normalize a ``style`` attribute value for deduplication.

    Declarations are trimmed, whitespace around the first ``:`` and inside
    values is collapsed, empties are dropped and the rest sorted, so
    ``"b: 1; a:2;"`` and ``"a:2;b:1"`` normalize identically. Fragments
    without a colon are kept as they are.
    """
    declarations: list[str] = []
    for fragment in (raw or "").split(";"):
        fragment = fragment.strip()
        if not fragment:
            continue
        prop, sep, value = fragment.partition(":")
        if sep:
            fragment = f"{prop.strip()}:{_WHITESPACE_RE.sub(' ', value.strip())}"
        declarations.append(fragment)
    return ";".join(sorted(declarations))


def class_name_for_style(normalized: str) -> str:
    """Deterministic class name for a normalized declaration string."""
    return f"{GENERATED_CLASS_PREFIX}{compute_content_hash(normalized)}"


class StyleRegistry:
    """Per-document map from normalized declarations to generated rules.

    A fresh registry is created for every document so classes are never
    shared across documents.
    """

    def __init__(self) -> None:
        self._rules: dict[str, ExtractedStyleRule] = {}
        self._occurrences: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._rules)

    def occurrences(self, class_name: str) -> int:
        return self._occurrences.get(class_name, 0)

    def register(self, normalized: str) -> tuple[ExtractedStyleRule, bool]:
        """Return the rule for ``normalized`` and whether it was newly created."""
        rule = self._rules.get(normalized)
        created = rule is None
        if rule is None:
            rule = ExtractedStyleRule(normalized, class_name_for_style(normalized))
            self._rules[normalized] = rule
        self._occurrences[rule.class_name] = self.occurrences(rule.class_name) + 1
        return rule, created


def format_style_rule(rule: ExtractedStyleRule, source_name: str) -> str:
    """Render a generated rule with its origin comment."""
    body = "".join(
        f"  {declaration};\n" for declaration in rule.declarations.split(";") if declaration
    )
    return f"/* Style for .{rule.class_name} from {source_name} */\n.{rule.class_name} {{\n{body}}}"


def _add_class(tag: Tag, class_name: str) -> None:
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    if class_name not in classes:
        classes = [*classes, class_name]
    tag["class"] = classes


def extract_styles(
    soup: BeautifulSoup,
    source_name: str,
    registry: StyleRegistry | None = None,
) -> tuple[str, bool]:
    """Move <style> blocks and ``style`` attributes out of ``soup``.

    <style> blocks are copied verbatim in document order, each after a comment
    naming ``source_name``. ``style`` attributes are deduplicated through
    ``registry``: every distinct declaration set yields one rule and one
    generated class, which replaces the attribute on each element.

    Args:
        soup: Parsed document; mutated in place.
        source_name: Document name used in origin comments.
        registry: Deduplication map for this document run.

    Returns:
        Tuple of (css_text, changed). ``("", False)`` when nothing was found.
    """
    if registry is None:
        registry = StyleRegistry()

    fragments: list[str] = []
    changed = False

    for index, style_tag in enumerate(soup.find_all("style")):
        if style_tag.has_attr(NO_EXTRACT_ATTR):
            continue
        content = restore_entities(style_tag.get_text())
        if not content.strip():
            continue
        fragments.append(
            f"/* Extracted from <style> tag in {source_name} (index {index}) */\n"
            f"{content.strip()}"
        )
        style_tag.decompose()
        changed = True
        logger.debug("Extracted <style> block %d from %s", index, source_name)

    for element in soup.find_all(style=True):
        if element.has_attr(NO_EXTRACT_ATTR):
            continue
        raw_style = decode_entities(element.get("style") or "")
        if not raw_style.strip():
            continue

        rule, created = registry.register(normalize_style_declarations(raw_style))
        if created:
            fragments.append(format_style_rule(rule, source_name))
        else:
            logger.debug("Reusing class %r for identical style", rule.class_name)

        _add_class(element, rule.class_name)
        del element["style"]
        changed = True

    return "\n\n".join(fragments).strip(), changed


def _is_extractable_script(tag: Tag) -> bool:
    if tag.get("src"):
        return False
    if tag.has_attr(NO_EXTRACT_ATTR):
        return False
    type_attr = decode_entities(tag.get("type") or "").strip().lower()
    if type_attr not in _JS_TYPES:
        return False
    return bool(tag.get_text().strip())


def collect_inline_scripts(soup: BeautifulSoup) -> list[tuple[int, Tag]]:
    """Return ``(original_index, tag)`` for every extractable inline script.

    The index counts *all* <script> tags in document order, including
    external ones, so suffixes stay stable when unrelated tags move.
    """
    return [
        (index, tag)
        for index, tag in enumerate(soup.find_all("script"))
        if _is_extractable_script(tag)
    ]


def script_output_dir(html_path: Path, config: RefactorConfig) -> Path:
    """Directory that receives extracted scripts for ``html_path``."""
    from .conf import OutputStrategy

    if config.js_output_strategy is OutputStrategy.CENTRALIZED:
        return config.js_central_output_dir
    return Path(html_path).parent


def _same_target(path: Path, content: str) -> Path:
    return path


def extract_scripts(
    soup: BeautifulSoup,
    html_path: Path,
    base_name: str,
    config: RefactorConfig,
    resolve_target: Callable[[Path, str], Path] | None = None,
) -> tuple[list[ExtractedScriptFile], bool]:
    """Move inline <script> bodies into files and point the tags at them.

    Scripts are never deduplicated. With more than one match each file gets
    an ``_s<n>`` suffix where ``n`` is the tag's 1-based position among all
    <script> tags.

    Args:
        soup: Parsed document; mutated in place.
        html_path: Absolute path of the HTML document.
        base_name: Safe base name shared by this document's assets.
        config: Run configuration (output strategy and directories).
        resolve_target: Maps an intended output path and its content to the
            path actually used, e.g. to avoid overwriting a different file.

    Returns:
        Tuple of (extracted files, changed).
    """
    matches = collect_inline_scripts(soup)
    if not matches:
        return [], False

    resolve = resolve_target or _same_target
    output_dir = script_output_dir(html_path, config)
    html_dir = Path(html_path).parent
    files: list[ExtractedScriptFile] = []

    for original_index, tag in matches:
        content = restore_entities(tag.get_text()).strip()
        suffix = f"_s{original_index + 1}" if len(matches) > 1 else ""
        intended = output_dir / f"{base_name}{suffix}.js"
        output_path = resolve(intended, content)

        src = os.path.relpath(output_path, html_dir).replace("\\", "/")
        tag.clear()
        tag["src"] = src

        files.append(
            ExtractedScriptFile(
                file_name=output_path.name,
                content=content,
                output_path=output_path,
                src=src,
                index=original_index,
            )
        )
        logger.debug("Extracted inline script %d to %s", original_index, output_path.name)

    return files, True
