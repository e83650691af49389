"""Write refactor results to storage.

Every write is guarded by a content-equality check so that re-running the
refactor over unchanged sources performs no writes at all. In dry-run mode
each decision is still made and logged, but nothing is saved.
"""

from __future__ import annotations

import errno
import logging
import os
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING

from .conf import OutputStrategy, RefactorConfig
from .storage.base import BaseAssetStorage

if TYPE_CHECKING:
    from .refactor import RefactorResult

logger = logging.getLogger(__name__)

APPEND_SEPARATOR = "/* --- Appended styles from {source} --- */"
BACKUP_SUFFIX = ".bak"
DRY_RUN_PREFIX = "[DRY RUN] "


def merge_css_text(
    existing: str | None,
    css: str,
    source_name: str,
    preamble: str | None = None,
) -> str | None:
    """Merge newly extracted ``css`` into the ``existing`` target content.

    Returns:
        The full new file content, or None when ``existing`` already contains
        ``css`` (or would not change) and no write is needed.
    """
    if existing and existing.strip():
        if css in existing:
            return None
        merged = (
            existing.rstrip("\n")
            + "\n\n"
            + APPEND_SEPARATOR.format(source=source_name)
            + "\n"
            + css
        )
    else:
        merged = css

    if preamble and preamble not in merged:
        merged = f"{preamble}\n\n{merged}"
    merged = merged.rstrip("\n") + "\n"

    if merged == existing:
        return None
    return merged


class AssetWriter:
    """Persistence layer for one refactor run.

    Owns the per-target locks that serialize CSS merges when several
    documents derive the same base name.
    """

    def __init__(self, config: RefactorConfig, storage: BaseAssetStorage | None = None) -> None:
        if storage is None:
            from .utils import get_storage

            storage = get_storage(config)
        self.config = config
        self.storage = storage
        self._locks: dict[Path, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def dry_run(self) -> bool:
        return self.config.dry_run

    @property
    def _prefix(self) -> str:
        return DRY_RUN_PREFIX if self.dry_run else ""

    def _lock_for(self, path: Path) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(Path(path), threading.Lock())

    def read_document(self, path: Path) -> str:
        """Read an HTML source document; a missing file is fatal."""
        content = self.storage.read(path)
        if content is None:
            raise FileNotFoundError(errno.ENOENT, "HTML source not found", str(path))
        return content

    # CSS

    def css_target_path(self, html_path: Path, base_name: str) -> Path:
        """Extracted CSS source file for a document, per the CSS strategy."""
        filename = f"{base_name}.css"
        if self.config.css_output_strategy is OutputStrategy.RELATIVE_TO_HTML:
            return Path(html_path).parent / filename
        return self.config.styles_output_dir / filename

    def merge_css(self, target: Path, css: str, source_name: str) -> Path | None:
        """Create or extend the CSS target with ``css``.

        Returns:
            The target path (also in dry-run mode), or None if there was no
            CSS to save.
        """
        if not css or not css.strip():
            logger.debug("No CSS content from %s to save", source_name)
            return None

        relative = self.config.relative(target)
        with self._lock_for(target):
            existing = self.storage.read(target)
            merged = merge_css_text(existing, css, source_name, self.config.css_preamble)

            if merged is None:
                logger.info(
                    "%sContent from %s already exists in %s. Skipping append.",
                    self._prefix,
                    source_name,
                    relative,
                )
                return target

            if existing is None:
                action = "create new CSS file"
            else:
                action = "append new styles to existing CSS file"

            if self.dry_run:
                logger.info("%sWould %s: %s", self._prefix, action, relative)
                return target

            self.storage.save(target, merged)
            logger.info("Saved extracted CSS from %s to %s (%s)", source_name, relative, action)
        return target

    # JS

    def resolve_script_target(self, path: Path, content: str) -> Path:
        """Pick the output path for an extracted script.

        A missing file or a byte-identical one keeps ``path``. A file with
        different content is never overwritten; a timestamped sibling name is
        used instead.
        """
        existing = self.storage.read(path)
        if existing is None or existing == content:
            return path

        stamp = int(time.time() * 1000)
        while True:
            candidate = path.with_name(f"{path.stem}-conflict-{stamp}{path.suffix}")
            if not self.storage.exists(candidate):
                break
            stamp += 1

        logger.warning(
            "%sScript file %s already exists with different content. "
            "Using unique file instead: %s",
            self._prefix,
            self.config.relative(path),
            self.config.relative(candidate),
        )
        return candidate

    def write_scripts(self, result: RefactorResult) -> int:
        """Write extracted scripts whose content differs from disk."""
        written = 0
        for script in result.scripts:
            relative = self.config.relative(script.output_path)
            if self.storage.read(script.output_path) == script.content:
                logger.debug("Script %s is already up to date", relative)
                continue
            if self.dry_run:
                logger.info("%sWould extract inline script to: %s", self._prefix, relative)
            else:
                self.storage.save(script.output_path, script.content)
                logger.info("Extracted inline script to: %s", relative)
            written += 1
        return written

    # HTML

    def write_html(self, result: RefactorResult) -> bool:
        """Write the rewritten HTML back, creating a backup first if enabled.

        Returns:
            True if the file was (or in dry-run mode would be) modified.
        """
        relative = self.config.relative(result.path)
        if result.html == result.original_html:
            logger.info("No effective content changes to write for %s", relative)
            return False

        if self.config.create_backups:
            backup = result.path.with_name(result.path.name + BACKUP_SUFFIX)
            if self.dry_run:
                logger.info("%sWould create backup: %s", self._prefix, self.config.relative(backup))
            else:
                self.storage.copy(result.path, backup)
                logger.debug("Created backup: %s", self.config.relative(backup))

        if self.dry_run:
            logger.info("%sHTML file %s would be modified", self._prefix, relative)
        else:
            self.storage.save(result.path, result.html)
            logger.info("Updated and saved changes to: %s", relative)
        return True

    # Distribution mirror

    def _dist_path(self, source: Path) -> Path | None:
        relative = os.path.relpath(source, self.config.dist_source_root)
        if relative.startswith(".."):
            return None
        return self.config.dist_dir / relative

    def _mirror_text(self, source: Path, content: str) -> bool:
        destination = self._dist_path(source)
        if destination is None:
            logger.warning(
                "%s is outside %s; not copied to %s",
                self.config.relative(source),
                self.config.relative(self.config.dist_source_root),
                self.config.relative(self.config.dist_dir),
            )
            return False
        if self.storage.read(destination) == content:
            return False
        if self.dry_run:
            logger.info("%sWould copy to: %s", self._prefix, self.config.relative(destination))
        else:
            self.storage.save(destination, content)
            logger.info("Copied to: %s", self.config.relative(destination))
        return True

    def mirror_to_dist(self, result: RefactorResult) -> int:
        """Mirror the HTML and its local scripts into the distribution directory."""
        if not self.config.copy_to_dist:
            return 0

        copied = int(self._mirror_text(result.path, result.html))
        fresh = {script.output_path: script.content for script in result.scripts}
        for script_path in result.linked_scripts:
            content = fresh.get(script_path)
            if content is None:
                content = self.storage.read(script_path)
            if content is None:
                logger.warning(
                    "Script %s referenced by %s does not exist; not copied",
                    self.config.relative(script_path),
                    self.config.relative(result.path),
                )
                continue
            copied += int(self._mirror_text(script_path, content))
        return copied

    def persist(self, result: RefactorResult) -> bool:
        """Write scripts, then HTML, then mirror. Returns whether HTML was modified."""
        modified = False
        if result.changed:
            self.write_scripts(result)
            modified = self.write_html(result)
        self.mirror_to_dist(result)
        return modified
