"""Discover HTML documents and refactor them as a batch."""

from __future__ import annotations

import asyncio
import glob
import logging
from dataclasses import dataclass, field
from fnmatch import fnmatch
from pathlib import Path

from .conf import RefactorConfig
from .persistence import AssetWriter
from .refactor import RefactorResult, refactor_document

logger = logging.getLogger(__name__)


@dataclass
class BatchSummary:
    """Counts reported at the end of a refactor run."""

    scanned: int = 0
    modified: int = 0
    dry_run: bool = False
    results: list[RefactorResult] = field(default_factory=list)

    @property
    def modified_paths(self) -> list[Path]:
        return [result.path for result in self.results if result.changed]


def is_ignored(relative_path: str, patterns: list[str]) -> bool:
    return any(fnmatch(relative_path, pattern) for pattern in patterns)


def discover_html_files(config: RefactorConfig) -> list[Path]:
    """Expand the source patterns under the project root.

    Matches of any ignore pattern are dropped. The result is deduplicated and
    sorted so repeated runs see documents in the same order.
    """
    found: set[Path] = set()
    for pattern in config.html_source_patterns:
        for match in glob.glob(pattern, root_dir=config.project_root, recursive=True):
            relative = match.replace("\\", "/")
            if is_ignored(relative, config.ignore_patterns):
                continue
            path = (config.project_root / match).resolve()
            if path.is_file():
                found.add(path)

    files = sorted(found)
    logger.info("Found %d HTML file(s) to process", len(files))
    return files


def resolve_single_document(path: Path | str, config: RefactorConfig) -> Path:
    """Validate a single-file invocation target.

    Relative paths are taken against the project root.

    Raises:
        ValueError: If the path lies outside the project root or is not an
            HTML file.
        FileNotFoundError: If the file does not exist.
    """
    candidate = Path(path)
    if not candidate.is_absolute():
        candidate = config.project_root / candidate
    candidate = candidate.resolve()

    if not candidate.is_relative_to(config.project_root):
        raise ValueError(f"{path} is outside the project root {config.project_root}")
    if candidate.suffix.lower() not in (".html", ".htm"):
        raise ValueError(f"{path} is not an HTML file")
    if not candidate.is_file():
        raise FileNotFoundError(f"HTML file not found: {path}")
    return candidate


def _process(path: Path, config: RefactorConfig, writer: AssetWriter) -> tuple[RefactorResult, bool]:
    result = refactor_document(path, config, writer)
    modified = writer.persist(result)
    return result, modified


async def refactor_documents(
    paths: list[Path],
    config: RefactorConfig,
    writer: AssetWriter | None = None,
) -> BatchSummary:
    """Refactor and persist every document concurrently.

    Each document runs in a worker thread. The first failure propagates and
    fails the whole batch.
    """
    if writer is None:
        writer = AssetWriter(config)

    outcomes = await asyncio.gather(
        *(asyncio.to_thread(_process, path, config, writer) for path in paths)
    )

    summary = BatchSummary(scanned=len(paths), dry_run=config.dry_run)
    for result, modified in outcomes:
        summary.results.append(result)
        if modified:
            summary.modified += 1
    return summary


def run_refactor(
    config: RefactorConfig,
    paths: list[Path] | None = None,
    writer: AssetWriter | None = None,
) -> BatchSummary:
    """Synchronous entry point: discover (unless ``paths`` is given) and refactor."""
    if paths is None:
        paths = discover_html_files(config)
    if not paths:
        logger.info("No HTML files found matching the configured patterns")
        return BatchSummary(dry_run=config.dry_run)

    logger.debug("Refactor configuration: %s", config.to_dict())
    summary = asyncio.run(refactor_documents(paths, config, writer))
    logger.info(
        "%sScanned %d file(s), modified %d",
        "[DRY RUN] " if summary.dry_run else "",
        summary.scanned,
        summary.modified,
    )
    return summary
