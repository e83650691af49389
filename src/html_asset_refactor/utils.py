"""Build orchestration for html-asset-refactor.

Pipeline: Clean -> Refactor -> Minify JS -> Compile CSS -> Images -> Static files
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from importlib import import_module
from pathlib import Path
from typing import Any

from django.core.exceptions import ImproperlyConfigured

from .batch import BatchSummary, discover_html_files, refactor_documents
from .conf import RefactorConfig, get_setting
from .images import ImageReport, find_images, optimize_images
from .persistence import AssetWriter

logger = logging.getLogger(__name__)

TERSER_TIMEOUT_SECONDS = 30


@dataclass
class BuildReport:
    """What each build phase did."""

    summary: BatchSummary = field(default_factory=BatchSummary)
    js_minified: int = 0
    css_compiled: list[Path] = field(default_factory=list)
    images: ImageReport = field(default_factory=ImageReport)
    static_files: list[Path] = field(default_factory=list)
    dry_run: bool = False


def build_site(config: RefactorConfig, storage: Any = None) -> BuildReport:
    """Main entry point: run every build phase in order.

    In dry-run mode only the refactor phase runs, since every later phase
    reads files that phase would have written.
    """
    return asyncio.run(build_site_async(config, storage))


async def build_site_async(config: RefactorConfig, storage: Any = None) -> BuildReport:
    if storage is None:
        storage = get_storage(config)
    writer = AssetWriter(config, storage)
    report = BuildReport(dry_run=config.dry_run)

    if config.copy_to_dist and not config.dry_run:
        _clean_dist(config)

    paths = discover_html_files(config)
    logger.info("Refactoring %d HTML file(s)", len(paths))
    report.summary = await refactor_documents(paths, config, writer)

    if config.dry_run:
        logger.info("[DRY RUN] Skipping minify, compile and image phases")
        return report

    if config.copy_to_dist:
        report.js_minified = await _minify_dist_js(config)
    report.css_compiled = await _compile_css(config, writer, report.summary)
    if config.copy_to_dist:
        report.images = await _process_images(config)
        report.static_files = _copy_static_files(config)

    logger.info(
        "Build finished: %d HTML modified, %d JS minified, %d CSS compiled, %d image(s)",
        report.summary.modified,
        report.js_minified,
        len(report.css_compiled),
        report.images.total,
    )
    return report


def _clean_dist(config: RefactorConfig) -> None:
    """Empty the distribution directory, refusing paths that would hit sources."""
    dist_dir = config.dist_dir
    root = config.project_root
    if (
        dist_dir == root
        or not dist_dir.is_relative_to(root)
        or config.dist_source_root.is_relative_to(dist_dir)
    ):
        raise ImproperlyConfigured(
            f"Refusing to clean DIST_DIR {dist_dir}: it must be a separate directory "
            f"inside {root}"
        )

    if not dist_dir.exists():
        dist_dir.mkdir(parents=True)
        return

    for child in dist_dir.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()
    logger.info("Cleaned %s", config.relative(dist_dir))


async def _minify_dist_js(config: RefactorConfig) -> int:
    if not get_setting("MINIFY_JS"):
        logger.info("JS minification disabled")
        return 0

    files = sorted(config.dist_dir.rglob("*.js"))
    if not files:
        logger.info("No .js files in %s to minify", config.relative(config.dist_dir))
        return 0

    terser_path = _find_terser(config.project_root)

    def _minify_file(path: Path) -> bool:
        content = path.read_text(encoding="utf-8")
        minified = _optimize_js(content, terser_path)
        if minified == content:
            return False
        path.write_text(minified, encoding="utf-8")
        return True

    results = await asyncio.gather(*(asyncio.to_thread(_minify_file, f) for f in files))
    minified = sum(results)
    logger.info("Minified %d of %d JS file(s)", minified, len(files))
    return minified


def _css_sources(config: RefactorConfig, writer: AssetWriter, summary: BatchSummary) -> list[Path]:
    """Extracted CSS sources belonging to the scanned documents."""
    sources: list[Path] = []
    for result in summary.results:
        target = result.css_path or writer.css_target_path(result.path, result.base_name)
        if target not in sources and writer.storage.exists(target):
            sources.append(target)
    return sources


async def _compile_css(
    config: RefactorConfig, writer: AssetWriter, summary: BatchSummary
) -> list[Path]:
    sources = _css_sources(config, writer, summary)
    if not sources:
        logger.info("No extracted CSS files to compile")
        return []

    compiler = get_compiler(config)
    documents: list[Path] = []
    if compiler.scans_documents:
        documents = [result.path for result in summary.results]

    def _compile(source: Path) -> Path | None:
        css = writer.storage.read(source) or ""
        built_css = compiler.compile(source, css, documents)
        if not built_css:
            return None
        if get_setting("MINIFY_CSS"):
            built_css = _minify_css(built_css)

        output = config.compiled_css_link_dir / f"{source.stem}{config.compiled_css_suffix}"
        if writer.storage.read(output) != built_css:
            writer.storage.save(output, built_css)
        logger.info("Compiled %s -> %s", config.relative(source), config.relative(output))
        return output

    outputs = await asyncio.gather(*(asyncio.to_thread(_compile, s) for s in sources))
    return [output for output in outputs if output is not None]


async def _process_images(config: RefactorConfig) -> ImageReport:
    image_dir = get_setting("IMAGE_SOURCE_DIR")
    source_dir = config.dist_source_root / image_dir
    images = find_images(source_dir, get_setting("IMAGE_EXTENSIONS"))
    if not images:
        logger.info("No images found in %s", config.relative(source_dir))
        return ImageReport()

    return await optimize_images(
        images,
        source_dir,
        config.dist_dir / image_dir,
        int(get_setting("IMAGE_QUALITY")),
    )


def _copy_static_files(config: RefactorConfig) -> list[Path]:
    copied: list[Path] = []
    for name in get_setting("STATIC_ROOT_FILES"):
        source = config.dist_source_root / name
        if not source.is_file():
            logger.debug("Static file %s not found; skipped", config.relative(source))
            continue
        destination = config.dist_dir / name
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, destination)
        copied.append(destination)
        logger.info("Copied %s to %s", name, config.relative(destination))
    return copied


def _optimize_js(content: str, terser_path: str | None = None) -> str:
    """Minify JS content using terser (preferred) or rjsmin (fallback).

    Falls back gracefully if neither tool is available.
    """
    if terser_path is not None:
        try:
            result = subprocess.run(  # noqa: S603
                [terser_path, *get_setting("TERSER_OPTIONS")],
                input=content,
                capture_output=True,
                text=True,
                timeout=TERSER_TIMEOUT_SECONDS,
                check=True,
            )
            return result.stdout
        except (
            subprocess.CalledProcessError,
            subprocess.TimeoutExpired,
            OSError,
        ) as e:
            logger.warning("terser failed: %s. Falling back to rjsmin.", e)

    try:
        import rjsmin  # type: ignore[import-not-found, import-untyped]

        return rjsmin.jsmin(content)  # type: ignore[no-any-return]
    except ImportError:
        logger.warning(
            "Neither terser nor rjsmin is available. JS minification skipped."
        )
        return content


def _minify_css(content: str) -> str:
    """Minify CSS content using rcssmin.

    Falls back gracefully if rcssmin is not installed.
    """
    try:
        import rcssmin  # type: ignore[import-not-found, import-untyped]

        return rcssmin.cssmin(content)  # type: ignore[no-any-return]
    except ImportError:
        logger.warning("rcssmin is not installed. CSS minification skipped.")
        return content


def _find_terser(project_root: Path | None = None) -> str | None:
    """Find the terser CLI binary.

    Search order: TERSER_PATH setting -> node_modules/.bin/terser -> PATH.
    """
    explicit: str | None = get_setting("TERSER_PATH")
    if explicit:
        return explicit
    if project_root is not None:
        local = Path(project_root) / "node_modules" / ".bin" / "terser"
        if local.exists():
            return str(local)
    return shutil.which("terser")


def get_compiler(config: RefactorConfig) -> Any:
    """Import and instantiate the configured CSS compiler."""
    cls = import_class(get_setting("CSS_COMPILER"))
    return cls(config.project_root)


def get_storage(config: RefactorConfig) -> Any:
    """Import and instantiate the configured storage backend."""
    storage_path = get_setting("STORAGE_BACKEND")
    cls = import_class(storage_path)
    return cls(config.project_root)


def import_class(dotted_path: str) -> type:
    """Import a class from a dotted path string."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = import_module(module_path)
    return getattr(module, class_name)  # type: ignore[no-any-return]
