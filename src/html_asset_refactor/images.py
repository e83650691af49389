"""Image optimization for the distribution build.

Optimization is best effort: any file Pillow cannot handle is copied
unchanged so one bad image never fails the build.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

# Pillow save() arguments per output format.
_SAVE_OPTIONS = {
    ".jpg": ("JPEG", {"optimize": True, "progressive": True}),
    ".jpeg": ("JPEG", {"optimize": True, "progressive": True}),
    ".png": ("PNG", {"optimize": True}),
    ".webp": ("WEBP", {"method": 6}),
}


@dataclass
class ImageReport:
    optimized: int = 0
    copied: int = 0

    @property
    def total(self) -> int:
        return self.optimized + self.copied


def _copy(src: Path, dest: Path) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dest)


def optimize_image(src: Path, dest: Path, quality: int = 85) -> bool:
    """Write an optimized copy of ``src`` to ``dest``.

    Formats Pillow does not re-encode (GIF, SVG, ...) are copied as they are.
    If re-encoding fails or does not make the file smaller, the original is
    copied instead.

    Returns:
        True if ``dest`` holds a re-encoded image, False if it is a plain copy.
    """
    src = Path(src)
    dest = Path(dest)
    options = _SAVE_OPTIONS.get(src.suffix.lower())
    if options is None:
        _copy(src, dest)
        logger.debug("Copied %s without optimization", src.name)
        return False

    image_format, save_kwargs = options
    dest.parent.mkdir(parents=True, exist_ok=True)
    try:
        with Image.open(src) as image:
            if image_format == "JPEG" and image.mode not in ("RGB", "L"):
                image = image.convert("RGB")
            if image_format in ("JPEG", "WEBP"):
                save_kwargs = {**save_kwargs, "quality": quality}
            image.save(dest, image_format, **save_kwargs)
    except (OSError, UnidentifiedImageError, ValueError) as e:
        logger.warning("Failed to optimize %s: %s. Copying original instead.", src.name, e)
        _copy(src, dest)
        return False

    if dest.stat().st_size >= src.stat().st_size:
        _copy(src, dest)
        logger.debug("Optimized %s was not smaller; kept original", src.name)
        return False

    logger.debug("Optimized %s", src.name)
    return True


def find_images(source_dir: Path, extensions: list[str]) -> list[Path]:
    """All files under ``source_dir`` with one of ``extensions`` (no dot)."""
    source_dir = Path(source_dir)
    if not source_dir.is_dir():
        return []
    wanted = {f".{ext.lower().lstrip('.')}" for ext in extensions}
    return sorted(
        path for path in source_dir.rglob("*") if path.is_file() and path.suffix.lower() in wanted
    )


async def optimize_images(
    sources: list[Path],
    source_dir: Path,
    dest_dir: Path,
    quality: int = 85,
) -> ImageReport:
    """Optimize ``sources`` into ``dest_dir``, mirroring their layout under ``source_dir``."""

    def _one(src: Path) -> bool:
        return optimize_image(src, Path(dest_dir) / src.relative_to(source_dir), quality)

    outcomes = await asyncio.gather(*(asyncio.to_thread(_one, src) for src in sources))

    report = ImageReport()
    for optimized in outcomes:
        if optimized:
            report.optimized += 1
        else:
            report.copied += 1
    logger.info(
        "Processed %d image(s): %d optimized, %d copied",
        report.total,
        report.optimized,
        report.copied,
    )
    return report
