"""Tests for image optimization.

Optimization is fail-soft: anything that cannot be re-encoded is copied.
"""

from __future__ import annotations

import asyncio
import logging

from PIL import Image
import pytest

from html_asset_refactor.images import ImageReport, find_images, optimize_image, optimize_images


@pytest.fixture
def large_jpeg(tmp_path):
    """A gradient JPEG saved at maximum quality, so re-encoding shrinks it."""
    path = tmp_path / "src" / "photos" / "gradient.jpg"
    path.parent.mkdir(parents=True)
    image = Image.new("RGB", (256, 256))
    image.putdata([(x, y, (x + y) % 256) for y in range(256) for x in range(256)])
    image.save(path, "JPEG", quality=100, subsampling=0)
    return path


class TestOptimizeImage:
    def test_jpeg_is_reencoded(self, large_jpeg, tmp_path):
        """A high-quality JPEG is re-encoded smaller.

        Purpose: Verify the optimized branch.
        Category: Normal case
        Target: optimize_image(src, dest, quality)
        Technique: Equivalence partitioning
        Test data: 256x256 gradient JPEG at quality 100
        """
        dest = tmp_path / "dist" / "gradient.jpg"

        assert optimize_image(large_jpeg, dest, quality=60) is True
        assert dest.stat().st_size < large_jpeg.stat().st_size
        with Image.open(dest) as image:
            assert image.size == (256, 256)

    def test_svg_is_copied(self, tmp_path):
        """Formats Pillow does not re-encode are copied as they are.

        Purpose: Verify the pass-through branch.
        Category: Normal case
        Target: optimize_image(src, dest, quality)
        Technique: Equivalence partitioning
        Test data: An SVG file
        """
        src = tmp_path / "icon.svg"
        src.write_text("<svg/>", encoding="utf-8")
        dest = tmp_path / "out" / "icon.svg"

        assert optimize_image(src, dest) is False
        assert dest.read_text(encoding="utf-8") == "<svg/>"

    def test_corrupt_image_falls_back_to_copy(self, tmp_path, caplog):
        """An unreadable image is copied and a warning is logged.

        Purpose: Verify fail-soft handling of optimization errors.
        Category: Error case
        Target: optimize_image(src, dest, quality)
        Technique: Error guessing
        Test data: A .png file that is not an image
        """
        src = tmp_path / "broken.png"
        src.write_bytes(b"not really a png")
        dest = tmp_path / "out" / "broken.png"

        with caplog.at_level(logging.WARNING, logger="html_asset_refactor.images"):
            assert optimize_image(src, dest) is False

        assert dest.read_bytes() == b"not really a png"
        assert "Failed to optimize broken.png" in caplog.text


class TestFindImages:
    def test_filters_by_extension(self, tmp_path):
        """Only configured extensions are returned, case-insensitively.

        Purpose: Verify image discovery.
        Category: Normal case
        Target: find_images(source_dir, extensions)
        Technique: Equivalence partitioning
        Test data: .JPG, .png, .txt
        """
        for name in ("a.JPG", "b/c.png", "notes.txt"):
            path = tmp_path / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"x")

        found = find_images(tmp_path, ["jpg", "png"])

        assert found == [tmp_path / "a.JPG", tmp_path / "b" / "c.png"]

    def test_missing_directory(self, tmp_path):
        """A missing source directory yields nothing.

        Purpose: Verify the no-images path.
        Category: Edge case
        Target: find_images(source_dir, extensions)
        Technique: Boundary value analysis
        Test data: Non-existent directory
        """
        assert find_images(tmp_path / "missing", ["jpg"]) == []


class TestOptimizeImages:
    def test_mirrors_layout_and_reports(self, large_jpeg, tmp_path):
        """Every source is processed into the mirrored destination tree.

        Purpose: Verify fan-out, layout mirroring and the report.
        Category: Normal case
        Target: optimize_images(sources, source_dir, dest_dir, quality)
        Technique: Statement coverage (C0)
        Test data: One JPEG and one SVG
        """
        source_dir = tmp_path / "src"
        svg = source_dir / "icon.svg"
        svg.write_text("<svg/>", encoding="utf-8")
        dest_dir = tmp_path / "dist"

        report = asyncio.run(optimize_images([large_jpeg, svg], source_dir, dest_dir, 60))

        assert report == ImageReport(optimized=1, copied=1)
        assert (dest_dir / "photos" / "gradient.jpg").exists()
        assert (dest_dir / "icon.svg").exists()
