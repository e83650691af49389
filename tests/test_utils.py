"""Tests for html-asset-refactor build orchestration utilities.

Pipeline: Clean -> Refactor -> Minify JS -> Compile CSS -> Images -> Static files
"""

from __future__ import annotations

import subprocess
from unittest import mock

from django.core.exceptions import ImproperlyConfigured
import pytest

from html_asset_refactor.compilers.passthrough import PassthroughCSSCompiler
from html_asset_refactor.storage.local import LocalFileStorage
from html_asset_refactor.utils import (
    _clean_dist,
    _find_terser,
    _minify_css,
    _optimize_js,
    build_site,
    get_compiler,
    get_storage,
    import_class,
)


@pytest.fixture
def site(write_file, about_html):
    """A small source tree mirrored from src/ into dist/."""
    write_file("src/pages/about.html", about_html)
    write_file("src/robots.txt", "User-agent: *\n")
    write_file("src/assets/images/icon.svg", "<svg/>")
    write_file("dist/stale.txt", "old")


@pytest.fixture
def dist_config(make_config):
    return make_config(COPY_TO_DIST=True, CREATE_BACKUPS=False)


class TestBuildSite:
    @mock.patch("html_asset_refactor.utils._find_terser", return_value=None)
    def test_full_build(self, _mock_terser, site, dist_config):
        """Every phase runs and produces its outputs.

        Purpose: Verify the end-to-end pipeline with dist mirroring.
        Category: Normal case
        Target: build_site(config)
        Technique: Statement coverage (C0)
        Test data: src/pages/about.html, robots.txt, one SVG, a stale dist file
        """
        root = dist_config.project_root

        report = build_site(dist_config)

        dist = root / "dist"
        assert not (dist / "stale.txt").exists()
        assert report.summary.modified == 1
        html = (dist / "pages" / "about.html").read_text(encoding="utf-8")
        assert 'href="../../assets/css/about-output.css"' in html
        assert '<script src="about.js"></script>' in html
        assert (dist / "pages" / "about.js").exists()
        assert report.css_compiled == [root / "assets" / "css" / "about-output.css"]
        assert "color:red" in report.css_compiled[0].read_text(encoding="utf-8")
        assert report.images.copied == 1
        assert (dist / "assets" / "images" / "icon.svg").exists()
        assert report.static_files == [dist / "robots.txt"]

    @mock.patch("html_asset_refactor.utils._find_terser", return_value=None)
    def test_rebuild_repopulates_dist(self, _mock_terser, site, dist_config):
        """A second build re-mirrors documents that no longer change.

        Purpose: Verify that a clean dist is refilled from refactored sources.
        Category: Normal case
        Target: build_site(config)
        Technique: State transition
        Test data: Two consecutive builds
        """
        root = dist_config.project_root
        build_site(dist_config)

        report = build_site(dist_config)

        assert report.summary.modified == 0
        assert (root / "dist" / "pages" / "about.html").exists()
        assert (root / "dist" / "pages" / "about.js").exists()
        assert report.css_compiled == [root / "assets" / "css" / "about-output.css"]

    def test_dry_run_only_refactors(self, site, make_config):
        """Dry run stops after the refactor phase and writes nothing.

        Purpose: Verify dry-run scope of the build.
        Category: Normal case
        Target: build_site(config)
        Technique: Equivalence partitioning
        Test data: DRY_RUN=True
        """
        config = make_config(COPY_TO_DIST=True, DRY_RUN=True)
        root = config.project_root

        report = build_site(config)

        assert report.dry_run is True
        assert report.summary.modified == 1
        assert report.css_compiled == []
        assert (root / "dist" / "stale.txt").exists()
        assert not (root / "styles").exists()


class TestCleanDist:
    def test_refuses_project_root(self, make_config):
        """DIST_DIR equal to the project root is refused.

        Purpose: Verify the destructive-clean guard.
        Category: Error case
        Target: _clean_dist(config)
        Technique: Error guessing
        Test data: DIST_DIR="."
        """
        with pytest.raises(ImproperlyConfigured):
            _clean_dist(make_config(DIST_DIR="."))

    def test_refuses_parent_of_sources(self, make_config):
        """DIST_DIR containing DIST_SOURCE_ROOT is refused.

        Purpose: Verify that sources are never deleted.
        Category: Error case
        Target: _clean_dist(config)
        Technique: Error guessing
        Test data: DIST_DIR="site", DIST_SOURCE_ROOT="site/src"
        """
        with pytest.raises(ImproperlyConfigured):
            _clean_dist(make_config(DIST_DIR="site", DIST_SOURCE_ROOT="site/src"))

    def test_creates_missing_directory(self, make_config):
        """A missing DIST_DIR is created empty.

        Purpose: Verify first-build behaviour.
        Category: Edge case
        Target: _clean_dist(config)
        Technique: Boundary value analysis
        Test data: No dist/ directory
        """
        config = make_config()

        _clean_dist(config)

        assert config.dist_dir.is_dir()


class TestOptimizeJs:
    def test_terser_output_is_used(self):
        """terser output is returned when it succeeds.

        Purpose: Verify the preferred minifier.
        Category: Normal case
        Target: _optimize_js(content, terser_path)
        Technique: Equivalence partitioning
        Test data: Mocked subprocess result
        """
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="a();")

        with mock.patch(
            "html_asset_refactor.utils.subprocess.run", return_value=completed
        ) as mock_run:
            assert _optimize_js("a ( ) ;", "/bin/terser") == "a();"

        assert mock_run.call_args.args[0] == ["/bin/terser", "-c", "-m"]

    def test_falls_back_to_rjsmin(self):
        """A failing terser falls back to rjsmin.

        Purpose: Verify the fallback chain.
        Category: Error case
        Target: _optimize_js(content, terser_path)
        Technique: Error guessing
        Test data: CalledProcessError from terser
        """
        with mock.patch(
            "html_asset_refactor.utils.subprocess.run",
            side_effect=subprocess.CalledProcessError(1, "terser"),
        ):
            result = _optimize_js("var  a = 1;\n\n", "/bin/terser")

        assert result == "var a=1;"

    def test_without_terser(self):
        """Without terser rjsmin minifies directly.

        Purpose: Verify the no-terser path.
        Category: Normal case
        Target: _optimize_js(content)
        Technique: Equivalence partitioning
        Test data: Spaced JS
        """
        assert _optimize_js("var  a = 1;") == "var a=1;"


class TestMinifyCss:
    def test_minifies(self):
        """rcssmin removes whitespace and comments.

        Purpose: Verify CSS minification.
        Category: Normal case
        Target: _minify_css(content)
        Technique: Equivalence partitioning
        Test data: Commented rule
        """
        assert _minify_css("/* c */\n.a {\n  color: red;\n}\n") == ".a{color:red}"


class TestFindTerser:
    def test_setting_wins(self):
        """TERSER_PATH is returned when configured.

        Purpose: Verify explicit configuration.
        Category: Normal case
        Target: _find_terser(project_root)
        Technique: Equivalence partitioning
        Test data: TERSER_PATH set
        """
        with mock.patch("html_asset_refactor.utils.get_setting", return_value="/opt/terser"):
            assert _find_terser() == "/opt/terser"

    def test_node_modules(self, tmp_path):
        """A project-local terser is found.

        Purpose: Verify node_modules lookup.
        Category: Normal case
        Target: _find_terser(project_root)
        Technique: Equivalence partitioning
        Test data: node_modules/.bin/terser under tmp_path
        """
        local = tmp_path / "node_modules" / ".bin" / "terser"
        local.parent.mkdir(parents=True)
        local.write_text("", encoding="utf-8")

        assert _find_terser(tmp_path) == str(local)

    def test_path_lookup(self, tmp_path):
        """Otherwise terser is looked up on PATH.

        Purpose: Verify the PATH fallback.
        Category: Edge case
        Target: _find_terser(project_root)
        Technique: Error guessing
        Test data: Empty project, which() returns None
        """
        with mock.patch("html_asset_refactor.utils.shutil.which", return_value=None):
            assert _find_terser(tmp_path) is None


class TestImports:
    def test_get_compiler(self, config):
        """get_compiler instantiates CSS_COMPILER rooted at the project.

        Purpose: Verify compiler loading.
        Category: Normal case
        Target: get_compiler(config)
        Technique: Statement coverage (C0)
        Test data: default CSS_COMPILER
        """
        compiler = get_compiler(config)

        assert isinstance(compiler, PassthroughCSSCompiler)
        assert compiler.project_root == config.project_root

    def test_get_storage(self, config):
        """get_storage roots the configured backend at the project.

        Purpose: Verify storage loading.
        Category: Normal case
        Target: get_storage(config)
        Technique: Statement coverage (C0)
        Test data: default STORAGE_BACKEND
        """
        storage = get_storage(config)

        assert isinstance(storage, LocalFileStorage)
        assert storage.root == config.project_root

    def test_import_class_missing_attribute(self):
        """Unknown class names raise AttributeError.

        Purpose: Verify import errors surface.
        Category: Error case
        Target: import_class(dotted_path)
        Technique: Error guessing
        Test data: html_asset_refactor.compilers.passthrough.Missing
        """
        with pytest.raises(AttributeError):
            import_class("html_asset_refactor.compilers.passthrough.Missing")
