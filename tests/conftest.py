"""Pytest fixtures for html-asset-refactor tests."""

from pathlib import Path

import pytest

from html_asset_refactor.conf import RefactorConfig
from html_asset_refactor.persistence import AssetWriter
from html_asset_refactor.storage.local import LocalFileStorage

ABOUT_HTML = (
    "<!DOCTYPE html>\n"
    "<html>\n"
    "<head><title>About</title></head>\n"
    "<body>\n"
    '<p style="color: red">Hi</p>\n'
    '<script>console.log("hi")</script>\n'
    "</body>\n"
    "</html>\n"
)


@pytest.fixture
def make_config(tmp_path):
    """Factory for a RefactorConfig rooted at a temporary project."""

    def _make(**overrides):
        overrides.setdefault("PROJECT_ROOT", str(tmp_path))
        return RefactorConfig.from_settings(**overrides)

    return _make


@pytest.fixture
def config(make_config):
    """Default configuration rooted at the temporary project."""
    return make_config()


@pytest.fixture
def root(config) -> Path:
    """Resolved project root of the default configuration."""
    return config.project_root


@pytest.fixture
def storage(root):
    return LocalFileStorage(root)


@pytest.fixture
def writer(config, storage):
    return AssetWriter(config, storage)


@pytest.fixture
def write_file(tmp_path):
    """Create a file below the temporary project root."""

    def _write(relative, content=""):
        path = tmp_path.resolve() / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sample_html_with_style():
    """HTML content with inline <style> tag."""
    return "<div><style>body { color: red; }</style><p>Hello</p></div>"


@pytest.fixture
def sample_html_with_script():
    """HTML content with inline <script> tag."""
    return '<div><script>console.log("hello");</script><p>Hello</p></div>'


@pytest.fixture
def sample_html_with_no_extract():
    """HTML content with data-no-extract attribute."""
    return (
        "<div>"
        "<style data-no-extract>.critical { display: block; }</style>"
        "<style>.hero { color: red; }</style>"
        "</div>"
    )


@pytest.fixture
def about_html():
    """Document with one style attribute and one inline script."""
    return ABOUT_HTML
