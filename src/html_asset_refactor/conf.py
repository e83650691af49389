"""Configuration and settings for html-asset-refactor."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

DEFAULTS: dict[str, Any] = {
    # Discovery
    "PROJECT_ROOT": None,
    "HTML_SOURCE_PATTERNS": ["**/*.html"],
    "IGNORE_PATTERNS": [
        "node_modules/**",
        "**/node_modules/**",
        ".git/**",
        "dist/**",
        "build/**",
        "**/output/**",
    ],
    # Output locations
    "CSS_OUTPUT_DIR_STRATEGY": "centralized",
    "STYLES_OUTPUT_DIR": "styles/extracted",
    "JS_OUTPUT_DIR_STRATEGY": "relativeToHtml",
    "JS_CENTRAL_OUTPUT_DIR": "js/extracted",
    "COMPILED_CSS_LINK_DIR": "assets/css",
    "COMPILED_CSS_SUFFIX": "-output.css",
    # Naming
    "HTML_PREFIXES_TO_OMIT_FROM_CSS_NAME": ["src/public/", "public/", "src/pages/", "src/"],
    "MAX_FILENAME_LENGTH": 100,
    # Write behaviour
    "CREATE_BACKUPS": True,
    "DRY_RUN": False,
    "CSS_PREAMBLE": "/* Extracted inline styles. Generated by html-asset-refactor. */",
    # Distribution mirror
    "COPY_TO_DIST": False,
    "DIST_DIR": "dist",
    "DIST_SOURCE_ROOT": "src",
    # Compiler and storage settings
    "CSS_COMPILER": "html_asset_refactor.compilers.passthrough.PassthroughCSSCompiler",
    "STORAGE_BACKEND": "html_asset_refactor.storage.local.LocalFileStorage",
    # Asset optimization
    "MINIFY_CSS": True,
    "MINIFY_JS": True,
    "TERSER_PATH": None,
    "TERSER_OPTIONS": ["-c", "-m"],
    # Tailwind settings
    "TAILWIND_CLI_PATH": None,
    "TAILWIND_CONFIG": None,
    "TAILWIND_BASE_CSS": None,
    # Images and static files
    "IMAGE_SOURCE_DIR": "assets/images",
    "IMAGE_EXTENSIONS": ["jpg", "jpeg", "png", "gif", "webp", "svg"],
    "IMAGE_QUALITY": 85,
    "STATIC_ROOT_FILES": ["robots.txt", "sitemap.xml"],
}

MIN_FILENAME_LENGTH = 11
MAX_FILENAME_LENGTH_LIMIT = 199

_UNSET = object()


def get_setting(key: str, default: Any = _UNSET) -> Any:
    """Get a setting from HTML_ASSET_REFACTOR dict or return default."""
    user_settings: dict[str, Any] = getattr(settings, "HTML_ASSET_REFACTOR", {})
    fallback = DEFAULTS.get(key) if default is _UNSET else default
    return user_settings.get(key, fallback)


class OutputStrategy(Enum):
    """Where extracted CSS/JS source files are written."""

    CENTRALIZED = "centralized"  # One shared directory for every document
    RELATIVE_TO_HTML = "relativeToHtml"  # Next to the source HTML file


def _parse_strategy(value: str | OutputStrategy, key: str) -> OutputStrategy:
    if isinstance(value, OutputStrategy):
        return value
    try:
        return OutputStrategy(value)
    except ValueError as exc:
        valid_values = [strategy.value for strategy in OutputStrategy]
        raise ImproperlyConfigured(
            f"Invalid {key} '{value}'. Valid values: {valid_values}"
        ) from exc


def _default_project_root() -> Path:
    base_dir = getattr(settings, "BASE_DIR", None)
    if base_dir is not None:
        return Path(base_dir)
    return Path.cwd()


@dataclass
class RefactorConfig:
    """Resolved configuration snapshot for one refactor or build run.

    All directories are absolute. Relative values from settings are resolved
    against ``project_root``.
    """

    project_root: Path
    html_source_patterns: list[str]
    ignore_patterns: list[str]
    css_output_strategy: OutputStrategy
    styles_output_dir: Path
    js_output_strategy: OutputStrategy
    js_central_output_dir: Path
    compiled_css_link_dir: Path
    compiled_css_suffix: str
    html_prefixes_to_omit: list[str]
    max_filename_length: int
    create_backups: bool = True
    dry_run: bool = False
    css_preamble: str | None = None
    copy_to_dist: bool = False
    dist_dir: Path = field(default_factory=lambda: Path("dist"))
    dist_source_root: Path = field(default_factory=lambda: Path("src"))

    @classmethod
    def from_settings(cls, **overrides: Any) -> RefactorConfig:
        """Build a RefactorConfig from Django settings plus explicit overrides.

        Override keys use the same names as the settings dict (e.g. ``DRY_RUN``).
        ``None`` overrides are ignored so CLI options that were not given fall
        through to settings.

        Raises:
            ImproperlyConfigured: If a strategy, length or pattern list is invalid.
        """
        values = {key: get_setting(key) for key in DEFAULTS}
        values.update({k: v for k, v in overrides.items() if v is not None})

        root = values["PROJECT_ROOT"]
        project_root = Path(root).resolve() if root else _default_project_root().resolve()

        def resolve(path_value: str | Path) -> Path:
            return (project_root / path_value).resolve()

        max_length = int(values["MAX_FILENAME_LENGTH"])
        if not MIN_FILENAME_LENGTH <= max_length <= MAX_FILENAME_LENGTH_LIMIT:
            raise ImproperlyConfigured(
                f"MAX_FILENAME_LENGTH must be between {MIN_FILENAME_LENGTH} and "
                f"{MAX_FILENAME_LENGTH_LIMIT}, got {max_length}"
            )

        patterns = [p for p in values["HTML_SOURCE_PATTERNS"] if str(p).strip()]
        if not patterns:
            raise ImproperlyConfigured("HTML_SOURCE_PATTERNS must not be empty")

        return cls(
            project_root=project_root,
            html_source_patterns=[str(p).replace("\\", "/") for p in patterns],
            ignore_patterns=[str(p).replace("\\", "/") for p in values["IGNORE_PATTERNS"]],
            css_output_strategy=_parse_strategy(
                values["CSS_OUTPUT_DIR_STRATEGY"], "CSS_OUTPUT_DIR_STRATEGY"
            ),
            styles_output_dir=resolve(values["STYLES_OUTPUT_DIR"]),
            js_output_strategy=_parse_strategy(
                values["JS_OUTPUT_DIR_STRATEGY"], "JS_OUTPUT_DIR_STRATEGY"
            ),
            js_central_output_dir=resolve(values["JS_CENTRAL_OUTPUT_DIR"]),
            compiled_css_link_dir=resolve(values["COMPILED_CSS_LINK_DIR"]),
            compiled_css_suffix=values["COMPILED_CSS_SUFFIX"],
            html_prefixes_to_omit=list(values["HTML_PREFIXES_TO_OMIT_FROM_CSS_NAME"]),
            max_filename_length=max_length,
            create_backups=bool(values["CREATE_BACKUPS"]),
            dry_run=bool(values["DRY_RUN"]),
            css_preamble=values["CSS_PREAMBLE"] or None,
            copy_to_dist=bool(values["COPY_TO_DIST"]),
            dist_dir=resolve(values["DIST_DIR"]),
            dist_source_root=resolve(values["DIST_SOURCE_ROOT"]),
        )

    def relative(self, path: Path | str) -> str:
        """Return ``path`` relative to the project root with forward slashes."""
        try:
            rel = Path(path).resolve().relative_to(self.project_root)
        except ValueError:
            return Path(path).as_posix()
        return rel.as_posix()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "project_root": str(self.project_root),
            "html_source_patterns": self.html_source_patterns,
            "ignore_patterns": self.ignore_patterns,
            "css_output_strategy": self.css_output_strategy.value,
            "styles_output_dir": self.relative(self.styles_output_dir),
            "js_output_strategy": self.js_output_strategy.value,
            "js_central_output_dir": self.relative(self.js_central_output_dir),
            "compiled_css_link_dir": self.relative(self.compiled_css_link_dir),
            "max_filename_length": self.max_filename_length,
            "create_backups": self.create_backups,
            "dry_run": self.dry_run,
            "copy_to_dist": self.copy_to_dist,
        }


def get_config(**overrides: Any) -> RefactorConfig:
    """Shortcut for ``RefactorConfig.from_settings``."""
    return RefactorConfig.from_settings(**overrides)
