"""Management command to extract inline CSS/JS from HTML files."""

from __future__ import annotations

import argparse
import logging

from django.core.exceptions import ImproperlyConfigured
from django.core.management.base import BaseCommand, CommandError, CommandParser

logger = logging.getLogger(__name__)


def _split_patterns(value: str) -> list[str]:
    return [pattern.strip() for pattern in value.split(",") if pattern.strip()]


class Command(BaseCommand):
    help = (
        "Move inline <style> blocks, style attributes and <script> bodies out of "
        "HTML files into external CSS/JS files."
    )

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            "path",
            nargs="?",
            help="Process only this HTML file (relative to PROJECT_ROOT). "
            "If omitted, every file matching the source patterns is processed.",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            default=None,
            help="Show what would change without writing any file.",
        )
        parser.add_argument(
            "--create-backups",
            action=argparse.BooleanOptionalAction,
            default=None,
            help="Back up each HTML file to <file>.bak before rewriting it.",
        )
        parser.add_argument(
            "--html-sources",
            type=_split_patterns,
            help="Comma-separated glob patterns selecting HTML files.",
        )
        parser.add_argument("--styles-output", help="Directory for extracted CSS (centralized).")
        parser.add_argument(
            "--css-strategy",
            choices=["centralized", "relativeToHtml"],
            help="Where extracted CSS files are written.",
        )
        parser.add_argument(
            "--js-strategy",
            choices=["centralized", "relativeToHtml"],
            help="Where extracted JS files are written.",
        )
        parser.add_argument("--js-central-output", help="Directory for extracted JS (centralized).")
        parser.add_argument(
            "--compiled-css-dir",
            help="Directory of the compiled CSS that inserted <link> elements point at.",
        )

    def handle(self, **options: object) -> None:
        from html_asset_refactor.batch import resolve_single_document, run_refactor
        from html_asset_refactor.conf import RefactorConfig

        try:
            config = RefactorConfig.from_settings(
                DRY_RUN=options.get("dry_run"),
                CREATE_BACKUPS=options.get("create_backups"),
                HTML_SOURCE_PATTERNS=options.get("html_sources"),
                STYLES_OUTPUT_DIR=options.get("styles_output"),
                CSS_OUTPUT_DIR_STRATEGY=options.get("css_strategy"),
                JS_OUTPUT_DIR_STRATEGY=options.get("js_strategy"),
                JS_CENTRAL_OUTPUT_DIR=options.get("js_central_output"),
                COMPILED_CSS_LINK_DIR=options.get("compiled_css_dir"),
            )
        except ImproperlyConfigured as e:
            raise CommandError(str(e)) from e

        path = options.get("path")
        paths = None
        try:
            if path:
                paths = [resolve_single_document(str(path), config)]
                self.stdout.write(f"Processing single file: {config.relative(paths[0])}")
            summary = run_refactor(config, paths)
        except (ValueError, OSError) as e:
            logger.exception("HTML refactor failed")
            raise CommandError(str(e)) from e

        for result in summary.results:
            if result.changed:
                self.stdout.write(f"  Modified: {config.relative(result.path)}")

        prefix = "[DRY RUN] " if summary.dry_run else ""
        verb = "would be modified" if summary.dry_run else "modified"
        self.stdout.write(
            self.style.SUCCESS(
                f"\n{prefix}Done. Scanned: {summary.scanned}, {verb}: {summary.modified}"
            )
        )
