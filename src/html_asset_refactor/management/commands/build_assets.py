"""Management command to run the full distribution build."""

from __future__ import annotations

import logging

from django.core.exceptions import ImproperlyConfigured
from django.core.management.base import BaseCommand, CommandError, CommandParser

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = (
        "Refactor HTML, minify JS, compile extracted CSS, optimize images and "
        "copy static files into DIST_DIR."
    )

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            "--dry-run",
            action="store_true",
            default=None,
            help="Only preview the refactor phase; nothing is written.",
        )

    def handle(self, **options: object) -> None:
        from html_asset_refactor.conf import RefactorConfig
        from html_asset_refactor.utils import build_site

        try:
            config = RefactorConfig.from_settings(DRY_RUN=options.get("dry_run"))
            report = build_site(config)
        except (ImproperlyConfigured, ValueError, OSError) as e:
            logger.exception("Build failed")
            raise CommandError(str(e)) from e

        prefix = "[DRY RUN] " if report.dry_run else ""
        self.stdout.write(f"{prefix}HTML scanned: {report.summary.scanned}")
        self.stdout.write(f"{prefix}HTML modified: {report.summary.modified}")
        if not report.dry_run:
            self.stdout.write(f"JS minified: {report.js_minified}")
            self.stdout.write(f"CSS compiled: {len(report.css_compiled)}")
            self.stdout.write(
                f"Images: {report.images.optimized} optimized, {report.images.copied} copied"
            )
            self.stdout.write(f"Static files copied: {len(report.static_files)}")
        self.stdout.write(self.style.SUCCESS(f"\n{prefix}Build complete."))
