"""Tailwind CSS compiler."""

from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
from pathlib import Path

from ..conf import get_setting
from .base import BaseCSSCompiler

logger = logging.getLogger(__name__)

TAILWIND_CLI_TIMEOUT_SECONDS = 60
DEFAULT_TAILWIND_INPUT = '@import "tailwindcss";\n'
TAILWIND_DIRECTIVES = ('@import "tailwindcss"', "@import 'tailwindcss'", "@tailwind ")


def has_tailwind_directive(css: str) -> bool:
    return any(directive in css for directive in TAILWIND_DIRECTIVES)


class TailwindCSSCompiler(BaseCSSCompiler):
    """Compile extracted CSS with the Tailwind CLI.

    The refactored documents are passed as ``--content`` so only the
    utility classes they use are generated. A source that already carries a
    Tailwind directive is handed to the CLI as it is; any other source is
    compiled on top of ``TAILWIND_BASE_CSS`` (or a bare Tailwind import).

    Tailwind failures never fail the build: the extracted CSS is emitted
    uncompiled and a warning is logged.
    """

    scans_documents: bool = True

    def compile(self, source: Path, css: str, documents: list[Path]) -> str:
        if not css.strip() and not documents:
            return ""

        try:
            return self._run_tailwind(source, css, documents)
        except (subprocess.SubprocessError, OSError) as e:
            logger.warning(
                "Tailwind build of %s failed: %s. Using the extracted CSS uncompiled.",
                source.name,
                e,
            )
            return css.strip() + "\n" if css.strip() else ""

    def _get_cli_path(self) -> str:
        """Resolve the Tailwind CLI binary.

        Resolution order:
        1. ``TAILWIND_CLI_PATH`` in ``HTML_ASSET_REFACTOR`` settings
        2. ``node_modules/.bin/tailwindcss`` under the project root
        3. ``tailwindcss`` on PATH
        """
        configured: str | None = get_setting("TAILWIND_CLI_PATH")
        if configured:
            return configured

        if self.project_root is not None:
            local = self.project_root / "node_modules" / ".bin" / "tailwindcss"
            if local.exists():
                return str(local)

        return shutil.which("tailwindcss") or "tailwindcss"

    def _input_css(self, css: str) -> str | None:
        """Input for sources without a directive; None means use the source file."""
        if has_tailwind_directive(css):
            return None

        base_css_path: str | None = get_setting("TAILWIND_BASE_CSS")
        if base_css_path:
            base = Path(base_css_path).read_text(encoding="utf-8")
        else:
            base = DEFAULT_TAILWIND_INPUT
        return f"{base.rstrip()}\n\n{css.strip()}\n" if css.strip() else base

    def _build_command(
        self, cli_path: str, input_file: Path, documents: list[Path]
    ) -> list[str]:
        cmd = [cli_path, "--input", str(input_file)]

        if documents:
            cmd.extend(["--content", ",".join(str(path) for path in documents)])

        if get_setting("MINIFY_CSS"):
            cmd.append("--minify")

        config_path: str | None = get_setting("TAILWIND_CONFIG")
        if config_path:
            cmd.extend(["--config", config_path])

        return cmd

    def _run_tailwind(self, source: Path, css: str, documents: list[Path]) -> str:
        """Run the CLI and return the CSS it writes to stdout."""
        with tempfile.TemporaryDirectory() as tmpdir:
            input_css = self._input_css(css)
            if input_css is None:
                input_file = source
            else:
                input_file = Path(tmpdir) / source.name
                input_file.write_text(input_css, encoding="utf-8")

            cmd = self._build_command(self._get_cli_path(), input_file, documents)
            logger.debug("Running %s", " ".join(cmd))
            result = subprocess.run(  # noqa: S603
                cmd,
                capture_output=True,
                text=True,
                timeout=TAILWIND_CLI_TIMEOUT_SECONDS,
                cwd=self.project_root,
            )

        if result.returncode != 0:
            raise subprocess.SubprocessError(f"Tailwind CLI failed: {result.stderr.strip()}")
        return result.stdout.strip() + "\n" if result.stdout.strip() else ""
