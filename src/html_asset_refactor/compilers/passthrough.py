"""Compiler for plain CSS projects."""

from __future__ import annotations

from pathlib import Path

from .base import BaseCSSCompiler


class PassthroughCSSCompiler(BaseCSSCompiler):
    """The compiled stylesheet is the extracted source, trimmed."""

    def compile(self, source: Path, css: str, documents: list[Path]) -> str:
        if not css.strip():
            return ""
        return css.strip() + "\n"
