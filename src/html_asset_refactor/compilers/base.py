"""Base class for CSS compilers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class BaseCSSCompiler(ABC):
    """Abstract base class for CSS compilers.

    A compiler receives one extracted CSS source file and produces the
    content of ``<compiled css dir>/<base name><suffix>``, the file that the
    inserted <link> elements point at.
    """

    scans_documents: bool = False
    """Whether the compiler reads the refactored HTML (e.g. for utility class scanning)."""

    def __init__(self, project_root: Path | None = None) -> None:
        self.project_root = Path(project_root) if project_root else None

    @abstractmethod
    def compile(self, source: Path, css: str, documents: list[Path]) -> str:
        """Compile one extracted CSS source.

        Args:
            source: Path of the extracted CSS source file.
            css: Current content of ``source``.
            documents: Refactored HTML documents of this run (empty unless
                scans_documents is True).

        Returns:
            Compiled CSS, or empty string if there is nothing to emit.
        """
        ...
