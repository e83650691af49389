from __future__ import annotations

import shutil
from pathlib import Path

from .base import BaseAssetStorage


class LocalFileStorage(BaseAssetStorage):
    """Local filesystem storage rooted at the project directory.

    Every path must resolve inside ``root``; anything else is rejected so a
    misconfigured output directory cannot write outside the project.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()

    def _get_full_path(self, path: Path | str) -> Path:
        full_path = (self.root / path).resolve()
        if not full_path.is_relative_to(self.root):
            raise ValueError(
                f"Path traversal detected: {str(path)!r} resolves outside {self.root}"
            )
        return full_path

    def read(self, path: Path | str) -> str | None:
        full_path = self._get_full_path(path)
        if not full_path.is_file():
            return None
        with full_path.open(encoding="utf-8", newline="") as fh:
            return fh.read()

    def save(self, path: Path | str, content: str) -> Path:
        full_path = self._get_full_path(path)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_text(content, encoding="utf-8", newline="")
        return full_path

    def copy(self, source: Path | str, destination: Path | str) -> Path:
        source_path = self._get_full_path(source)
        dest_path = self._get_full_path(destination)
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source_path, dest_path)
        return dest_path

    def delete(self, path: Path | str) -> None:
        full_path = self._get_full_path(path)
        if full_path.exists():
            full_path.unlink()

    def exists(self, path: Path | str) -> bool:
        return self._get_full_path(path).exists()
