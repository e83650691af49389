from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class BaseAssetStorage(ABC):
    """Abstract base class for asset storage backends.

    Storage backends persist rewritten HTML and extracted CSS/JS files.
    Paths may be absolute or relative to the backend's root.
    """

    @abstractmethod
    def read(self, path: Path | str) -> str | None:
        """Read a text file from storage.

        Args:
            path: The storage path to read

        Returns:
            The file content, or None if the file does not exist
        """
        ...

    @abstractmethod
    def save(self, path: Path | str, content: str) -> Path:
        """Save text content to storage, replacing any existing file.

        Args:
            path: The storage path (e.g., "styles/extracted/pages_about.css")
            content: The content to save

        Returns:
            The absolute path of the saved file
        """
        ...

    @abstractmethod
    def copy(self, source: Path | str, destination: Path | str) -> Path:
        """Copy a file within storage, creating parent directories.

        Args:
            source: Existing storage path
            destination: Target storage path

        Returns:
            The absolute destination path
        """
        ...

    @abstractmethod
    def delete(self, path: Path | str) -> None:
        """Delete a file from storage.

        Args:
            path: The storage path to delete
        """
        ...

    @abstractmethod
    def exists(self, path: Path | str) -> bool:
        """Check if a file exists in storage.

        Args:
            path: The storage path to check

        Returns:
            True if the file exists
        """
        ...
