"""Abstract base class for source loaders.

Loaders turn a path on disk into ``CodeFile`` records. They do not split
or embed anything.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from code_explorer.core.types import CodeFile


class BaseLoader(ABC):
    """Abstract base class for loaders."""

    @abstractmethod
    def load(self, path: str | Path) -> List[CodeFile]:
        """Load a file or a directory tree.

        Args:
            path: File or directory to read.

        Returns:
            Accepted files with paths relative to the loaded root.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ValueError: If a single file is given and it is not accepted.
        """

    @staticmethod
    def _validate_path(path: str | Path) -> Path:
        resolved = Path(path).expanduser().resolve()
        if not resolved.exists():
            raise FileNotFoundError(f"Path not found: {resolved}")
        return resolved
