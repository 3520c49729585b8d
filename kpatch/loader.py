"""Patch content loading module."""

import logging

from kpatch.error import LoadError, wrap_exception
from pathlib import Path
from typing import Protocol


_logger = logging.getLogger(__name__)


class Loader(Protocol):
    """Loads the content referenced by a path."""

    def load(self, path: str) -> bytes:
        ...


class FileLoader:
    """
    Loads files located in or below a root directory.

    Parameters:
    • root: directory that relative paths are resolved against  [current directory]

    Paths that resolve outside of the root directory are refused.
    """

    def __init__(self, root: str | Path = "."):
        self.root = Path(root).resolve()

    def _resolve(self, path: str) -> Path:
        resolved = (self.root / path).resolve()
        if resolved != self.root and self.root not in resolved.parents:
            raise LoadError(f"security; file '{path}' is not in or below '{self.root}'")
        return resolved

    def load(self, path: str) -> bytes:
        """Return the content of the file at the specified path."""
        resolved = self._resolve(path)
        _logger.debug("load %s", resolved)
        with wrap_exception(catch=OSError, throw=LoadError):
            return resolved.read_bytes()
