"""Base parser class for translation call extraction."""

from __future__ import annotations

import hashlib
import inspect
import sys
from abc import ABC, abstractmethod
from pathlib import Path

from ..models import ParseResult


class BaseParser(ABC):
    """Abstract base class for dialect parsers."""

    #: Stable identifier, stored in the reference cache.
    id: str = ""
    #: Human-readable dialect name.
    name: str = ""
    #: Lower-cased file extensions handled, including the dot.
    extensions: tuple[str, ...] = ()

    @abstractmethod
    def is_available(self, workspace_root: Path) -> bool:
        """
        Check whether the optional runtime dependencies of this parser exist.

        Args:
            workspace_root: Root of the project being scanned

        Returns:
            True if parse_file can be used
        """
        pass

    @abstractmethod
    def parse_file(
        self,
        path: str,
        content: str,
        translation_identifier: str,
        workspace_root: Path,
    ) -> ParseResult:
        """
        Extract translation references and dynamic key warnings from one file.

        Args:
            path: Workspace-relative path, copied into every result
            content: File content
            translation_identifier: Name of the translate function
            workspace_root: Root of the project being scanned

        Returns:
            ParseResult with references and dynamic key warnings
        """
        pass

    def signature(self) -> str:
        """Hash of the parser implementation, used to version the cache."""
        module = sys.modules.get(type(self).__module__)
        try:
            source = inspect.getsource(module) if module is not None else ""
        except (OSError, TypeError):
            source = ""
        if not source:
            source = f"{type(self).__module__}.{type(self).__qualname__}"
        return hashlib.sha256(source.encode("utf-8")).hexdigest()
