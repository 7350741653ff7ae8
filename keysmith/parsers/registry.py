"""Registry mapping file extensions to dialect parsers."""

from __future__ import annotations

import hashlib
import inspect
import logging
from pathlib import Path
from typing import Optional

from . import callsite
from .base import BaseParser
from .python import PythonParser
from .script import GrammarSet, ScriptParser
from .vue import VueParser

logger = logging.getLogger(__name__)


class ParserRegistry:
    """Looks up the parser for a file and tracks which parsers can run.

    Availability is resolved once per workspace root and kept on the
    instance; switching roots clears it.
    """

    def __init__(self) -> None:
        self._parsers: list[BaseParser] = []
        self._by_extension: dict[str, BaseParser] = {}
        self._availability: dict[str, bool] = {}
        self._availability_root: Optional[Path] = None
        self._warned: set[str] = set()

    def register(self, parser: BaseParser) -> None:
        if self.get_by_id(parser.id) is not None:
            raise ValueError(f"Parser already registered: {parser.id}")
        self._parsers.append(parser)
        for extension in parser.extensions:
            self._by_extension[extension.lower()] = parser

    def all(self) -> list[BaseParser]:
        return list(self._parsers)

    def get_by_id(self, parser_id: str) -> Optional[BaseParser]:
        for parser in self._parsers:
            if parser.id == parser_id:
                return parser
        return None

    def get_for_file(self, path: str) -> Optional[BaseParser]:
        """Parser for a path by extension, or None when the dialect is unknown."""
        return self._by_extension.get(Path(path).suffix.lower())

    def is_available(self, parser: BaseParser, workspace_root: Path) -> bool:
        """Cached availability check. Logs one warning per unavailable parser."""
        root = Path(workspace_root).resolve()
        if root != self._availability_root:
            self._availability = {}
            self._availability_root = root

        if parser.id not in self._availability:
            self._availability[parser.id] = parser.is_available(root)

        available = self._availability[parser.id]
        if not available and parser.id not in self._warned:
            self._warned.add(parser.id)
            logger.warning(
                "%s parser unavailable (install keysmith[js]); %s files yield no references",
                parser.name,
                ", ".join(parser.extensions),
            )
        return available

    def availability(self, workspace_root: Path) -> dict[str, bool]:
        """Availability of every registered parser, without warnings."""
        root = Path(workspace_root).resolve()
        if root != self._availability_root:
            self._availability = {}
            self._availability_root = root
        for parser in self._parsers:
            if parser.id not in self._availability:
                self._availability[parser.id] = parser.is_available(root)
        return {parser.id: self._availability[parser.id] for parser in self._parsers}

    def signature(self) -> str:
        """Hash over every parser implementation and the shared call detector."""
        digest = hashlib.sha256()
        try:
            digest.update(inspect.getsource(callsite).encode("utf-8"))
        except (OSError, TypeError):
            digest.update(callsite.__name__.encode("utf-8"))
        for parser in sorted(self._parsers, key=lambda p: p.id):
            digest.update(parser.id.encode("utf-8"))
            digest.update(parser.signature().encode("utf-8"))
        return digest.hexdigest()


def create_default_registry() -> ParserRegistry:
    """Registry with the Python, JS/TS and Vue parsers."""
    grammars = GrammarSet()
    registry = ParserRegistry()
    registry.register(PythonParser())
    registry.register(ScriptParser(grammars))
    registry.register(VueParser(grammars))
    return registry
