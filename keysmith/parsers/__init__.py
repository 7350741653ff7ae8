"""Dialect parsers for translation call extraction."""

from .base import BaseParser
from .python import PythonParser
from .registry import ParserRegistry, create_default_registry
from .script import ScriptParser
from .vue import VueParser

__all__ = [
    "BaseParser",
    "ParserRegistry",
    "PythonParser",
    "ScriptParser",
    "VueParser",
    "create_default_registry",
]
