"""Parser for Vue single-file components."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Optional

from ..models import ParseResult
from .base import BaseParser
from .callsite import LineIndex, collect_translation_calls, record_key_expression
from .script import GrammarSet, TreeSitterScriptAdapter, iter_nodes, modules_importable

logger = logging.getLogger(__name__)

REQUIRED_MODULES = (
    "tree_sitter",
    "tree_sitter_javascript",
    "tree_sitter_typescript",
    "tree_sitter_html",
)

# Template global available in every component
TEMPLATE_GLOBAL = "$t"

BOUND_PREFIXES = (":", "@", "#", "v-")
KEY_DIRECTIVE = "v-t"

_MUSTACHE_RE = re.compile(rb"\{\{(.*?)\}\}", re.S)


class VueParser(BaseParser):
    """Walks <script> blocks, mustache interpolations and bound attributes."""

    id = "vue"
    name = "Vue SFC"
    extensions = (".vue",)

    def __init__(self, grammars: Optional[GrammarSet] = None) -> None:
        self.grammars = grammars or GrammarSet()

    def is_available(self, workspace_root: Path) -> bool:
        return modules_importable(REQUIRED_MODULES)

    def parse_file(
        self,
        path: str,
        content: str,
        translation_identifier: str,
        workspace_root: Path,
    ) -> ParseResult:
        source = content.encode("utf-8")
        lines = LineIndex(source)
        identifiers = {translation_identifier, TEMPLATE_GLOBAL}
        result = ParseResult()

        document = self.grammars.parse("html", source)
        for node in iter_nodes(document.root_node):
            if node.type == "script_element":
                self._parse_script(node, path, lines, identifiers, result)
            elif node.type == "text":
                self._parse_mustaches(node, path, lines, identifiers, result)
            elif node.type == "attribute":
                self._parse_attribute(node, path, lines, identifiers, result)

        result.references.sort(key=lambda ref: (ref.position.line, ref.position.column))
        result.dynamic_key_warnings.sort(key=lambda w: (w.position.line, w.position.column))
        return result

    def _parse_script(
        self,
        element: Any,
        path: str,
        lines: LineIndex,
        identifiers: set[str],
        result: ParseResult,
    ) -> None:
        raw = next((child for child in element.children if child.type == "raw_text"), None)
        if raw is None:
            return
        lang = _script_lang(element)
        dialect = "tsx" if lang == "tsx" else "typescript" if lang in ("ts", "typescript") else "javascript"
        self._collect(dialect, raw.text, raw.start_byte, path, lines, identifiers, result)

    def _parse_mustaches(
        self,
        text_node: Any,
        path: str,
        lines: LineIndex,
        identifiers: set[str],
        result: ParseResult,
    ) -> None:
        for match in _MUSTACHE_RE.finditer(text_node.text):
            offset = text_node.start_byte + match.start(1)
            self._collect("typescript", match.group(1), offset, path, lines, identifiers, result)

    def _parse_attribute(
        self,
        attribute: Any,
        path: str,
        lines: LineIndex,
        identifiers: set[str],
        result: ParseResult,
    ) -> None:
        name_node = next((c for c in attribute.children if c.type == "attribute_name"), None)
        value_node = _attribute_value(attribute)
        if name_node is None or value_node is None:
            return
        name = name_node.text.decode("utf-8", errors="replace")
        if not name.startswith(BOUND_PREFIXES):
            return

        if name == KEY_DIRECTIVE:
            tree = self.grammars.parse("typescript", value_node.text)
            expression = _single_expression(tree.root_node)
            if expression is None:
                return
            adapter = TreeSitterScriptAdapter(tree.root_node, lines, value_node.start_byte)
            record_key_expression(adapter, expression, path, lines.position_at(value_node.start_byte), result)
            return

        self._collect("typescript", value_node.text, value_node.start_byte, path, lines, identifiers, result)

    def _collect(
        self,
        dialect: str,
        snippet: bytes,
        offset: int,
        path: str,
        lines: LineIndex,
        identifiers: set[str],
        result: ParseResult,
    ) -> None:
        tree = self.grammars.parse(dialect, snippet)
        adapter = TreeSitterScriptAdapter(tree.root_node, lines, offset)
        collect_translation_calls(adapter, path, identifiers, result)


def _script_lang(element: Any) -> str:
    start_tag = next((c for c in element.children if c.type == "start_tag"), None)
    if start_tag is None:
        return "js"
    for attribute in start_tag.children:
        if attribute.type != "attribute":
            continue
        name = next((c for c in attribute.children if c.type == "attribute_name"), None)
        value = _attribute_value(attribute)
        if name is not None and value is not None and name.text == b"lang":
            return value.text.decode("utf-8", errors="replace").strip().lower()
    return "js"


def _attribute_value(attribute: Any) -> Optional[Any]:
    for child in attribute.children:
        if child.type == "attribute_value":
            return child
        if child.type == "quoted_attribute_value":
            return next((c for c in child.children if c.type == "attribute_value"), None)
    return None


def _single_expression(program: Any) -> Optional[Any]:
    statement = next((c for c in program.named_children if c.type == "expression_statement"), None)
    if statement is None or not statement.named_children:
        return None
    return statement.named_children[0]
