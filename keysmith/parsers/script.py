"""Parser for JavaScript and TypeScript sources, built on tree-sitter grammars."""

from __future__ import annotations

import importlib
import logging
import re
from pathlib import Path
from typing import Any, Iterator, Optional

from ..models import DynamicKeyReason, ParseResult, Position
from .base import BaseParser
from .callsite import LineIndex, SyntaxAdapter, collect_translation_calls

logger = logging.getLogger(__name__)

REQUIRED_MODULES = ("tree_sitter", "tree_sitter_javascript", "tree_sitter_typescript")

WRAPPER_TYPES = {
    "parenthesized_expression",
    "as_expression",
    "satisfies_expression",
    "non_null_expression",
    "type_assertion",
    "jsx_expression",
}
STRING_TYPES = {"string", "template_string"}
FALLBACK_OPERATORS = {"||", "??"}

# Grammar per extension; .vue script blocks pick by their lang attribute
DIALECT_BY_EXTENSION = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
}

_ESCAPE_RE = re.compile(r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|.)", re.S)
_SIMPLE_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}


def unescape_js(raw: str) -> str:
    """Decode the escape sequences of a JS string literal body."""

    def replace(match: re.Match) -> str:
        seq = match.group(1)
        if seq.startswith("u{"):
            return chr(int(seq[2:-1], 16))
        if seq.startswith("u") and len(seq) == 5:
            return chr(int(seq[1:], 16))
        if seq.startswith("x") and len(seq) == 3:
            return chr(int(seq[1:], 16))
        if seq in ("\n", "\r\n"):
            return ""
        return _SIMPLE_ESCAPES.get(seq, seq)

    return _ESCAPE_RE.sub(replace, raw)


def iter_nodes(root: Any) -> Iterator[Any]:
    """Pre-order traversal of a tree-sitter node."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


class TreeSitterScriptAdapter(SyntaxAdapter):
    """SyntaxAdapter over a tree-sitter JS/TS tree.

    ``base_offset`` is the byte offset of the parsed snippet inside the file,
    used when the tree covers only an embedded expression or script block.
    """

    def __init__(self, root: Any, lines: LineIndex, base_offset: int = 0) -> None:
        self._root = root
        self._lines = lines
        self._base_offset = base_offset

    def iter_calls(self) -> Iterator[Any]:
        for node in iter_nodes(self._root):
            if node.type == "call_expression":
                yield node

    def callee_name(self, call: Any) -> Optional[str]:
        callee = call.child_by_field_name("function")
        if callee is None:
            return None
        callee = self.unwrap(callee)
        if callee.type == "identifier":
            return self.text(callee)
        if callee.type == "member_expression":
            prop = callee.child_by_field_name("property")
            return self.text(prop) if prop is not None else None
        if callee.type == "subscript_expression":
            index = callee.child_by_field_name("index")
            if index is not None:
                return self.literal_value(self.unwrap(index))
        return None

    def first_argument(self, call: Any) -> Optional[Any]:
        arguments = call.child_by_field_name("arguments")
        if arguments is None or arguments.type != "arguments":
            return None
        for child in arguments.named_children:
            if child.type != "comment":
                return None if child.type == "spread_element" else child
        return None

    def parent(self, node: Any) -> Optional[Any]:
        return node.parent

    def is_transparent(self, node: Any) -> bool:
        return node.type in WRAPPER_TYPES

    def unwrap(self, node: Any) -> Any:
        while node.type in WRAPPER_TYPES:
            inner = _wrapped_expression(node)
            if inner is None:
                break
            node = inner
        return node

    def literal_value(self, node: Any) -> Optional[str]:
        if node.type not in STRING_TYPES:
            return None
        if node.type == "template_string" and any(
            child.type == "template_substitution" for child in node.children
        ):
            return None
        body = self.text(node)[1:-1]
        if node.type == "template_string":
            # Template literals normalize CRLF and keep raw newlines
            body = body.replace("\r\n", "\n")
        return unescape_js(body)

    def dynamic_reason(self, node: Any) -> DynamicKeyReason:
        if node.type == "template_string":
            return DynamicKeyReason.TEMPLATE
        if node.type == "binary_expression" and _operator(node) == "+":
            return DynamicKeyReason.BINARY
        return DynamicKeyReason.EXPRESSION

    def fallback_operand(self, node: Any, call_text: str) -> Optional[str]:
        if node.type != "binary_expression" or _operator(node) not in FALLBACK_OPERATORS:
            return None
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        if left is None or right is None or call_text not in self.text(left):
            return None
        return self.literal_value(right)

    def text(self, node: Any) -> str:
        return node.text.decode("utf-8", errors="replace")

    def position(self, node: Any) -> Position:
        return self._lines.position_at(self._base_offset + node.start_byte)


def _wrapped_expression(node: Any) -> Optional[Any]:
    children = [child for child in node.named_children if child.type != "comment"]
    if not children:
        return None
    # <Type>value keeps the type first
    return children[-1] if node.type == "type_assertion" else children[0]


def _operator(node: Any) -> Optional[str]:
    operator = node.child_by_field_name("operator")
    return operator.type if operator is not None else None


class GrammarSet:
    """Lazily built tree-sitter parsers, one per grammar."""

    def __init__(self) -> None:
        self._parsers: dict[str, Any] = {}

    def parser(self, dialect: str) -> Any:
        if dialect not in self._parsers:
            from tree_sitter import Language, Parser

            if dialect == "javascript":
                import tree_sitter_javascript

                language = tree_sitter_javascript.language()
            elif dialect == "typescript":
                import tree_sitter_typescript

                language = tree_sitter_typescript.language_typescript()
            elif dialect == "tsx":
                import tree_sitter_typescript

                language = tree_sitter_typescript.language_tsx()
            elif dialect == "html":
                import tree_sitter_html

                language = tree_sitter_html.language()
            else:
                raise ValueError(f"Unknown grammar: {dialect}")
            self._parsers[dialect] = Parser(Language(language))
        return self._parsers[dialect]

    def parse(self, dialect: str, source: bytes) -> Any:
        return self.parser(dialect).parse(source)


def modules_importable(names: tuple[str, ...]) -> bool:
    """True if every named module can be imported."""
    for name in names:
        try:
            importlib.import_module(name)
        except ImportError:
            return False
    return True


class ScriptParser(BaseParser):
    """Finds translation calls in .js/.jsx/.ts/.tsx and friends."""

    id = "script"
    name = "JavaScript/TypeScript"
    extensions = tuple(DIALECT_BY_EXTENSION)

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
        dialect = DIALECT_BY_EXTENSION.get(Path(path).suffix.lower(), "typescript")
        source = content.encode("utf-8")
        tree = self.grammars.parse(dialect, source)
        if tree.root_node.has_error:
            logger.debug("Syntax errors in %s; extracting what parsed", path)
        adapter = TreeSitterScriptAdapter(tree.root_node, LineIndex(source))
        return collect_translation_calls(adapter, path, {translation_identifier})
