"""Parser for Python sources, built on the standard library ast module."""

from __future__ import annotations

import ast
from pathlib import Path
from typing import Iterator, Optional

from ..models import DynamicKeyReason, ParseResult, Position
from .base import BaseParser
from .callsite import LineIndex, SyntaxAdapter, collect_translation_calls

CAST_NAMES = {"cast", "typing.cast"}


class PythonSyntaxAdapter(SyntaxAdapter):
    """SyntaxAdapter over an ast.Module."""

    def __init__(self, source: str, tree: ast.AST) -> None:
        self._source = source
        self._tree = tree
        self._lines = LineIndex(source.encode("utf-8"))
        self._parents: dict[ast.AST, ast.AST] = {}
        for node in ast.walk(tree):
            for child in ast.iter_child_nodes(node):
                self._parents[child] = node

    def iter_calls(self) -> Iterator[ast.Call]:
        calls = [node for node in ast.walk(self._tree) if isinstance(node, ast.Call)]
        calls.sort(key=lambda node: (node.lineno, node.col_offset))
        return iter(calls)

    def callee_name(self, call: ast.Call) -> Optional[str]:
        func = call.func
        if isinstance(func, ast.Name):
            return func.id
        if isinstance(func, ast.Attribute):
            return func.attr
        if isinstance(func, ast.Subscript):
            index = func.slice
            if isinstance(index, ast.Constant) and isinstance(index.value, str):
                return index.value
        return None

    def first_argument(self, call: ast.Call) -> Optional[ast.AST]:
        if call.args:
            first = call.args[0]
            return None if isinstance(first, ast.Starred) else first
        return None

    def parent(self, node: ast.AST) -> Optional[ast.AST]:
        return self._parents.get(node)

    def is_transparent(self, node: ast.AST) -> bool:
        return _is_cast(node)

    def unwrap(self, node: ast.AST) -> ast.AST:
        while _is_cast(node):
            node = node.args[1]
        return node

    def literal_value(self, node: ast.AST) -> Optional[str]:
        if isinstance(node, ast.Constant) and isinstance(node.value, str):
            return node.value
        if isinstance(node, ast.JoinedStr) and all(
            isinstance(part, ast.Constant) for part in node.values
        ):
            return "".join(part.value for part in node.values)
        return None

    def dynamic_reason(self, node: ast.AST) -> DynamicKeyReason:
        if isinstance(node, ast.JoinedStr):
            return DynamicKeyReason.TEMPLATE
        if isinstance(node, ast.BinOp):
            if isinstance(node.op, ast.Mod) and _is_str(node.left):
                return DynamicKeyReason.TEMPLATE
            if isinstance(node.op, ast.Add):
                return DynamicKeyReason.BINARY
        if (
            isinstance(node, ast.Call)
            and isinstance(node.func, ast.Attribute)
            and node.func.attr == "format"
            and _is_str(node.func.value)
        ):
            return DynamicKeyReason.TEMPLATE
        return DynamicKeyReason.EXPRESSION

    def fallback_operand(self, node: ast.AST, call_text: str) -> Optional[str]:
        if not (isinstance(node, ast.BoolOp) and isinstance(node.op, ast.Or)):
            return None
        for left, right in zip(node.values, node.values[1:]):
            if call_text in self.text(left):
                if isinstance(right, ast.Constant) and isinstance(right.value, str):
                    return right.value
                return None
        return None

    def text(self, node: ast.AST) -> str:
        return ast.get_source_segment(self._source, node) or ""

    def position(self, node: ast.AST) -> Position:
        offset = self._lines.line_start(node.lineno) + node.col_offset
        return self._lines.position_at(offset)


class PythonParser(BaseParser):
    """Finds ``t("key")`` style calls in Python modules."""

    id = "python"
    name = "Python"
    extensions = (".py", ".pyi")

    def is_available(self, workspace_root: Path) -> bool:
        return True

    def parse_file(
        self,
        path: str,
        content: str,
        translation_identifier: str,
        workspace_root: Path,
    ) -> ParseResult:
        tree = ast.parse(content, filename=path)
        adapter = PythonSyntaxAdapter(content, tree)
        return collect_translation_calls(adapter, path, {translation_identifier})


def _is_str(node: ast.AST) -> bool:
    return isinstance(node, ast.Constant) and isinstance(node.value, str)


def _is_cast(node: ast.AST) -> bool:
    if not isinstance(node, ast.Call) or len(node.args) != 2:
        return False
    func = node.func
    if isinstance(func, ast.Name):
        name = func.id
    elif isinstance(func, ast.Attribute) and isinstance(func.value, ast.Name):
        name = f"{func.value.id}.{func.attr}"
    else:
        return False
    return name in CAST_NAMES
