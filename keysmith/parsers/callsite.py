"""Dialect-neutral translation call detection.

Each dialect parser wraps its syntax tree in a SyntaxAdapter. The functions
here decide what counts as a translation call, classify its key argument and
look for an ``or``-style fallback literal, so that every dialect (including
expressions embedded in markup) follows the same rules.
"""

from __future__ import annotations

import bisect
from abc import ABC, abstractmethod
from typing import Any, Collection, Iterator, Optional, Union

from ..models import (
    DynamicKeyReason,
    DynamicKeyWarning,
    ParseResult,
    Position,
    TranslationReference,
)

# How far the fallback search climbs through wrappers before giving up
MAX_FALLBACK_DEPTH = 12

Node = Any


class LineIndex:
    """Maps UTF-8 byte offsets to 1-based line and character column."""

    def __init__(self, source: bytes) -> None:
        self._source = source
        self._starts = [0]
        for i, byte in enumerate(source):
            if byte == 0x0A:
                self._starts.append(i + 1)

    def line_start(self, line: int) -> int:
        """Byte offset of a 1-based line."""
        return self._starts[line - 1]

    def position_at(self, offset: int) -> Position:
        row = bisect.bisect_right(self._starts, offset) - 1
        start = self._starts[row]
        column = len(self._source[start:offset].decode("utf-8", errors="replace"))
        return Position(line=row + 1, column=column + 1)


class SyntaxAdapter(ABC):
    """Uniform view over one dialect's syntax tree."""

    @abstractmethod
    def iter_calls(self) -> Iterator[Node]:
        """Yield every call expression in document order."""

    @abstractmethod
    def callee_name(self, call: Node) -> Optional[str]:
        """Name the call resolves to: identifier, member property or literal subscript."""

    @abstractmethod
    def first_argument(self, call: Node) -> Optional[Node]:
        pass

    @abstractmethod
    def parent(self, node: Node) -> Optional[Node]:
        pass

    @abstractmethod
    def is_transparent(self, node: Node) -> bool:
        """True for wrappers that do not change the wrapped value."""

    @abstractmethod
    def unwrap(self, node: Node) -> Node:
        """Strip transparent wrappers around an expression."""

    @abstractmethod
    def literal_value(self, node: Node) -> Optional[str]:
        """String value if node is a substitution-free string literal."""

    @abstractmethod
    def dynamic_reason(self, node: Node) -> DynamicKeyReason:
        """Classify a non-literal key argument."""

    @abstractmethod
    def fallback_operand(self, node: Node, call_text: str) -> Optional[str]:
        """If node is ``<expr containing call> or "literal"``, return the literal."""

    @abstractmethod
    def text(self, node: Node) -> str:
        pass

    @abstractmethod
    def position(self, node: Node) -> Position:
        pass


def classify_argument(
    adapter: SyntaxAdapter, argument: Node
) -> Union[str, DynamicKeyReason]:
    """Return the literal key, or the reason the argument is dynamic."""
    inner = adapter.unwrap(argument)
    value = adapter.literal_value(inner)
    if value is not None:
        return value
    return adapter.dynamic_reason(inner)


def find_fallback_literal(adapter: SyntaxAdapter, call: Node) -> Optional[str]:
    """Walk up from a call through transparent wrappers looking for a default string."""
    call_text = adapter.text(call)
    node = call
    for _ in range(MAX_FALLBACK_DEPTH):
        parent = adapter.parent(node)
        if parent is None:
            return None
        literal = adapter.fallback_operand(parent, call_text)
        if literal is not None:
            return literal
        if not adapter.is_transparent(parent):
            return None
        node = parent
    return None


def collect_translation_calls(
    adapter: SyntaxAdapter,
    file_path: str,
    identifiers: Collection[str],
    result: Optional[ParseResult] = None,
) -> ParseResult:
    """Append every translation call found through adapter to result."""
    if result is None:
        result = ParseResult()

    for call in adapter.iter_calls():
        if adapter.callee_name(call) not in identifiers:
            continue
        argument = adapter.first_argument(call)
        if argument is None:
            continue

        classified = classify_argument(adapter, argument)
        if isinstance(classified, DynamicKeyReason):
            result.dynamic_key_warnings.append(
                DynamicKeyWarning(
                    file_path=file_path,
                    position=adapter.position(argument),
                    expression=adapter.text(argument),
                    reason=classified,
                )
            )
            continue

        result.references.append(
            TranslationReference(
                key=classified,
                file_path=file_path,
                position=adapter.position(call),
                fallback_literal=find_fallback_literal(adapter, call),
            )
        )

    return result


def record_key_expression(
    adapter: SyntaxAdapter,
    expression: Node,
    file_path: str,
    position: Position,
    result: ParseResult,
) -> None:
    """Record a bare key expression (such as a directive value) as a reference or warning."""
    classified = classify_argument(adapter, expression)
    if isinstance(classified, DynamicKeyReason):
        result.dynamic_key_warnings.append(
            DynamicKeyWarning(
                file_path=file_path,
                position=position,
                expression=adapter.text(expression),
                reason=classified,
            )
        )
    else:
        result.references.append(
            TranslationReference(key=classified, file_path=file_path, position=position)
        )
