"""Interpolation placeholder extraction and comparison."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from .models import DEFAULT_PLACEHOLDER_FORMATS

NAMED = "named"
POSITIONAL = "positional"


@dataclass(frozen=True)
class PlaceholderPattern:
    """A compiled placeholder dialect."""

    name: str
    regex: re.Pattern
    kind: str


PLACEHOLDER_PATTERNS: dict[str, PlaceholderPattern] = {
    # {{name}} (i18next, vue-i18n)
    "doubleCurly": PlaceholderPattern("doubleCurly", re.compile(r"\{\{\s*([A-Za-z0-9_.-]+)\s*\}\}"), NAMED),
    # %{name} (rails-style)
    "percentCurly": PlaceholderPattern("percentCurly", re.compile(r"%\{([A-Za-z0-9_.-]+)\}"), NAMED),
    # %s (printf)
    "percentSymbol": PlaceholderPattern("percentSymbol", re.compile(r"%s"), POSITIONAL),
    # {name} (str.format, ICU)
    "singleCurly": PlaceholderPattern(
        "singleCurly", re.compile(r"(?<![{%])\{([A-Za-z0-9_.-]+)\}(?!\})"), NAMED
    ),
}


def build_placeholder_patterns(formats: Iterable[str]) -> list[PlaceholderPattern]:
    """Resolve format names to patterns. Unknown names fall back to doubleCurly."""
    return [PLACEHOLDER_PATTERNS.get(name, PLACEHOLDER_PATTERNS["doubleCurly"]) for name in formats]


def extract_placeholders(value: str, patterns: Sequence[PlaceholderPattern]) -> list[str]:
    """Return placeholder tokens in value, de-duplicated, in discovery order.

    Positional tokens are numbered ``__positional__1``, ``__positional__2``...
    so that a target dropping one ``%s`` is reported as missing.
    """
    if not value or not patterns:
        return []

    tokens: list[str] = []
    positional = 0
    for pattern in patterns:
        for match in pattern.regex.finditer(value):
            if pattern.kind == NAMED:
                name = match.group(1).strip()
                if name:
                    tokens.append(name)
            else:
                positional += 1
                tokens.append(f"__positional__{positional}")

    return list(dict.fromkeys(tokens))


@dataclass
class PlaceholderComparison:
    """Placeholder differences between a source and target value."""

    missing: list[str] = field(default_factory=list)
    extra: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing and not self.extra


class PlaceholderValidator:
    """Compares placeholder tokens across locale values."""

    def __init__(self, formats: Iterable[str] = DEFAULT_PLACEHOLDER_FORMATS) -> None:
        self.patterns = build_placeholder_patterns(formats)

    def extract(self, value: str) -> list[str]:
        return extract_placeholders(value, self.patterns)

    def compare(self, source_value: str, target_value: str) -> PlaceholderComparison:
        source_tokens = self.extract(source_value)
        target_tokens = self.extract(target_value)
        target_set = set(target_tokens)
        source_set = set(source_tokens)
        return PlaceholderComparison(
            missing=[token for token in source_tokens if token not in target_set],
            extra=[token for token in target_tokens if token not in source_set],
        )
