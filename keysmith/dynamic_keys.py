"""Wildcard key patterns: expansion, coverage and glob matching."""

from __future__ import annotations

import re
from typing import Iterable, Mapping, Sequence

from .models import DynamicKeyCoverage

WILDCARD = "*"


def expand_pattern(pattern: str, values: Sequence[str]) -> list[str]:
    """Expand one pattern.

    Every ``*`` in the pattern takes the same value, so N wildcards and M
    values give M keys rather than M**N.
    """
    if WILDCARD not in pattern:
        return [pattern]
    return [pattern.replace(WILDCARD, value) for value in values]


def expand_dynamic_keys(mapping: Mapping[str, Sequence[str]]) -> list[str]:
    """Expand every configured pattern. Patterns with no values are skipped."""
    keys: list[str] = []
    for pattern, values in mapping.items():
        if not values:
            continue
        keys.extend(expand_pattern(pattern, values))
    return list(dict.fromkeys(keys))


def build_dynamic_key_coverage(
    mapping: Mapping[str, Sequence[str]],
    locale_data: Mapping[str, Mapping[str, str]],
    locales: Iterable[str],
) -> list[DynamicKeyCoverage]:
    """Per pattern, which expanded keys each locale is missing."""
    locales = list(locales)
    coverage = []
    for pattern, values in mapping.items():
        if not values:
            continue
        expanded = expand_pattern(pattern, values)
        missing_by_locale = {}
        for locale in locales:
            data = locale_data.get(locale, {})
            missing = [key for key in expanded if key not in data]
            if missing:
                missing_by_locale[locale] = missing
        coverage.append(
            DynamicKeyCoverage(
                pattern=pattern,
                expanded_keys=expanded,
                missing_by_locale=missing_by_locale,
            )
        )
    return coverage


def compile_key_glob(pattern: str) -> re.Pattern:
    """Regex for a key glob: ``*`` stays inside one dot segment, ``**`` crosses them."""
    regex = ""
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "*":
            if pattern.startswith("**", i):
                regex += ".*"
                i += 2
                continue
            regex += "[^.]*"
        elif char == "?":
            regex += "."
        else:
            regex += re.escape(char)
        i += 1
    return re.compile(f"^{regex}$")


def compile_key_globs(patterns: Iterable[str]) -> list[re.Pattern]:
    return [compile_key_glob(p.strip()) for p in patterns if p.strip()]


def matches_any_glob(key: str, matchers: Sequence[re.Pattern]) -> bool:
    return any(matcher.match(key) for matcher in matchers)


def collect_glob_matched_keys(
    locale_data: Mapping[str, Mapping[str, str]],
    matchers: Sequence[re.Pattern],
) -> set[str]:
    """Keys of any locale that match one of the globs."""
    matched: set[str] = set()
    if not matchers:
        return matched
    for data in locale_data.values():
        for key in data:
            if matches_any_glob(key, matchers):
                matched.add(key)
    return matched
