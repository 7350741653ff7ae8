"""Detection of keys that look like raw UI text, and key normalization."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from .models import NamingConvention, SuspiciousKeyPolicy, SuspiciousKeyReason

REASON_DESCRIPTIONS = {
    SuspiciousKeyReason.CONTAINS_SPACES: "Key contains spaces (raw UI text)",
    SuspiciousKeyReason.SINGLE_WORD_NO_NAMESPACE: "Single word without namespace (likely raw label)",
    SuspiciousKeyReason.TRAILING_PUNCTUATION: "Key ends with punctuation (:?!)",
    SuspiciousKeyReason.PASCAL_CASE_SENTENCE: "PascalCase sentence pattern (4+ words)",
    SuspiciousKeyReason.SENTENCE_ARTICLE: "Contains sentence articles/prepositions (The, To, For...)",
    SuspiciousKeyReason.KEY_EQUALS_VALUE: "Key is identical to its value",
}

SENTENCE_INDICATORS = re.compile(
    r"(?:^|(?<=[a-z]))"
    r"(The|To|Of|For|In|On|At|By|With|From|As|Is|Are|Was|Were|Be|Been|Being|"
    r"Have|Has|Had|Do|Does|Did|Will|Would|Could|Should|May|Might|Must|Shall|Can)"
    r"(?=[A-Z]|$)"
)

_ALPHA_ONLY = re.compile(r"^[A-Za-z]+$")
_TRAILING_PUNCTUATION = re.compile(r"[:?!]+$")
_PASCAL_RUN = re.compile(r"([A-Z][a-z]+){3,}")
_CLEAN_NAMESPACE = re.compile(r"^[a-zA-Z0-9._-]+$")
_WORD_PUNCTUATION = re.compile(r"[:?!,.;'\"]+")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")

_CONVENTION_PATTERNS = {
    NamingConvention.KEBAB: re.compile(r"^[a-z]+(-[a-z]+)*$"),
    NamingConvention.SNAKE: re.compile(r"^[a-z]+(_[a-z]+)*$"),
    NamingConvention.CAMEL: re.compile(r"^[a-z]+([A-Z][a-z]*)*$"),
}


@dataclass(frozen=True)
class KeyAnalysis:
    suspicious: bool
    reason: Optional[SuspiciousKeyReason] = None


@dataclass(frozen=True)
class KeyValidation:
    valid: bool
    suspicious: bool
    reason: Optional[SuspiciousKeyReason] = None
    suggestion: Optional[str] = None


@dataclass(frozen=True)
class NormalizationOptions:
    default_namespace: str = "common"
    naming_convention: NamingConvention = NamingConvention.KEBAB
    max_words: int = 4
    preserve_existing_convention: bool = False


NOT_SUSPICIOUS = KeyAnalysis(suspicious=False)


def final_segment(key: str) -> str:
    return key.rsplit(".", 1)[-1]


class KeyValidator:
    """Classifies keys against the suspicious-key taxonomy.

    Checks run in a fixed order and the first match wins.
    """

    def __init__(
        self,
        policy: SuspiciousKeyPolicy = SuspiciousKeyPolicy.SKIP,
        default_namespace: str = "common",
    ) -> None:
        self.policy = policy
        self.default_namespace = default_namespace

    def analyze(self, key: str) -> KeyAnalysis:
        if " " in key:
            return KeyAnalysis(True, SuspiciousKeyReason.CONTAINS_SPACES)

        if "." not in key and _ALPHA_ONLY.match(key):
            return KeyAnalysis(True, SuspiciousKeyReason.SINGLE_WORD_NO_NAMESPACE)

        if key[-1:] in (":", "?", "!"):
            return KeyAnalysis(True, SuspiciousKeyReason.TRAILING_PUNCTUATION)

        segment = final_segment(key)

        if _PASCAL_RUN.search(segment) and "-" not in segment and "_" not in segment:
            words = [w for w in re.split(r"(?=[A-Z])", segment) if w]
            if len(words) >= 4 and all(len(w) > 1 for w in words):
                return KeyAnalysis(True, SuspiciousKeyReason.PASCAL_CASE_SENTENCE)

        if SENTENCE_INDICATORS.search(segment):
            return KeyAnalysis(True, SuspiciousKeyReason.SENTENCE_ARTICLE)

        return NOT_SUSPICIOUS

    def analyze_with_value(self, key: str, value: Optional[str]) -> KeyAnalysis:
        """analyze(), plus the key-equals-value check against a stored value.

        A match overrides "not suspicious" and single-word-no-namespace; the
        more specific shape findings win otherwise.
        """
        analysis = self.analyze(key)
        if value is None or not self.key_equals_value(key, value):
            return analysis
        if not analysis.suspicious or analysis.reason is SuspiciousKeyReason.SINGLE_WORD_NO_NAMESPACE:
            return KeyAnalysis(True, SuspiciousKeyReason.KEY_EQUALS_VALUE)
        return analysis

    @staticmethod
    def key_equals_value(key: str, value: str) -> bool:
        if key == value:
            return True
        normalized_value = _normalize_for_comparison(value)
        return bool(normalized_value) and _normalize_for_comparison(final_segment(key)) == normalized_value

    def validate(self, key: str, value: Optional[str] = None) -> KeyValidation:
        analysis = self.analyze(key) if value is None else self.analyze_with_value(key, value)
        if not analysis.suspicious:
            return KeyValidation(valid=True, suspicious=False)
        return KeyValidation(
            valid=self.policy is SuspiciousKeyPolicy.ALLOW,
            suspicious=True,
            reason=analysis.reason,
            suggestion=self.suggest_fix(key, analysis.reason),
        )

    def should_skip(self, key: str) -> bool:
        if self.policy is SuspiciousKeyPolicy.ALLOW:
            return False
        return self.analyze(key).suspicious

    def should_error(self, key: str) -> bool:
        if self.policy is not SuspiciousKeyPolicy.ERROR:
            return False
        return self.analyze(key).suspicious

    def suggest_fix(self, key: str, reason: Optional[SuspiciousKeyReason] = None) -> Optional[str]:
        if reason is None:
            reason = self.analyze(key).reason
        if reason is None:
            return None
        if reason is SuspiciousKeyReason.SINGLE_WORD_NO_NAMESPACE:
            return f"{self.default_namespace}.{key.lower()}"
        if reason is SuspiciousKeyReason.TRAILING_PUNCTUATION:
            return _TRAILING_PUNCTUATION.sub("", key)
        return normalize_to_key(key, NormalizationOptions(default_namespace=self.default_namespace))

    @staticmethod
    def is_valid_key_format(key: str) -> bool:
        return bool(key) and bool(key.strip()) and bool(_CLEAN_NAMESPACE.match(key))


def _normalize_for_comparison(text: str) -> str:
    return _NON_ALNUM.sub(" ", text.lower()).strip()


def follows_convention(segment: str, convention: NamingConvention) -> bool:
    return bool(_CONVENTION_PATTERNS[convention].match(segment))


def extract_words(text: str) -> list[str]:
    """Split raw text or a compound identifier into lowercase words."""
    cleaned = _WORD_PUNCTUATION.sub(" ", text).strip()
    words = []
    for token in cleaned.split():
        token = re.sub(r"([a-z])([A-Z])", r"\1 \2", token)
        token = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1 \2", token)
        words.extend(word.lower() for word in token.split() if word)
    return words


def normalize_to_key(text: str, options: NormalizationOptions = NormalizationOptions()) -> str:
    """Turn raw text or a suspicious key into ``namespace.segment`` form."""
    namespace = options.default_namespace
    segment = text

    if "." in text:
        prefix, _, candidate = text.rpartition(".")
        if _CLEAN_NAMESPACE.match(prefix) and candidate:
            namespace, segment = prefix, candidate

    if options.preserve_existing_convention and segment:
        for convention in (NamingConvention.KEBAB, NamingConvention.CAMEL, NamingConvention.SNAKE):
            if follows_convention(segment, convention):
                return f"{namespace}.{segment}"

    words = extract_words(segment)[: options.max_words]
    if not words:
        return f"{namespace}.unknown"

    if options.naming_convention is NamingConvention.CAMEL:
        joined = words[0] + "".join(word.capitalize() for word in words[1:])
    elif options.naming_convention is NamingConvention.SNAKE:
        joined = "_".join(words)
    else:
        joined = "-".join(words)
    return f"{namespace}.{joined}"


def detect_naming_convention(keys: Iterable[str]) -> NamingConvention:
    """Most common convention among the final segments of keys (kebab on ties)."""
    votes = {
        NamingConvention.KEBAB: 0,
        NamingConvention.CAMEL: 0,
        NamingConvention.SNAKE: 0,
    }
    for key in keys:
        segment = final_segment(key)
        if not re.search(r"[A-Za-z]", segment):
            continue
        if "-" in segment:
            votes[NamingConvention.KEBAB] += 1
        elif "_" in segment:
            votes[NamingConvention.SNAKE] += 1
        elif re.search(r"[a-z][A-Z]", segment):
            votes[NamingConvention.CAMEL] += 1
        else:
            # Ambiguous single words follow the current leader
            votes[_leader(votes)] += 1
    return _leader(votes)


def _leader(votes: dict[NamingConvention, int]) -> NamingConvention:
    best = max(votes.values())
    for convention in (NamingConvention.KEBAB, NamingConvention.CAMEL, NamingConvention.SNAKE):
        if votes[convention] == best:
            return convention
    return NamingConvention.KEBAB
