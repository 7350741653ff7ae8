"""Data models for keysmith."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional


class DynamicKeyReason(Enum):
    """Why a translation call argument could not be resolved to a literal key."""

    TEMPLATE = "template"
    BINARY = "binary"
    EXPRESSION = "expression"


class SuspiciousKeyReason(Enum):
    """Suspicious key taxonomy, in the order the checks are applied."""

    CONTAINS_SPACES = "contains-spaces"
    SINGLE_WORD_NO_NAMESPACE = "single-word-no-namespace"
    TRAILING_PUNCTUATION = "trailing-punctuation"
    PASCAL_CASE_SENTENCE = "pascal-case-sentence"
    SENTENCE_ARTICLE = "sentence-article"
    KEY_EQUALS_VALUE = "key-equals-value"


class SuspiciousKeyPolicy(Enum):
    """How suspicious keys are treated during sync."""

    ALLOW = "allow"
    SKIP = "skip"
    ERROR = "error"


class EmptyValuePolicy(Enum):
    """How empty or placeholder target values are treated."""

    IGNORE = "ignore"
    WARN = "warn"
    FAIL = "fail"


class EmptyValueReason(Enum):
    """Why a locale value counts as empty."""

    NULL = "null"
    EMPTY = "empty"
    WHITESPACE = "whitespace"
    PLACEHOLDER = "placeholder"


class NamingConvention(Enum):
    """Key segment naming conventions."""

    KEBAB = "kebab-case"
    CAMEL = "camelCase"
    SNAKE = "snake_case"


class LocaleFormat(Enum):
    """On-disk layout of locale JSON files."""

    AUTO = "auto"
    FLAT = "flat"
    NESTED = "nested"


class Severity(Enum):
    """Severity of an actionable item."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class SyncPhase(Enum):
    """Phases of a sync run. A run only ever moves forward."""

    EXTRACT = 1
    RECONCILE = 2
    VALIDATE = 3
    REPORT = 4
    WRITE = 5


# ── Extraction results ──


@dataclass(frozen=True)
class Position:
    """1-based line and column of a call site."""

    line: int
    column: int


@dataclass(frozen=True)
class TranslationReference:
    """A literal key found at a translation call site."""

    key: str
    file_path: str
    position: Position
    fallback_literal: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "key": self.key,
            "file_path": self.file_path,
            "position": asdict(self.position),
        }
        if self.fallback_literal is not None:
            data["fallback_literal"] = self.fallback_literal
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TranslationReference:
        return cls(
            key=data["key"],
            file_path=data["file_path"],
            position=Position(**data["position"]),
            fallback_literal=data.get("fallback_literal"),
        )


@dataclass(frozen=True)
class DynamicKeyWarning:
    """A translation call whose key argument is not a literal."""

    file_path: str
    position: Position
    expression: str
    reason: DynamicKeyReason

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "position": asdict(self.position),
            "expression": self.expression,
            "reason": self.reason.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DynamicKeyWarning:
        return cls(
            file_path=data["file_path"],
            position=Position(**data["position"]),
            expression=data["expression"],
            reason=DynamicKeyReason(data["reason"]),
        )


@dataclass
class ParseResult:
    """Per-file output of a dialect parser."""

    references: list[TranslationReference] = field(default_factory=list)
    dynamic_key_warnings: list[DynamicKeyWarning] = field(default_factory=list)


# ── Cache ──


@dataclass(frozen=True)
class FileFingerprint:
    """Cheap change proxy for a source file: modification time and size."""

    mtime_ms: float
    size: int


@dataclass
class ReferenceCacheEntry:
    """Cached parse results for one source file."""

    fingerprint: FileFingerprint
    references: list[TranslationReference] = field(default_factory=list)
    dynamic_key_warnings: list[DynamicKeyWarning] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "fingerprint": asdict(self.fingerprint),
            "references": [ref.to_dict() for ref in self.references],
            "dynamic_key_warnings": [w.to_dict() for w in self.dynamic_key_warnings],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReferenceCacheEntry:
        return cls(
            fingerprint=FileFingerprint(**data["fingerprint"]),
            references=[TranslationReference.from_dict(r) for r in data.get("references", [])],
            dynamic_key_warnings=[
                DynamicKeyWarning.from_dict(w) for w in data.get("dynamic_key_warnings", [])
            ],
        )


@dataclass
class ReferenceCacheFile:
    """Persisted cache: metadata that gates the whole file plus per-file entries."""

    version: int
    translation_identifier: str
    config_hash: str
    tool_version: str
    parser_signature: str
    parser_availability: dict[str, bool] = field(default_factory=dict)
    files: dict[str, ReferenceCacheEntry] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "translation_identifier": self.translation_identifier,
            "config_hash": self.config_hash,
            "tool_version": self.tool_version,
            "parser_signature": self.parser_signature,
            "parser_availability": dict(self.parser_availability),
            "files": {path: entry.to_dict() for path, entry in self.files.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReferenceCacheFile:
        return cls(
            version=int(data["version"]),
            translation_identifier=data["translation_identifier"],
            config_hash=data["config_hash"],
            tool_version=data["tool_version"],
            parser_signature=data["parser_signature"],
            parser_availability=dict(data.get("parser_availability", {})),
            files={
                path: ReferenceCacheEntry.from_dict(entry)
                for path, entry in data.get("files", {}).items()
            },
        )


# ── Sync results ──


@dataclass
class SuspiciousKeyWarning:
    """A referenced or stored key that looks like raw UI text."""

    key: str
    reason: SuspiciousKeyReason
    file_path: str
    position: Position
    suggestion: Optional[str] = None


@dataclass
class MissingKeyRecord:
    """A key referenced in code but absent from the source locale."""

    key: str
    references: list[TranslationReference] = field(default_factory=list)
    suspicious: bool = False
    fallback_literal: Optional[str] = None


@dataclass
class UnusedKeyRecord:
    """A locale key that nothing references."""

    key: str
    locales: list[str] = field(default_factory=list)


@dataclass
class PlaceholderIssue:
    """Interpolation tokens that differ between source and target values."""

    key: str
    locale: str
    missing: list[str]
    extra: list[str]
    source_value: str
    target_value: str
    references: list[TranslationReference] = field(default_factory=list)


@dataclass
class EmptyValueViolation:
    """A target locale value that is empty or a marker such as TODO."""

    key: str
    locale: str
    value: Optional[str]
    reason: EmptyValueReason
    fallback_literal: Optional[str] = None


@dataclass
class LocaleFileStats:
    """What a flush changed in one locale file."""

    locale: str
    path: str
    total_keys: int
    added: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)


@dataclass
class LocalePreview:
    """Projected additions and removals for one locale."""

    locale: str
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)


@dataclass
class DynamicKeyCoverage:
    """Expanded keys for one wildcard pattern and which locales lack them."""

    pattern: str
    expanded_keys: list[str] = field(default_factory=list)
    missing_by_locale: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class ActionableItem:
    """One line of actionable output derived from a sync summary."""

    kind: str
    severity: Severity
    message: str
    key: Optional[str] = None
    locale: Optional[str] = None
    file_path: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class ValidationState:
    """Validation settings that were in effect for a sync run."""

    interpolations: bool
    empty_value_policy: EmptyValuePolicy


@dataclass
class SyncSummary:
    """Result of a sync run. Same shape for dry-run and write mode."""

    files_scanned: int
    references: list[TranslationReference]
    missing_keys: list[MissingKeyRecord]
    unused_keys: list[UnusedKeyRecord]
    placeholder_issues: list[PlaceholderIssue]
    empty_value_violations: list[EmptyValueViolation]
    suspicious_keys: list[SuspiciousKeyWarning]
    dynamic_key_warnings: list[DynamicKeyWarning]
    assumed_keys: list[str]
    validation: ValidationState
    write: bool
    locale_stats: list[LocaleFileStats] = field(default_factory=list)
    locale_preview: list[LocalePreview] = field(default_factory=list)
    dynamic_key_coverage: list[DynamicKeyCoverage] = field(default_factory=list)
    actionable_items: list[ActionableItem] = field(default_factory=list)
    failed: bool = False
    cache_stats: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Plain JSON-compatible representation."""
        return _plain(asdict(self))


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


# ── Configuration ──


DEFAULT_INCLUDE = [
    "src/**/*.{ts,tsx,js,jsx,vue}",
    "app/**/*.{ts,tsx,js,jsx,vue}",
    "pages/**/*.{ts,tsx,js,jsx,vue}",
    "components/**/*.{ts,tsx,js,jsx,vue}",
]
DEFAULT_EXCLUDE = ["node_modules/**", ".next/**", "dist/**"]
DEFAULT_EMPTY_VALUE_MARKERS = ["todo", "tbd", "fixme", "pending", "???"]
DEFAULT_PLACEHOLDER_FORMATS = ["doubleCurly", "percentCurly", "percentSymbol"]


@dataclass
class TranslationAdapterConfig:
    """Runtime translation library the project uses."""

    module: str = "react-i18next"
    hook_name: str = "useTranslation"


@dataclass
class LocalesConfig:
    """Locale file layout."""

    format: LocaleFormat = LocaleFormat.AUTO
    delimiter: str = "."
    sort_keys: bool = True


@dataclass
class SyncConfig:
    """Settings for the sync run."""

    translation_identifier: str = "t"
    validate_interpolations: bool = False
    placeholder_formats: list[str] = field(default_factory=lambda: list(DEFAULT_PLACEHOLDER_FORMATS))
    empty_value_policy: EmptyValuePolicy = EmptyValuePolicy.WARN
    empty_value_markers: list[str] = field(default_factory=lambda: list(DEFAULT_EMPTY_VALUE_MARKERS))
    suspicious_key_policy: SuspiciousKeyPolicy = SuspiciousKeyPolicy.SKIP
    dynamic_key_globs: list[str] = field(default_factory=list)
    dynamic_key_assumptions: list[str] = field(default_factory=list)
    seed_value: str = ""


@dataclass
class KeysmithConfig:
    """Complete project configuration."""

    source_language: str = "en"
    target_languages: list[str] = field(default_factory=list)
    locales_dir: str = "locales"
    include: list[str] = field(default_factory=lambda: list(DEFAULT_INCLUDE))
    exclude: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE))
    translation_adapter: TranslationAdapterConfig = field(default_factory=TranslationAdapterConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    locales: LocalesConfig = field(default_factory=LocalesConfig)
    key_namespace: str = "common"
    seed_target_locales: bool = True
    dynamic_keys: dict[str, list[str]] = field(default_factory=dict)
