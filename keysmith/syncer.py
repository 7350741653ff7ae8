"""Reconciliation of code references against locale files."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol

from .cache import CACHE_DIRNAME, SYNC_CACHE_FILENAME, CacheStats
from .dynamic_keys import (
    build_dynamic_key_coverage,
    collect_glob_matched_keys,
    compile_key_globs,
    expand_dynamic_keys,
)
from .errors import SourceResolutionError
from .extractor import DEFAULT_MAX_WORKERS, ExtractionResult, ReferenceExtractor
from .key_validator import KeyValidator
from .locale_store import LocaleData, LocaleStore
from .models import (
    EmptyValuePolicy,
    EmptyValueReason,
    EmptyValueViolation,
    KeysmithConfig,
    LocalePreview,
    MissingKeyRecord,
    PlaceholderIssue,
    Position,
    ReferenceCacheEntry,
    SuspiciousKeyPolicy,
    SuspiciousKeyReason,
    SuspiciousKeyWarning,
    SyncPhase,
    SyncSummary,
    TranslationReference,
    UnusedKeyRecord,
    ValidationState,
)
from .parsers.registry import ParserRegistry
from .placeholders import PlaceholderValidator
from .report import build_actionable_items

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedKey:
    key: str


class KeyGenerator(Protocol):
    """Proposes a key for raw text. Only consulted for suspicious keys."""

    def generate(self, text: str, metadata: dict[str, Any]) -> GeneratedKey:
        ...


@dataclass
class SyncOptions:
    """Per-run switches. Everything defaults to a read-only dry run."""

    write: bool = False
    prune: bool = False
    invalidate_cache: bool = False
    targets: Optional[list[str]] = None
    assumed_keys: list[str] = field(default_factory=list)
    selected_missing_keys: Optional[list[str]] = None
    selected_unused_keys: Optional[list[str]] = None
    validate_interpolations: Optional[bool] = None
    empty_value_policy: Optional[EmptyValuePolicy] = None


def empty_value_reason(value: Optional[str], markers: Iterable[str]) -> Optional[EmptyValueReason]:
    if value is None:
        return EmptyValueReason.NULL
    if value == "":
        return EmptyValueReason.EMPTY
    stripped = value.strip()
    if not stripped:
        return EmptyValueReason.WHITESPACE
    if stripped.lower() in {marker.lower() for marker in markers}:
        return EmptyValueReason.PLACEHOLDER
    return None


def build_locale_preview(
    projected: dict[str, LocaleData],
    original: dict[str, LocaleData],
) -> list[LocalePreview]:
    preview = []
    for locale in sorted(set(projected) | set(original)):
        after = projected.get(locale, {})
        before = original.get(locale, {})
        added = sorted(key for key in after if key not in before)
        removed = sorted(key for key in before if key not in after)
        if added or removed:
            preview.append(LocalePreview(locale=locale, added=added, removed=removed))
    return preview


class Syncer:
    """Runs extract, reconcile, validate and then report or write.

    Phases only move forward. Locale files and the sync cache are the only
    things written, both at the end of a run.
    """

    def __init__(
        self,
        config: KeysmithConfig,
        workspace_root: Path,
        registry: Optional[ParserRegistry] = None,
        locale_store: Optional[LocaleStore] = None,
        key_generator: Optional[KeyGenerator] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self.config = config
        self.workspace_root = Path(workspace_root).resolve()
        self.source_locale = config.source_language
        self.target_locales = [
            locale for locale in config.target_languages if locale and locale != self.source_locale
        ]
        self.locale_store = locale_store or LocaleStore(
            self.workspace_root / config.locales_dir,
            format=config.locales.format,
            delimiter=config.locales.delimiter,
            sort_keys=config.locales.sort_keys,
        )
        self.extractor = ReferenceExtractor(
            config,
            self.workspace_root,
            registry=registry,
            cache_path=self.workspace_root / CACHE_DIRNAME / SYNC_CACHE_FILENAME,
            max_workers=max_workers,
        )
        self.key_generator = key_generator
        self.suspicious_key_policy = config.sync.suspicious_key_policy
        self.validator = KeyValidator(self.suspicious_key_policy, config.key_namespace)
        self.glob_matchers = compile_key_globs(config.sync.dynamic_key_globs)
        self.phase: Optional[SyncPhase] = None

    @property
    def locales(self) -> list[str]:
        return [self.source_locale, *self.target_locales]

    def _advance(self, phase: SyncPhase) -> None:
        if self.phase is not None and phase.value <= self.phase.value:
            raise RuntimeError(f"Sync cannot move from {self.phase.name} to {phase.name}")
        logger.debug("Sync phase: %s", phase.name.lower())
        self.phase = phase

    def run(self, options: Optional[SyncOptions] = None) -> SyncSummary:
        options = options or SyncOptions()
        self.phase = None
        validate_interpolations = (
            self.config.sync.validate_interpolations
            if options.validate_interpolations is None
            else options.validate_interpolations
        )
        empty_policy = options.empty_value_policy or self.config.sync.empty_value_policy

        # ── Extract ──
        self._advance(SyncPhase.EXTRACT)
        files = self.extractor.resolve_source_files()
        if not files:
            raise SourceResolutionError(self.config.include)
        scoped = options.targets is not None
        if scoped:
            files = self.extractor.resolve_targets(options.targets)
            if not files:
                raise SourceResolutionError(options.targets)

        stats = CacheStats()
        metadata, cache = self.extractor.load_cache(options.invalidate_cache, stats)
        # Scoped runs keep cached entries of files outside the targets
        next_entries: dict[str, ReferenceCacheEntry] = dict(cache.files) if scoped and cache else {}

        assumed = set(self.config.sync.dynamic_key_assumptions)
        assumed.update(key.strip() for key in options.assumed_keys if key.strip())
        assumed.update(expand_dynamic_keys(self.config.dynamic_keys))
        extraction = self.extractor.collect(files, cache, next_entries, assumed, stats)

        locale_data = {locale: self.locale_store.get(locale) for locale in self.locales}
        glob_assumed = collect_glob_matched_keys(locale_data, self.glob_matchers)
        assumed |= glob_assumed
        extraction.key_set |= glob_assumed

        # ── Reconcile ──
        self._advance(SyncPhase.RECONCILE)
        projected = {locale: dict(data) for locale, data in locale_data.items()}
        missing_keys, missing_to_apply = self._process_missing_keys(
            extraction, locale_data, projected, options.selected_missing_keys
        )
        unused_keys, unused_to_apply = self._process_unused_keys(
            extraction.key_set, locale_data, projected, options, enabled=not scoped
        )

        # ── Validate ──
        self._advance(SyncPhase.VALIDATE)
        placeholder_issues = (
            self._collect_placeholder_issues(locale_data, extraction.references_by_key)
            if validate_interpolations
            else []
        )
        empty_value_violations = (
            self._collect_empty_value_violations(locale_data, extraction.references_by_key)
            if empty_policy is not EmptyValuePolicy.IGNORE
            else []
        )
        suspicious_keys = self._collect_suspicious_keys(extraction)
        suspicious_keys.extend(self._audit_source_values(locale_data, suspicious_keys))

        failed = False
        if empty_policy is EmptyValuePolicy.FAIL and empty_value_violations:
            failed = True
        if self.suspicious_key_policy is SuspiciousKeyPolicy.ERROR and suspicious_keys:
            failed = True

        # ── Report / write ──
        locale_stats = []
        if options.write:
            self._advance(SyncPhase.WRITE)
            self._apply_missing_keys(missing_to_apply)
            self._apply_unused_keys(unused_to_apply)
            locale_stats = self.locale_store.flush()
        else:
            self._advance(SyncPhase.REPORT)

        self.extractor.cache.save(metadata.new_file(next_entries))

        assumed_keys = sorted(assumed)
        actionable_items = build_actionable_items(
            missing_keys=missing_keys,
            unused_keys=unused_keys,
            placeholder_issues=placeholder_issues,
            empty_value_violations=empty_value_violations,
            dynamic_key_warnings=extraction.dynamic_key_warnings,
            suspicious_keys=suspicious_keys,
            assumed_keys=assumed_keys,
            suspicious_key_policy=self.suspicious_key_policy,
            empty_value_policy=empty_policy,
        )

        summary = SyncSummary(
            files_scanned=len(files),
            references=extraction.references,
            missing_keys=missing_keys,
            unused_keys=unused_keys,
            placeholder_issues=placeholder_issues,
            empty_value_violations=empty_value_violations,
            suspicious_keys=suspicious_keys,
            dynamic_key_warnings=extraction.dynamic_key_warnings,
            assumed_keys=assumed_keys,
            validation=ValidationState(
                interpolations=validate_interpolations,
                empty_value_policy=empty_policy,
            ),
            write=options.write,
            locale_stats=locale_stats,
            locale_preview=build_locale_preview(projected, locale_data),
            dynamic_key_coverage=build_dynamic_key_coverage(
                self.config.dynamic_keys, locale_data, self.locales
            ),
            actionable_items=actionable_items,
            failed=failed,
            cache_stats=stats.to_dict(),
        )
        logger.info(
            "Sync %s: %d files, %d missing, %d unused%s",
            "write" if options.write else "dry run",
            summary.files_scanned,
            len(missing_keys),
            len(unused_keys),
            " (FAILED)" if failed else "",
        )
        return summary

    # ── Reconcile ──

    def _process_missing_keys(
        self,
        extraction: ExtractionResult,
        locale_data: dict[str, LocaleData],
        projected: dict[str, LocaleData],
        selection: Optional[list[str]],
    ) -> tuple[list[MissingKeyRecord], list[MissingKeyRecord]]:
        source_keys = locale_data.get(self.source_locale, {})
        selected = _selection_set(selection)

        missing = []
        for key in sorted(extraction.key_set):
            if key in source_keys:
                continue
            references = extraction.references_by_key.get(key, [])
            missing.append(
                MissingKeyRecord(
                    key=key,
                    references=list(references),
                    suspicious=self.validator.analyze(key).suspicious,
                    fallback_literal=_first_fallback(references),
                )
            )

        to_apply = [
            record for record in missing
            if (
                not record.suspicious
                or self.suspicious_key_policy is SuspiciousKeyPolicy.ALLOW
                or (selected is not None and record.key in selected)
            )
        ]
        if selected is not None:
            to_apply = [record for record in to_apply if record.key in selected]

        for record in to_apply:
            projected.setdefault(self.source_locale, {})[record.key] = self._source_value(record)
            if self.config.seed_target_locales:
                for locale in self.target_locales:
                    target = projected.setdefault(locale, {})
                    if record.key not in target:
                        target[record.key] = self.config.sync.seed_value
        return missing, to_apply

    def _process_unused_keys(
        self,
        key_set: set[str],
        locale_data: dict[str, LocaleData],
        projected: dict[str, LocaleData],
        options: SyncOptions,
        enabled: bool,
    ) -> tuple[list[UnusedKeyRecord], list[UnusedKeyRecord]]:
        if not enabled:
            # A partial scan cannot prove a key unused
            return [], []

        holders: dict[str, set[str]] = {}
        for locale, data in locale_data.items():
            for key in data:
                if key not in key_set:
                    holders.setdefault(key, set()).add(locale)
        unused = [
            UnusedKeyRecord(key=key, locales=sorted(locales))
            for key, locales in sorted(holders.items())
        ]

        if not options.prune:
            return unused, []
        selected = _selection_set(options.selected_unused_keys)
        to_apply = [r for r in unused if selected is None or r.key in selected]
        for record in to_apply:
            for locale in record.locales:
                projected.get(locale, {}).pop(record.key, None)
        return unused, to_apply

    def _source_value(self, record: MissingKeyRecord) -> str:
        return record.fallback_literal if record.fallback_literal is not None else record.key

    # ── Validate ──

    def _collect_placeholder_issues(
        self,
        locale_data: dict[str, LocaleData],
        references_by_key: dict[str, list[TranslationReference]],
    ) -> list[PlaceholderIssue]:
        validator = PlaceholderValidator(self.config.sync.placeholder_formats)
        issues = []
        for key, source_value in sorted(locale_data.get(self.source_locale, {}).items()):
            if source_value is None:
                continue
            for locale in self.target_locales:
                target_value = locale_data.get(locale, {}).get(key)
                if target_value is None:
                    continue
                comparison = validator.compare(source_value, target_value)
                if comparison.ok:
                    continue
                issues.append(
                    PlaceholderIssue(
                        key=key,
                        locale=locale,
                        missing=comparison.missing,
                        extra=comparison.extra,
                        source_value=source_value,
                        target_value=target_value,
                        references=list(references_by_key.get(key, [])),
                    )
                )
        return issues

    def _collect_empty_value_violations(
        self,
        locale_data: dict[str, LocaleData],
        references_by_key: dict[str, list[TranslationReference]],
    ) -> list[EmptyValueViolation]:
        markers = self.config.sync.empty_value_markers
        violations = []
        for locale in self.target_locales:
            for key, value in sorted(locale_data.get(locale, {}).items()):
                reason = empty_value_reason(value, markers)
                if reason is None:
                    continue
                violations.append(
                    EmptyValueViolation(
                        key=key,
                        locale=locale,
                        value=value,
                        reason=reason,
                        fallback_literal=_first_fallback(references_by_key.get(key, [])),
                    )
                )
        return violations

    def _collect_suspicious_keys(self, extraction: ExtractionResult) -> list[SuspiciousKeyWarning]:
        warnings = []
        for key in sorted(extraction.key_set):
            analysis = self.validator.analyze(key)
            if not analysis.suspicious:
                continue
            for reference in extraction.references_by_key.get(key, []):
                warnings.append(
                    SuspiciousKeyWarning(
                        key=key,
                        reason=analysis.reason,
                        file_path=reference.file_path,
                        position=reference.position,
                        suggestion=self._suggest(key, analysis.reason, reference.file_path),
                    )
                )
        return warnings

    def _audit_source_values(
        self,
        locale_data: dict[str, LocaleData],
        already: list[SuspiciousKeyWarning],
    ) -> list[SuspiciousKeyWarning]:
        """Un-namespaced source keys whose value just repeats the key."""
        reported = {w.key for w in already if w.reason is SuspiciousKeyReason.KEY_EQUALS_VALUE}
        locale_file = self._relative(self.locale_store.file_path(self.source_locale))
        warnings = []
        for key, value in sorted(locale_data.get(self.source_locale, {}).items()):
            if "." in key or key in reported:
                continue
            analysis = self.validator.analyze_with_value(key, value)
            if analysis.reason is not SuspiciousKeyReason.KEY_EQUALS_VALUE:
                continue
            warnings.append(
                SuspiciousKeyWarning(
                    key=key,
                    reason=SuspiciousKeyReason.KEY_EQUALS_VALUE,
                    file_path=locale_file,
                    position=Position(0, 0),
                    suggestion=self._suggest(key, analysis.reason, locale_file),
                )
            )
        return warnings

    def _suggest(self, key: str, reason: SuspiciousKeyReason, file_path: str) -> Optional[str]:
        if self.key_generator is not None:
            generated = self.key_generator.generate(key, {"file_path": file_path, "reason": reason.value})
            return generated.key
        return self.validator.suggest_fix(key, reason)

    # ── Write ──

    def _apply_missing_keys(self, records: list[MissingKeyRecord]) -> None:
        for record in records:
            self.locale_store.upsert(self.source_locale, record.key, self._source_value(record))
            if self.config.seed_target_locales:
                for locale in self.target_locales:
                    # Existing translations are never overwritten by the seed
                    if not self.locale_store.has(locale, record.key):
                        self.locale_store.upsert(locale, record.key, self.config.sync.seed_value)

    def _apply_unused_keys(self, records: list[UnusedKeyRecord]) -> None:
        for record in records:
            for locale in record.locales:
                self.locale_store.remove(locale, record.key)

    def _relative(self, path: Path) -> str:
        try:
            return path.resolve().relative_to(self.workspace_root).as_posix()
        except ValueError:
            return str(path)


def _selection_set(keys: Optional[list[str]]) -> Optional[set[str]]:
    if not keys:
        return None
    selected = {key.strip() for key in keys if key.strip()}
    return selected or None


def _first_fallback(references: Iterable[TranslationReference]) -> Optional[str]:
    for reference in references:
        if reference.fallback_literal is not None:
            return reference.fallback_literal
    return None
