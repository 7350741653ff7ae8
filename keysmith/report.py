"""Actionable items and plain-text rendering of sync summaries."""

from __future__ import annotations

from typing import Sequence

from .i18n import t
from .key_validator import REASON_DESCRIPTIONS
from .models import (
    ActionableItem,
    DynamicKeyWarning,
    EmptyValuePolicy,
    EmptyValueViolation,
    MissingKeyRecord,
    PlaceholderIssue,
    Severity,
    SuspiciousKeyPolicy,
    SuspiciousKeyWarning,
    SyncSummary,
    UnusedKeyRecord,
)


def build_actionable_items(
    missing_keys: Sequence[MissingKeyRecord],
    unused_keys: Sequence[UnusedKeyRecord],
    placeholder_issues: Sequence[PlaceholderIssue],
    empty_value_violations: Sequence[EmptyValueViolation],
    dynamic_key_warnings: Sequence[DynamicKeyWarning],
    suspicious_keys: Sequence[SuspiciousKeyWarning],
    assumed_keys: Sequence[str],
    suspicious_key_policy: SuspiciousKeyPolicy,
    empty_value_policy: EmptyValuePolicy,
) -> list[ActionableItem]:
    """Flatten summary findings into one list with severities."""
    items: list[ActionableItem] = []

    suspicious_severity = (
        Severity.ERROR if suspicious_key_policy is SuspiciousKeyPolicy.ERROR else Severity.WARN
    )
    skip_suffix = (
        t("item_suspicious_skip_suffix")
        if suspicious_key_policy is not SuspiciousKeyPolicy.ALLOW
        else ""
    )
    for warning in suspicious_keys:
        message = t(
            "item_suspicious_key",
            key=warning.key,
            description=REASON_DESCRIPTIONS[warning.reason],
        )
        if warning.suggestion:
            message += t("item_suspicious_suggestion", suggestion=warning.suggestion)
        items.append(
            ActionableItem(
                kind="suspicious-key",
                severity=suspicious_severity,
                message=message + skip_suffix,
                key=warning.key,
                file_path=warning.file_path,
                details={
                    "reason": warning.reason.value,
                    "policy": suspicious_key_policy.value,
                    "suggestion": warning.suggestion,
                },
            )
        )

    for record in missing_keys:
        first = record.references[0] if record.references else None
        items.append(
            ActionableItem(
                kind="missing-key",
                severity=Severity.ERROR,
                message=t("item_missing_key", key=record.key, count=len(record.references)),
                key=record.key,
                file_path=first.file_path if first else None,
                details={
                    "reference_count": len(record.references),
                    "fallback_literal": record.fallback_literal,
                },
            )
        )

    for record in unused_keys:
        items.append(
            ActionableItem(
                kind="unused-key",
                severity=Severity.WARN,
                message=t("item_unused_key", key=record.key, locales=", ".join(record.locales)),
                key=record.key,
                details={"locales": list(record.locales)},
            )
        )

    for issue in placeholder_issues:
        items.append(
            ActionableItem(
                kind="placeholder-mismatch",
                severity=Severity.ERROR,
                message=t(
                    "item_placeholder_mismatch",
                    key=issue.key,
                    locale=issue.locale,
                    missing=", ".join(issue.missing),
                    extra=", ".join(issue.extra),
                ),
                key=issue.key,
                locale=issue.locale,
                details={"missing": list(issue.missing), "extra": list(issue.extra)},
            )
        )

    if empty_value_policy is not EmptyValuePolicy.IGNORE:
        empty_severity = Severity.ERROR if empty_value_policy is EmptyValuePolicy.FAIL else Severity.WARN
        for violation in empty_value_violations:
            items.append(
                ActionableItem(
                    kind="empty-value",
                    severity=empty_severity,
                    message=t(
                        "item_empty_value",
                        key=violation.key,
                        locale=violation.locale,
                        reason=violation.reason.value,
                    ),
                    key=violation.key,
                    locale=violation.locale,
                    details={
                        "reason": violation.reason.value,
                        "fallback_literal": violation.fallback_literal,
                    },
                )
            )

    for warning in dynamic_key_warnings:
        items.append(
            ActionableItem(
                kind="dynamic-key-warning",
                severity=Severity.WARN,
                message=t(
                    "item_dynamic_key",
                    file=warning.file_path,
                    line=warning.position.line,
                    column=warning.position.column,
                    reason=warning.reason.value,
                    expression=warning.expression,
                ),
                file_path=warning.file_path,
                details={"reason": warning.reason.value, "expression": warning.expression},
            )
        )

    if assumed_keys:
        items.append(
            ActionableItem(
                kind="assumed-keys",
                severity=Severity.INFO,
                message=t("item_assumed_keys", count=len(assumed_keys)),
                details={"keys": list(assumed_keys)},
            )
        )

    return items


def format_summary(summary: SyncSummary, verbose: bool = False) -> str:
    """Render a summary as plain text for the terminal."""
    mode = t("common_mode_write") if summary.write else t("common_mode_dry_run")
    lines = [
        t("report_header", mode=mode),
        t("report_files_scanned", count=summary.files_scanned),
        t("report_references", count=len(summary.references)),
        t("report_missing", count=len(summary.missing_keys)),
        t("report_unused", count=len(summary.unused_keys)),
        t("report_placeholder_issues", count=len(summary.placeholder_issues)),
        t("report_empty_values", count=len(summary.empty_value_violations)),
        t("report_suspicious", count=len(summary.suspicious_keys)),
        t("report_dynamic", count=len(summary.dynamic_key_warnings)),
        t("report_assumed", count=len(summary.assumed_keys)),
    ]

    if summary.locale_stats:
        lines.append(t("report_written_header"))
        for stats in summary.locale_stats:
            lines.append(
                t(
                    "report_written_line",
                    path=stats.path,
                    total=stats.total_keys,
                    added=len(stats.added),
                    updated=len(stats.updated),
                    removed=len(stats.removed),
                )
            )
    elif summary.locale_preview:
        lines.append(t("report_preview_header"))
        for preview in summary.locale_preview:
            lines.append(
                t(
                    "report_preview_line",
                    locale=preview.locale,
                    added=len(preview.added),
                    removed=len(preview.removed),
                )
            )

    incomplete = [c for c in summary.dynamic_key_coverage if c.missing_by_locale]
    if incomplete:
        lines.append(t("report_coverage_header"))
        for coverage in incomplete:
            for locale, keys in coverage.missing_by_locale.items():
                lines.append(
                    t(
                        "report_coverage_line",
                        pattern=coverage.pattern,
                        locale=locale,
                        keys=", ".join(keys),
                    )
                )

    shown = [
        item for item in summary.actionable_items
        if verbose or item.severity is not Severity.INFO
    ]
    if shown:
        lines.append(t("report_items_header"))
        for item in shown:
            lines.append(
                t(
                    "report_item_line",
                    severity=t(f"common_severity_{item.severity.value}"),
                    message=item.message,
                )
            )

    if verbose and summary.cache_stats:
        lines.append(
            t(
                "report_cache",
                hits=summary.cache_stats.get("hits", 0),
                misses=summary.cache_stats.get("misses", 0),
            )
        )

    if not summary.write and summary.missing_keys:
        lines.append(t("report_hint_write"))
    if summary.unused_keys and not any(stats.removed for stats in summary.locale_stats):
        lines.append(t("report_hint_prune"))

    lines.append(t("report_failed") if summary.failed else t("report_ok"))
    return "\n".join(lines)
