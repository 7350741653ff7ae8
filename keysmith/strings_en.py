"""English (en) strings for keysmith reports."""

STRINGS: dict = {
    # ── Common ────────────────────────────────────────────────────────
    "common_mode_dry_run": "dry run",
    "common_mode_write": "write",
    "common_severity_info": "INFO",
    "common_severity_warn": "WARN",
    "common_severity_error": "ERROR",

    # ── Actionable items ──────────────────────────────────────────────
    "item_suspicious_key": 'Suspicious key format detected: "{key}" ({description})',
    "item_suspicious_skip_suffix": "; auto-insert skipped until the key is renamed",
    "item_suspicious_suggestion": ', suggested key "{suggestion}"',
    "item_missing_key": lambda key, count, **_: (
        f'Key "{key}" referenced {count} time{"" if count == 1 else "s"} '
        "but missing from source locale"
    ),
    "item_unused_key": 'Key "{key}" is present in locales ({locales}) but not referenced in code',
    "item_placeholder_mismatch": (
        'Placeholder mismatch for "{key}" in {locale}: missing [{missing}], extra [{extra}]'
    ),
    "item_empty_value": 'Locale {locale} has an empty value for "{key}" ({reason})',
    "item_dynamic_key": "Dynamic translation key in {file}:{line}:{column} ({reason}): {expression}",
    "item_assumed_keys": lambda count, **_: (
        f"{count} key{'' if count == 1 else 's'} assumed present without a literal call site"
    ),

    # ── Summary report ────────────────────────────────────────────────
    "report_header": "Sync summary ({mode})",
    "report_files_scanned": "Files scanned: {count}",
    "report_references": "References found: {count}",
    "report_missing": "Missing keys: {count}",
    "report_unused": "Unused keys: {count}",
    "report_placeholder_issues": "Placeholder mismatches: {count}",
    "report_empty_values": "Empty values: {count}",
    "report_suspicious": "Suspicious keys: {count}",
    "report_dynamic": "Dynamic keys: {count}",
    "report_assumed": "Assumed keys: {count}",
    "report_preview_header": "Pending locale changes:",
    "report_preview_line": "  {locale}: +{added} -{removed}",
    "report_written_header": "Locale files written:",
    "report_written_line": "  {path}: {total} keys (+{added} ~{updated} -{removed})",
    "report_coverage_header": "Dynamic key coverage:",
    "report_coverage_line": "  {pattern} [{locale}] missing: {keys}",
    "report_items_header": "Details:",
    "report_item_line": "  [{severity}] {message}",
    "report_cache": "Cache: {hits} hit(s), {misses} miss(es)",
    "report_hint_write": "Run with --write to apply missing keys.",
    "report_hint_prune": "Run with --write --prune to remove unused keys.",
    "report_failed": "Sync FAILED: policy violations found.",
    "report_ok": "Sync OK.",

    # ── Command line ──────────────────────────────────────────────────
    "cli_config_not_found": "Configuration file not found: {path}",
    "cli_config_default": "No keysmith.yaml found, using defaults",
    "cli_cache_cleared": lambda count, **_: f"Removed {count} cache file{'' if count == 1 else 's'}",
    "cli_cache_status_line": "{name}: {state} ({files} files) {path}",
    "cli_cache_state_missing": "missing",
    "cli_cache_state_fresh": "fresh",
    "cli_cache_state_stale": "stale: {reasons}",
}
