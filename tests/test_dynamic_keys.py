from keysmith.dynamic_keys import (
    build_dynamic_key_coverage,
    collect_glob_matched_keys,
    compile_key_glob,
    compile_key_globs,
    expand_dynamic_keys,
    expand_pattern,
    matches_any_glob,
)


def test_expand_pattern_single_wildcard():
    assert expand_pattern("status.*", ["open", "closed"]) == ["status.open", "status.closed"]


def test_expand_pattern_wildcards_move_in_lock_step():
    keys = expand_pattern("item.*.label.*", ["a", "b", "c"])
    assert keys == ["item.a.label.a", "item.b.label.b", "item.c.label.c"]


def test_expand_pattern_without_wildcard():
    assert expand_pattern("plain.key", ["x", "y"]) == ["plain.key"]


def test_expand_dynamic_keys_skips_empty_and_dedupes():
    mapping = {
        "status.*": ["open", "closed"],
        "ignored.*": [],
        "status.open": ["whatever"],
    }
    assert expand_dynamic_keys(mapping) == ["status.open", "status.closed"]


def test_coverage_reports_missing_keys_per_locale():
    mapping = {"item.*.label": ["a", "b", "c"]}
    locale_data = {
        "en": {"item.a.label": "A", "item.b.label": "B", "item.c.label": "C"},
        "fi": {"item.a.label": "A"},
    }
    coverage = build_dynamic_key_coverage(mapping, locale_data, ["en", "fi", "sv"])

    assert len(coverage) == 1
    entry = coverage[0]
    assert entry.pattern == "item.*.label"
    assert entry.expanded_keys == ["item.a.label", "item.b.label", "item.c.label"]
    assert "en" not in entry.missing_by_locale
    assert entry.missing_by_locale["fi"] == ["item.b.label", "item.c.label"]
    assert entry.missing_by_locale["sv"] == entry.expanded_keys


def test_single_star_stays_within_segment():
    matcher = compile_key_glob("status.*")
    assert matcher.match("status.active")
    assert not matcher.match("status.active.label")
    assert not matcher.match("statuses.active")


def test_double_star_crosses_segments():
    matcher = compile_key_glob("errors.**")
    assert matcher.match("errors.network.timeout")
    assert matcher.match("errors.x")


def test_question_mark_matches_one_character():
    matcher = compile_key_glob("step.?")
    assert matcher.match("step.1")
    assert not matcher.match("step.10")


def test_compile_key_globs_ignores_blank_patterns():
    assert len(compile_key_globs(["status.*", "  ", ""])) == 1


def test_collect_glob_matched_keys_across_locales():
    matchers = compile_key_globs(["status.*"])
    data = {
        "en": {"status.active": "Active", "title": "Title"},
        "fi": {"status.archived": "Arkistoitu"},
    }
    assert collect_glob_matched_keys(data, matchers) == {"status.active", "status.archived"}
    assert collect_glob_matched_keys(data, []) == set()
    assert matches_any_glob("status.active", matchers)
    assert not matches_any_glob("title", matchers)
