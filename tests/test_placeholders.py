from keysmith.placeholders import (
    PLACEHOLDER_PATTERNS,
    PlaceholderValidator,
    build_placeholder_patterns,
    extract_placeholders,
)


def test_default_formats():
    validator = PlaceholderValidator()
    assert validator.extract("Hello {{ name }}, you have %{count} new %s") == [
        "name",
        "count",
        "__positional__1",
    ]


def test_tokens_are_deduplicated_in_discovery_order():
    patterns = build_placeholder_patterns(["doubleCurly"])
    assert extract_placeholders("{{b}} {{a}} {{b}}", patterns) == ["b", "a"]


def test_single_curly_does_not_match_inside_double_curly():
    patterns = build_placeholder_patterns(["doubleCurly", "singleCurly"])
    assert extract_placeholders("{{name}} and {count}", patterns) == ["name", "count"]


def test_unknown_format_falls_back_to_double_curly():
    assert build_placeholder_patterns(["nope"]) == [PLACEHOLDER_PATTERNS["doubleCurly"]]


def test_empty_value_has_no_placeholders():
    assert PlaceholderValidator().extract("") == []


def test_compare_reports_missing_and_extra():
    validator = PlaceholderValidator()
    comparison = validator.compare("Hello {{name}}, {{count}} items", "Hei {{nimi}}, {{count}}")
    assert comparison.missing == ["name"]
    assert comparison.extra == ["nimi"]
    assert not comparison.ok


def test_compare_counts_positional_tokens():
    validator = PlaceholderValidator(["percentSymbol"])
    comparison = validator.compare("%s of %s", "%s")
    assert comparison.missing == ["__positional__2"]
    assert comparison.extra == []


def test_compare_identical_sets_is_ok():
    assert PlaceholderValidator().compare("{{a}} {{b}}", "{{b}} {{a}}").ok
