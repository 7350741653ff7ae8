import pytest

from keysmith.config import find_config, load_config, parse_config
from keysmith.errors import ConfigError
from keysmith.models import (
    DEFAULT_EXCLUDE,
    DEFAULT_INCLUDE,
    EmptyValuePolicy,
    LocaleFormat,
    SuspiciousKeyPolicy,
)

FULL_CONFIG = """
sourceLanguage: en
targetLanguages: [fi, sv]
localesDir: public/locales
include:
  - "src/**/*.{ts,tsx}"
exclude:
  - "src/**/*.test.ts"
translationAdapter:
  module: i18next
  hookName: useTranslation
sync:
  validateInterpolations: true
  placeholderFormats: [doubleCurly, singleCurly]
  emptyValuePolicy: fail
  emptyValueMarkers: [todo, xxx]
  suspiciousKeyPolicy: error
  dynamicKeyGlobs: ["status.*"]
  dynamicKeyAssumptions: [errors.unknown]
  seedValue: "TODO"
locales:
  format: nested
  delimiter: ":"
  sortKeys: false
keyGeneration:
  namespace: ui
seedTargetLocales: false
dynamicKeys:
  expand:
    "item.*.label": [a, b]
"""


def test_load_full_config(tmp_path):
    path = tmp_path / "keysmith.yaml"
    path.write_text(FULL_CONFIG, encoding="utf-8")
    config = load_config(path)

    assert config.source_language == "en"
    assert config.target_languages == ["fi", "sv"]
    assert config.locales_dir == "public/locales"
    assert config.include == ["src/**/*.{ts,tsx}"]
    assert config.exclude == ["src/**/*.test.ts"]
    assert config.translation_adapter.module == "i18next"
    assert config.sync.translation_identifier == "t"
    assert config.sync.validate_interpolations is True
    assert config.sync.placeholder_formats == ["doubleCurly", "singleCurly"]
    assert config.sync.empty_value_policy is EmptyValuePolicy.FAIL
    assert config.sync.empty_value_markers == ["todo", "xxx"]
    assert config.sync.suspicious_key_policy is SuspiciousKeyPolicy.ERROR
    assert config.sync.dynamic_key_globs == ["status.*"]
    assert config.sync.dynamic_key_assumptions == ["errors.unknown"]
    assert config.sync.seed_value == "TODO"
    assert config.locales.format is LocaleFormat.NESTED
    assert config.locales.delimiter == ":"
    assert config.locales.sort_keys is False
    assert config.key_namespace == "ui"
    assert config.seed_target_locales is False
    assert config.dynamic_keys == {"item.*.label": ["a", "b"]}


def test_empty_config_uses_defaults(tmp_path):
    path = tmp_path / "keysmith.yaml"
    path.write_text("", encoding="utf-8")
    config = load_config(path)
    assert config.include == DEFAULT_INCLUDE
    assert config.exclude == DEFAULT_EXCLUDE
    assert config.sync.translation_identifier == "t"
    assert config.seed_target_locales is True
    assert config.sync.empty_value_policy is EmptyValuePolicy.WARN


def test_json_config(tmp_path):
    path = tmp_path / "keysmith.json"
    path.write_text('{"targetLanguages": ["de"], "sync": {"translationIdentifier": "tr"}}', encoding="utf-8")
    config = load_config(path)
    assert config.target_languages == ["de"]
    assert config.sync.translation_identifier == "tr"


def test_identifier_inferred_from_non_hook_adapter():
    config = parse_config({"translationAdapter": {"module": "@/i18n", "hookName": "translate"}})
    assert config.sync.translation_identifier == "translate"


def test_explicit_empty_exclude_is_kept():
    assert parse_config({"exclude": []}).exclude == []


def test_invalid_policy_is_rejected():
    with pytest.raises(ConfigError) as exc:
        parse_config({"sync": {"emptyValuePolicy": "explode"}})
    assert "sync.emptyValuePolicy" in str(exc.value)


def test_unknown_placeholder_format_is_rejected():
    with pytest.raises(ConfigError):
        parse_config({"sync": {"placeholderFormats": ["angleBrackets"]}})


def test_invalid_sections_fall_back_with_warning(caplog):
    config = parse_config({"sync": "nope", "dynamicKeys": ["x"], "include": 5})
    assert config.sync.translation_identifier == "t"
    assert config.dynamic_keys == {}
    assert config.include == DEFAULT_INCLUDE
    assert "Invalid sync configuration" in caplog.text


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "keysmith.yaml")


def test_malformed_yaml(tmp_path):
    path = tmp_path / "keysmith.yaml"
    path.write_text("include: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_non_mapping_root(tmp_path):
    path = tmp_path / "keysmith.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError) as exc:
        load_config(path)
    assert exc.value.path == path


def test_find_config(tmp_path):
    assert find_config(tmp_path) is None
    (tmp_path / "keysmith.yml").write_text("{}", encoding="utf-8")
    assert find_config(tmp_path) == tmp_path / "keysmith.yml"
